from fastapi import APIRouter

from app.api.routes.utils import router as utils_router
from app.api.routes.auth import router as auth_router
from app.api.routes.submission import router as submission_router
from app.api.routes.evaluation import router as evaluation_router
from app.api.routes.live import router as live_router
from app.api.routes.pages import router as pages_router

api_router = APIRouter()
api_router.include_router(utils_router)
api_router.include_router(auth_router)
api_router.include_router(submission_router)
api_router.include_router(evaluation_router)
api_router.include_router(live_router)
api_router.include_router(pages_router)
