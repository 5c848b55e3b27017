from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from app.api.endpoints import api_router
from app.config.setting import settings
from app.errors import AuthFailure, PortalError
from app.service.context import build_services
from app.service.db.postgres import create_db_and_tables

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("Application starting")

    # tests install their own context before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    services = app.state.services

    create_db_and_tables(services.engine)

    yield

    try:
        await services.close()
        print("Services shutdown complete")
    except Exception as e:
        print(f"Error during services shutdown: {e}")


async def auth_failure_handler(request: Request, exc: AuthFailure):
    logger.info(f"Redirecting {request.url.path} to /login: {exc.message}")
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def get_application() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AuthFailure, auth_failure_handler)
    app.add_exception_handler(PortalError, portal_error_handler)
    app.include_router(api_router, prefix="")
    return app

app = get_application()
