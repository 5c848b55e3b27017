import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlmodel import Session

from app.service.context import ServiceContext, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/utils", tags=["utils"])

@router.get("/ping")
async def ping():
    return {"ping": "pong"}

@router.get("/health")
async def health(services: ServiceContext = Depends(get_services)):
    try:
        with Session(services.engine) as db:
            db.exec(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check could not reach the database: {e}")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok", "change_feed": type(services.feed).__name__}
