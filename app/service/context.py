from dataclasses import dataclass
import logging
from typing import Optional, Protocol

from fastapi.requests import HTTPConnection
from sqlalchemy.engine import Engine

from app.config.setting import settings
from app.service.auth.identity import IdentityProvider
from app.service.db.postgres import build_engine
from app.service.db.store import PortalStore
from app.service.db.supabase import SupabaseBucketService
from app.service.live.feed import ChangeFeed, InMemoryChangeFeed, RedisChangeFeed
from app.service.mail.mailing import NotificationDispatcher, build_mail_sender

logger = logging.getLogger(__name__)


class BucketService(Protocol):
    def upload_file_from_bytes(self, data: bytes, dest_name: str, content_type: str = ...) -> dict: ...

    def get_public_url(self, file_path: str) -> str: ...


@dataclass
class ServiceContext:
    """Every external collaborator of the portal, built once per application."""
    engine: Engine
    store: PortalStore
    identity: IdentityProvider
    avatars: BucketService
    source_code: BucketService
    feed: ChangeFeed
    notifier: NotificationDispatcher

    async def close(self):
        await self.feed.close()
        self.engine.dispose()


def build_change_feed(backend: str = settings.CHANGE_FEED_BACKEND) -> ChangeFeed:
    if backend.lower() == "redis":
        logger.info(f"Using Redis change feed at {settings.REDIS_URL}")
        return RedisChangeFeed(url=settings.REDIS_URL)
    return InMemoryChangeFeed()


def build_services(engine: Optional[Engine] = None) -> ServiceContext:
    engine = engine or build_engine()
    feed = build_change_feed()
    return ServiceContext(
        engine=engine,
        store=PortalStore(engine, feed),
        identity=IdentityProvider(engine),
        avatars=SupabaseBucketService(settings.AVATAR_BUCKET),
        source_code=SupabaseBucketService(settings.SOURCE_CODE_BUCKET),
        feed=feed,
        notifier=NotificationDispatcher(build_mail_sender()),
    )


def get_services(connection: HTTPConnection) -> ServiceContext:
    return connection.app.state.services
