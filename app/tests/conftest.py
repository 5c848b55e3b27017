import io
import zipfile

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from app.main import get_application
from app.models.account import Role
from app.service.auth.identity import IdentityProvider
from app.service.context import ServiceContext
from app.service.db.store import PortalStore
from app.service.db.utils import create_account
from app.service.live.feed import InMemoryChangeFeed
from app.service.mail.mailing import MailSender, NotificationDispatcher

DEVELOPER_EMAIL = "ada@x.com"
DEVELOPER_PASSWORD = "analytical-engine"
EVALUATOR_EMAIL = "grace@moondev.io"
EVALUATOR_PASSWORD = "cobol"


class FakeBucket:
    """Stands in for a Supabase storage bucket."""

    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.fail = fail
        self.objects: dict[str, tuple[bytes, str]] = {}

    def upload_file_from_bytes(self, data: bytes, dest_name: str, content_type: str = "application/octet-stream") -> dict:
        if self.fail:
            raise RuntimeError(f"bucket {self.name} refused {dest_name}")
        self.objects[dest_name] = (data, content_type)
        return {"path": dest_name}

    def get_public_url(self, file_path: str) -> str:
        return f"https://storage.test/{self.name}/{file_path}"


class RecordingMailSender(MailSender):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send(self, to_email: str, subject: str, message: str):
        if self.fail:
            raise ConnectionError("mail function unreachable")
        self.sent.append({"to": to_email, "subject": subject, "message": message})


def make_image(width: int = 200, height: int = 100, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    color = (30, 120, 200, 128) if mode == "RGBA" else (30, 120, 200)
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_zip() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("main.py", "print('hello')\n")
    return buffer.getvalue()


def submission_form(**overrides) -> dict:
    form = {
        "full_name": "Ada Lovelace",
        "phone": "+44 20 7946 0000",
        "location": "London",
        "email": DEVELOPER_EMAIL,
        "hobby": "knitting",
    }
    form.update(overrides)
    return form


def submission_files(avatar_name: str = "me.png", archive_name: str = "code.zip") -> dict:
    return {
        "profile_image": (avatar_name, make_image(), "image/png"),
        "source_code": (archive_name, make_zip(), "application/zip"),
    }


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def feed():
    return InMemoryChangeFeed()


@pytest.fixture
def mail_sender():
    return RecordingMailSender()


@pytest.fixture
def services(engine, feed, mail_sender):
    from app.service.db.postgres import create_db_and_tables

    create_db_and_tables(engine)
    return ServiceContext(
        engine=engine,
        store=PortalStore(engine, feed),
        identity=IdentityProvider(engine),
        avatars=FakeBucket("avatars"),
        source_code=FakeBucket("source-code"),
        feed=feed,
        notifier=NotificationDispatcher(mail_sender),
    )


@pytest.fixture
def developer(services):
    return create_account(services.engine, DEVELOPER_EMAIL, DEVELOPER_PASSWORD, Role.DEVELOPER)


@pytest.fixture
def evaluator(services):
    return create_account(services.engine, EVALUATOR_EMAIL, EVALUATOR_PASSWORD, Role.EVALUATOR)


@pytest.fixture
def client(services):
    app = get_application()
    app.state.services = services
    with TestClient(app) as client:
        yield client


def login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    # keep the cookie jar clean so each call picks its own identity
    client.cookies.clear()
    return response.json()["access_token"]


@pytest.fixture
def developer_headers(client, developer):
    token = login(client, DEVELOPER_EMAIL, DEVELOPER_PASSWORD)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def evaluator_headers(client, evaluator):
    token = login(client, EVALUATOR_EMAIL, EVALUATOR_PASSWORD)
    return {"Authorization": f"Bearer {token}"}
