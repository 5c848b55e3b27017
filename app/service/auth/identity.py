from datetime import timedelta
import logging
import uuid
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from app.config.setting import settings
from app.errors import InvalidCredentials
from app.models.account import Account, AccessToken
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


def create_access_token(account_id: str, ttl: int = settings.ACCESS_TOKEN_TTL) -> AccessToken:
    """Issue a new bearer token for *account_id*."""
    return AccessToken(
        id=str(uuid.uuid4()),
        exp=utcnow() + timedelta(seconds=ttl),
        account_id=account_id,
    )


class IdentityProvider:
    """Password sign-in and opaque bearer tokens stored next to the accounts."""

    def __init__(self, engine: Engine, token_ttl: int = settings.ACCESS_TOKEN_TTL):
        self.engine = engine
        self.token_ttl = token_ttl

    def sign_in(self, email: str, password: str) -> AccessToken:
        with Session(self.engine) as db:
            account = db.exec(select(Account).where(Account.email == email)).first()
            if not account or not bcrypt.verify(password, account.password):
                raise InvalidCredentials("Invalid credentials")

            token = create_access_token(account.id, self.token_ttl)
            db.add(token)
            db.commit()
            db.refresh(token)
            logger.info(f"Account {account.id} signed in")
            return token

    def get_current_user(self, token_id: Optional[str]) -> Optional[Account]:
        """Account owning *token_id*, or None for a missing, unknown or expired token."""
        if not token_id:
            return None
        with Session(self.engine) as db:
            token = db.get(AccessToken, token_id)
            if not token:
                return None
            if as_utc(token.exp) <= utcnow():
                db.delete(token)
                db.commit()
                return None
            return db.get(Account, token.account_id)

    def sign_out(self, token_id: Optional[str]):
        if not token_id:
            return
        with Session(self.engine) as db:
            token = db.get(AccessToken, token_id)
            if token:
                db.delete(token)
                db.commit()
