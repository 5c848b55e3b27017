# app/middleware/auth.py

from typing import Callable, Optional

from fastapi import Depends
from fastapi.requests import HTTPConnection

from app.config.setting import settings
from app.errors import AuthFailure
from app.models.account import Account, Role
from app.service.context import ServiceContext, get_services


def get_token(connection: HTTPConnection) -> Optional[str]:
    """Bearer token from the *Authorization* header, else the session cookie."""
    auth = connection.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    return connection.cookies.get(settings.ACCESS_TOKEN_COOKIE)


def resolve_account(connection: HTTPConnection, services: ServiceContext, role: Optional[Role] = None) -> Account:
    account = services.identity.get_current_user(get_token(connection))
    if account is None:
        raise AuthFailure("Not signed in")
    if role is not None and account.role != role:
        raise AuthFailure(f"{role.value} access required")
    return account


def get_current_account(
    connection: HTTPConnection,
    services: ServiceContext = Depends(get_services),
) -> Account:
    return resolve_account(connection, services)


def require_role(role: Role) -> Callable[..., Account]:
    """
    Dependency admitting only accounts with *role*. Anything else (no session,
    expired token, other role) raises AuthFailure, which redirects to /login.
    """
    def dependency(
        connection: HTTPConnection,
        services: ServiceContext = Depends(get_services),
    ) -> Account:
        return resolve_account(connection, services, role)

    return dependency


require_developer = require_role(Role.DEVELOPER)
require_evaluator = require_role(Role.EVALUATOR)
