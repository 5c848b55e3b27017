from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Request,
    Response,
    status as http_status,
)
from pydantic import BaseModel, Field

from app.config.setting import settings
from app.errors import InvalidCredentials
from app.middleware.auth import get_current_account, get_token
from app.models.account import Account, AccountLogin, AccountMetadata, Role
from app.service.context import ServiceContext, get_services

router = APIRouter(prefix="/auth", tags=["Authentication"])

# ──────────────────────────────────────────────────────────────────────────────
# Pydantic schemas for docs / responses
# ──────────────────────────────────────────────────────────────────────────────
class TokenResponse(BaseModel):
    """Returned by /login."""
    access_token: str = Field(
        ...,
        examples=["1f0c0fef-b585-4db7-a3bd-c5a3975b14f1"],
        description="Opaque bearer token",
    )
    token_type: str = Field("bearer", examples=["bearer"])
    role: Role


class MessageResponse(BaseModel):
    message: str = Field(..., examples=["Logged out successfully"])


class ErrorResponse(BaseModel):
    detail: str = Field(..., examples=["Invalid credentials"])


def set_session_cookie(response: Response, token_id: str):
    response.set_cookie(
        settings.ACCESS_TOKEN_COOKIE,
        token_id,
        max_age=settings.ACCESS_TOKEN_TTL,
        httponly=True,
        samesite="lax",
    )


# ──────────────────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────────────────
@router.post(
    "/login",
    summary="Authenticate and obtain a token",
    response_model=TokenResponse,
    status_code=http_status.HTTP_200_OK,
    responses={401: {"model": ErrorResponse}},
)
async def login(creds: AccountLogin, response: Response, services: ServiceContext = Depends(get_services)):
    """
    Verify credentials and return a **bearer token**. The token is also set
    as a cookie so the HTML pages and the live socket pick it up.
    """
    try:
        token = services.identity.sign_in(creds.email, creds.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    account = services.store.get_account(token.account_id)
    set_session_cookie(response, token.id)
    return TokenResponse(access_token=token.id, role=account.role)


@router.get(
    "/whoami",
    summary="Get the account behind the token",
    response_model=AccountMetadata,
)
async def whoami(account: Account = Depends(get_current_account)):
    return AccountMetadata(id=account.id, email=account.email, role=account.role)


@router.post(
    "/logout",
    summary="Invalidate the current token",
    response_model=MessageResponse,
    status_code=http_status.HTTP_200_OK,
)
async def logout(request: Request, response: Response, services: ServiceContext = Depends(get_services)):
    """
    Delete the bearer token presented in the *Authorization* header or cookie.
    """
    services.identity.sign_out(get_token(request))
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
    return MessageResponse(message="Logged out successfully")
