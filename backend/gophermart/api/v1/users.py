"""Registration and login endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, Response, status

from gophermart.api.v1.dependencies import UserServiceDep
from gophermart.api.v1.schemas import CredentialsRequest, StatusResponse
from gophermart.config import settings
from gophermart.services.exceptions import AuthenticationError
from gophermart.services.users.security import create_session_token
from gophermart.services.users.user_service import LoginTaken

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["users"])


def _start_session(response: Response, user_id: int) -> None:
    """Attach the session token as an HttpOnly cookie and an Authorization header."""
    token = create_session_token(user_id)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
    )
    response.headers["Authorization"] = f"Bearer {token}"


@router.post("/user/register", response_model=StatusResponse, operation_id="registerUser")
async def register(
    credentials: CredentialsRequest,
    service: UserServiceDep,
    response: Response,
) -> StatusResponse:
    """Register a user and log them in."""
    try:
        user = await service.register(credentials.login, credentials.password)
    except LoginTaken:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Login already taken")

    assert user.id is not None
    _start_session(response, user.id)
    return StatusResponse(status="ok", message=f"User {user.login} registered")


@router.post("/user/login", response_model=StatusResponse, operation_id="loginUser")
async def login(
    credentials: CredentialsRequest,
    service: UserServiceDep,
    response: Response,
) -> StatusResponse:
    """Authenticate a user by login and password."""
    try:
        user = await service.authenticate(credentials.login, credentials.password)
    except AuthenticationError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login or password")

    assert user.id is not None
    _start_session(response, user.id)
    return StatusResponse(status="ok", message=f"User {user.login} authenticated")
