"""FastAPI dependencies for service injection and authentication."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gophermart.config import settings
from gophermart.db import get_session
from gophermart.services.exceptions import AuthenticationError
from gophermart.services.external.accrual import AccrualClient
from gophermart.services.ledger.withdrawal_service import WithdrawalService
from gophermart.services.orders.order_service import OrderService
from gophermart.services.users.security import decode_session_token
from gophermart.services.users.user_service import UserService

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_accrual_client() -> AccrualClient:
    """Get an AccrualClient for the configured accrual system."""
    return AccrualClient()


async def get_order_service(
    session: SessionDep,
    accrual_client: Annotated[AccrualClient, Depends(get_accrual_client)],
) -> OrderService:
    """Get an OrderService instance with the current session."""
    return OrderService(session, accrual_client)


async def get_withdrawal_service(session: SessionDep) -> WithdrawalService:
    """Get a WithdrawalService instance with the current session."""
    return WithdrawalService(session)


async def get_user_service(session: SessionDep) -> UserService:
    """Get a UserService instance with the current session."""
    return UserService(session)


def get_current_user_id(request: Request) -> int:
    """Resolve the authenticated user from the session cookie or a Bearer header."""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer" and credentials:
            token = credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return decode_session_token(token)
    except AuthenticationError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")


# Type aliases for cleaner endpoint signatures
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
WithdrawalServiceDep = Annotated[WithdrawalService, Depends(get_withdrawal_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CurrentUserDep = Annotated[int, Depends(get_current_user_id)]
