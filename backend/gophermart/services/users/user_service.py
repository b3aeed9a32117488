"""User registration and authentication service."""

import asyncio

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from gophermart.models.user import User
from gophermart.services.exceptions import AuthenticationError, ConflictError
from gophermart.services.ledger.ledger_store import LedgerStore
from gophermart.services.users.security import hash_password, verify_password

logger = structlog.get_logger(__name__)


class LoginTaken(ConflictError):
    """Login is already registered."""

    pass


class UserService:
    """Service for user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = LedgerStore(session)

    async def register(self, login: str, password: str) -> User:
        """Create a user together with an empty balance.

        Raises:
            LoginTaken: If the login is already registered
        """
        # bcrypt is CPU-bound: run it in a worker thread
        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(login=login, password_hash=password_hash)
        async with self.store.transaction():
            self.session.add(user)
            try:
                await self.session.flush()
            except IntegrityError as e:
                raise LoginTaken(f"Login {login!r} is already taken") from e
            assert user.id is not None
            await self.store.create_balance(user.id)

        logger.info("User registered", user_id=user.id, login=login)
        return user

    async def authenticate(self, login: str, password: str) -> User:
        """Return the user for a valid login/password pair.

        Raises:
            AuthenticationError: If the login is unknown or the password is wrong
        """
        result = await self.session.execute(select(User).where(User.login == login))
        user = result.scalars().first()
        if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise AuthenticationError("Invalid login or password")
        return user
