"""Root conftest: shared test configuration and fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - The accrual system is never contacted: AccrualClient talks to
      FakeAccrualSystem through httpx.MockTransport
    - API tests override get_session / get_accrual_client on the FastAPI app
"""

import os

# Settings are read at import time, so the environment comes first
os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")
os.environ.setdefault("ACCRUAL_SYSTEM_ADDRESS", "http://accrual.test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-long-enough-for-hs256-signing")

from collections.abc import AsyncIterator, Awaitable, Callable  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, select  # noqa: E402

from gophermart.api.v1.dependencies import get_accrual_client  # noqa: E402
from gophermart.db import build_session_maker, get_session  # noqa: E402
from gophermart.main import app  # noqa: E402
from gophermart.models import Balance, Order, User, Withdrawal  # noqa: E402
from gophermart.services.external.accrual import AccrualClient  # noqa: E402
from gophermart.services.users.security import create_session_token  # noqa: E402

ACCRUAL_URL = "http://accrual.test"


class FakeAccrualSystem:
    """Scriptable stand-in for the accrual system `GET /api/orders/{number}`.

    Unknown numbers answer 204, like an accrual system that has not seen the
    order yet.
    """

    def __init__(self) -> None:
        self._answers: dict[str, tuple[int, Any, dict[str, str]]] = {}
        self._unreachable: dict[str, int] = {}
        self.requested: list[str] = []
        # Awaited with the order number before answering, while the caller waits
        self.during_request: Callable[[str], Awaitable[None]] | None = None

    def processed(self, number: str, accrual: float | int | str) -> None:
        self._answers[number] = (200, {"order": number, "status": "PROCESSED", "accrual": accrual}, {})

    def status(self, number: str, status: str) -> None:
        self._answers[number] = (200, {"order": number, "status": status}, {})

    def respond(self, number: str, status_code: int, body: Any = None, headers: dict[str, str] | None = None) -> None:
        self._answers[number] = (status_code, body, headers or {})

    def unreachable(self, number: str, times: int = 1_000) -> None:
        """Raise a connection error for the next `times` requests for number."""
        self._unreachable[number] = times

    def forget(self, number: str) -> None:
        self._answers.pop(number, None)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        number = request.url.path.rsplit("/", 1)[-1]
        self.requested.append(number)
        if self.during_request is not None:
            await self.during_request(number)

        if self._unreachable.get(number, 0) > 0:
            self._unreachable[number] -= 1
            raise httpx.ConnectError("Connection refused", request=request)

        if number not in self._answers:
            return httpx.Response(204)
        status_code, body, headers = self._answers[number]
        if body is None:
            return httpx.Response(status_code, headers=headers)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body, headers=headers)
        return httpx.Response(status_code, json=body, headers=headers)


@pytest.fixture
def accrual_system() -> FakeAccrualSystem:
    return FakeAccrualSystem()


@pytest.fixture
def accrual_client(accrual_system: FakeAccrualSystem) -> AccrualClient:
    return AccrualClient(base_url=ACCRUAL_URL, timeout=1.0, transport=httpx.MockTransport(accrual_system.handler))


@pytest.fixture
async def test_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory database on one shared connection, so every session sees the same data."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(test_engine)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Awaitable[int]]:
    """Insert a user with a balance directly (no bcrypt), returning the user id."""

    async def _make(login: str = "gopher", points: str | int = "0", with_balance: bool = True) -> int:
        async with session_factory() as s:
            user = User(login=login, password_hash="not-a-bcrypt-hash")
            s.add(user)
            await s.flush()
            assert user.id is not None
            if with_balance:
                s.add(Balance(user_id=user.id, points=Decimal(str(points))))
            await s.commit()
            return user.id

    return _make


class LedgerReader:
    """Reads ledger state through fresh sessions, bypassing any identity map."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def points(self, user_id: int) -> Decimal | None:
        async with self._session_factory() as s:
            result = await s.execute(select(Balance.points).where(Balance.user_id == user_id))
            return result.scalar_one_or_none()

    async def orders(self, number: str | None = None) -> list[Order]:
        async with self._session_factory() as s:
            statement = select(Order)
            if number is not None:
                statement = statement.where(Order.order_number == number)
            result = await s.execute(statement)
            return list(result.scalars().all())

    async def withdrawals(self, user_id: int) -> list[Withdrawal]:
        async with self._session_factory() as s:
            result = await s.execute(select(Withdrawal).where(Withdrawal.user_id == user_id))
            return list(result.scalars().all())


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession]) -> LedgerReader:
    return LedgerReader(session_factory)


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    accrual_client: AccrualClient,
) -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI test client with DB and accrual client dependencies overridden."""

    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_accrual_client] = lambda: accrual_client

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[int], dict[str, str]]:
    def _headers(user_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(user_id)}"}

    return _headers
