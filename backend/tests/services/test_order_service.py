"""OrderService: tests for order submission.

Tests cover:
    - Invalid numbers are rejected before any I/O
    - Re-submitting an own order is idempotent (no second query, no second credit)
    - Another user's order number is a conflict
    - PROCESSED answers store the order and credit the balance together
    - REGISTERED / 204 answers are stored as NEW, INVALID without credit
    - Accrual system failures persist nothing
    - A failing credit leaves no order behind
    - Losing the insert race to a concurrent submission is a conflict
"""

from decimal import Decimal

import pytest

from gophermart.models import OrderStatus
from gophermart.services.ledger.exceptions import BalanceNotFound
from gophermart.services.ledger.ledger_store import LedgerStore
from gophermart.services.orders.order_service import OrderService, SubmissionOutcome, resolve_accrual


@pytest.mark.asyncio
async def test_invalid_number_is_rejected_without_query(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user()
    service = OrderService(session, accrual_client)

    outcome = await service.submit(user_id, "1234567890")

    assert outcome is SubmissionOutcome.INVALID_FORMAT
    assert accrual_system.requested == []
    assert await ledger.orders() == []


@pytest.mark.asyncio
async def test_processed_order_is_credited(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user(points="0")
    accrual_system.processed("12345678903", 500)
    service = OrderService(session, accrual_client)

    outcome = await service.submit(user_id, "12345678903")

    assert outcome is SubmissionOutcome.ACCEPTED
    [order] = await ledger.orders("12345678903")
    assert order.user_id == user_id
    assert order.status is OrderStatus.PROCESSED
    assert order.accrual == Decimal("500.00")
    assert await ledger.points(user_id) == Decimal("500.00")


@pytest.mark.asyncio
async def test_number_is_trimmed_before_validation(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user()
    service = OrderService(session, accrual_client)

    outcome = await service.submit(user_id, "  12345678903\n")

    assert outcome is SubmissionOutcome.ACCEPTED
    assert accrual_system.requested == ["12345678903"]
    assert len(await ledger.orders("12345678903")) == 1


@pytest.mark.asyncio
async def test_resubmission_is_idempotent(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user(points="0")
    accrual_system.processed("12345678903", 100)
    service = OrderService(session, accrual_client)

    first = await service.submit(user_id, "12345678903")
    second = await service.submit(user_id, "12345678903")

    assert first is SubmissionOutcome.ACCEPTED
    assert second is SubmissionOutcome.ALREADY_OWNED
    assert accrual_system.requested == ["12345678903"]
    assert len(await ledger.orders("12345678903")) == 1
    assert await ledger.points(user_id) == Decimal("100.00")


@pytest.mark.asyncio
async def test_foreign_order_is_a_conflict(session, accrual_client, accrual_system, make_user, ledger):
    owner = await make_user(login="owner")
    other = await make_user(login="other")
    service = OrderService(session, accrual_client)

    assert await service.submit(owner, "79927398713") is SubmissionOutcome.ACCEPTED
    outcome = await service.submit(other, "79927398713")

    assert outcome is SubmissionOutcome.CONFLICT
    [order] = await ledger.orders("79927398713")
    assert order.user_id == owner


@pytest.mark.asyncio
async def test_unknown_order_is_stored_as_new(session, accrual_client, make_user, ledger):
    user_id = await make_user(points="7")
    service = OrderService(session, accrual_client)

    assert await service.submit(user_id, "9278923470") is SubmissionOutcome.ACCEPTED

    [order] = await ledger.orders("9278923470")
    assert order.status is OrderStatus.NEW
    assert order.accrual is None
    assert await ledger.points(user_id) == Decimal("7.00")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("accrual_status", "stored"),
    [
        ("REGISTERED", OrderStatus.NEW),
        ("PROCESSING", OrderStatus.PROCESSING),
        ("INVALID", OrderStatus.INVALID),
    ],
)
async def test_status_without_points(session, accrual_client, accrual_system, make_user, ledger, accrual_status, stored):
    user_id = await make_user(points="3")
    accrual_system.status("2377225624", accrual_status)
    service = OrderService(session, accrual_client)

    assert await service.submit(user_id, "2377225624") is SubmissionOutcome.ACCEPTED

    [order] = await ledger.orders("2377225624")
    assert order.status is stored
    assert order.accrual is None
    assert await ledger.points(user_id) == Decimal("3.00")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_accrual_failure_persists_nothing(session, accrual_client, accrual_system, make_user, ledger, status_code):
    user_id = await make_user(points="0")
    accrual_system.respond("12345678903", status_code)
    service = OrderService(session, accrual_client)

    outcome = await service.submit(user_id, "12345678903")

    assert outcome is SubmissionOutcome.INTEGRATION_FAILURE
    assert await ledger.orders() == []
    assert await ledger.points(user_id) == Decimal("0.00")


@pytest.mark.asyncio
async def test_unreachable_accrual_system_persists_nothing(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user()
    accrual_system.unreachable("12345678903")
    service = OrderService(session, accrual_client)

    assert await service.submit(user_id, "12345678903") is SubmissionOutcome.INTEGRATION_FAILURE
    assert await ledger.orders() == []


@pytest.mark.asyncio
async def test_failure_can_be_retried(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user(points="0")
    accrual_system.respond("12345678903", 500)
    service = OrderService(session, accrual_client)
    assert await service.submit(user_id, "12345678903") is SubmissionOutcome.INTEGRATION_FAILURE

    accrual_system.processed("12345678903", "42.5")

    assert await service.submit(user_id, "12345678903") is SubmissionOutcome.ACCEPTED
    assert await ledger.points(user_id) == Decimal("42.50")


@pytest.mark.asyncio
async def test_failed_credit_leaves_no_order(session, accrual_client, accrual_system, make_user, ledger):
    user_id = await make_user(with_balance=False)
    accrual_system.processed("12345678903", 10)
    service = OrderService(session, accrual_client)

    with pytest.raises(BalanceNotFound):
        await service.submit(user_id, "12345678903")

    assert await ledger.orders() == []


@pytest.mark.asyncio
async def test_list_orders_oldest_first(session, accrual_client, accrual_system, make_user):
    user_id = await make_user()
    other = await make_user(login="other")
    service = OrderService(session, accrual_client)
    for number in ("12345678903", "79927398713", "9278923470"):
        await service.submit(user_id, number)
    await service.submit(other, "2377225624")

    orders = await service.list_orders(user_id)

    assert [order.order_number for order in orders] == ["12345678903", "79927398713", "9278923470"]


def test_resolve_accrual_without_answer():
    assert resolve_accrual(None) == (OrderStatus.NEW, None)


@pytest.mark.asyncio
@pytest.mark.parametrize("same_user", [False, True])
async def test_number_registered_during_query_is_a_conflict(
    session, session_factory, accrual_client, accrual_system, make_user, ledger, same_user
):
    user_id = await make_user(points="0")
    racer = user_id if same_user else await make_user(login="racer")
    accrual_system.processed("12345678903", 500)

    async def register_concurrently(number: str) -> None:
        async with session_factory() as other_session:
            store = LedgerStore(other_session)
            async with store.transaction():
                await store.insert_order(racer, number, status=OrderStatus.NEW)

    accrual_system.during_request = register_concurrently
    service = OrderService(session, accrual_client)

    outcome = await service.submit(user_id, "12345678903")

    assert outcome is SubmissionOutcome.CONFLICT
    [order] = await ledger.orders("12345678903")
    assert order.user_id == racer
    assert order.status is OrderStatus.NEW
    assert await ledger.points(user_id) == Decimal("0.00")
