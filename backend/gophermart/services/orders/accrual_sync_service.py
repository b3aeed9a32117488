"""Accrual reconciliation for orders still pending in the ledger.

Orders stored as NEW or PROCESSING are re-queried against the accrual system;
final answers are applied through LedgerStore.apply_accrual, which credits an
order's points at most once.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gophermart.services.external.accrual import (
    AccrualClient,
    AccrualNetworkError,
    AccrualResult,
    AccrualServiceError,
)
from gophermart.services.ledger.ledger_store import LedgerStore
from gophermart.services.orders.order_service import resolve_accrual
from gophermart.utils.request_retry import RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

ACCRUAL_RETRY_CONFIG = RequestRetryConfig(max_attempts=3, min_wait=0.5, max_wait=5.0)


@dataclass
class SyncResult:
    """Counters for one reconciliation pass."""

    checked: int = 0
    updated: int = 0
    credited: int = 0
    failed: int = 0
    rate_limited: bool = False
    retry_after: int | None = None


class AccrualSyncService:
    """Service that pulls status changes for pending orders."""

    def __init__(
        self,
        session: AsyncSession,
        accrual_client: AccrualClient,
        retry_config: RequestRetryConfig | None = None,
    ):
        self.store = LedgerStore(session)
        self.accrual_client = accrual_client
        self.retry_config = retry_config or ACCRUAL_RETRY_CONFIG

    async def _query(self, order_number: str) -> AccrualResult | None:
        """Query the accrual system, retrying only when it could not be reached."""
        async for attempt in get_request_retrying(self.retry_config, retry_on=(AccrualNetworkError,)):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying accrual system request",
                        order_number=order_number,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self.accrual_client.query(order_number)
        raise RuntimeError("Unreachable")

    async def sync_pending(self, limit: int = 50) -> SyncResult:
        """Reconcile up to `limit` pending orders, oldest first.

        A rate-limit answer stops the pass; the remaining orders are picked up
        by the next one.
        """
        orders = await self.store.list_pending_orders(limit)
        await self.store.release_snapshot()

        result = SyncResult()
        for order in orders:
            assert order.id is not None
            result.checked += 1
            try:
                answer = await self._query(order.order_number)
            except AccrualServiceError as e:
                if e.status_code == 429:
                    logger.warning("Accrual system rate limit hit, stopping pass", retry_after=e.retry_after)
                    result.rate_limited = True
                    result.retry_after = e.retry_after
                    break
                logger.error(
                    "Accrual system query failed",
                    order_number=order.order_number,
                    status_code=e.status_code,
                    error=str(e),
                )
                result.failed += 1
                continue

            if answer is None:
                continue
            status, accrual = resolve_accrual(answer)
            if status == order.status and accrual is None:
                continue

            async with self.store.transaction():
                applied = await self.store.apply_accrual(order.id, order.user_id, status, accrual)

            if applied:
                result.updated += 1
                if accrual is not None:
                    result.credited += 1
                logger.info(
                    "Order accrual updated",
                    order_number=order.order_number,
                    status=status,
                    accrual=str(accrual) if accrual is not None else None,
                )

        logger.info(
            "Accrual sync pass finished",
            checked=result.checked,
            updated=result.updated,
            credited=result.credited,
            failed=result.failed,
        )
        return result
