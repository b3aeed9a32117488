"""Accrual system API client."""

from decimal import Decimal

import httpx
import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from gophermart.config import settings
from gophermart.models.enums import AccrualStatus

logger = structlog.get_logger(__name__)


class AccrualResult(BaseModel):
    """Order status as reported by the accrual system."""

    order: str
    status: AccrualStatus
    accrual: Decimal | None = Field(default=None, ge=0)


class AccrualServiceError(Exception):
    """Accrual system call failed or answered with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None, retry_after: int | None = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)


class AccrualNetworkError(AccrualServiceError):
    """Accrual system could not be reached (connect error, timeout).

    The only failure worth retrying right away.
    """

    pass


def _parse_retry_after(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value.strip())


class AccrualClient:
    """Client for the accrual system `GET /api/orders/{number}` endpoint.

    Every call is a single bounded request: no retries happen here. Callers
    decide whether a failure is worth trying again.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.accrual_system_address).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.accrual_timeout
        self._transport = transport

    async def query(self, order_number: str) -> AccrualResult | None:
        """Fetch the accrual status of an order.

        Returns:
            AccrualResult on 200, or None on 204 (order not known to the accrual system yet)

        Raises:
            AccrualServiceError: On any other status code or an unreadable payload
            AccrualNetworkError: If the request did not complete
        """
        url = f"{self._base_url}/api/orders/{order_number}"

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise AccrualNetworkError(f"Accrual system request failed: {e!r}") from e

        if response.status_code == httpx.codes.NO_CONTENT:
            logger.debug("Order not registered in accrual system", order_number=order_number)
            return None

        if response.status_code == httpx.codes.OK:
            try:
                result = AccrualResult.model_validate(response.json())
            except (ValueError, PydanticValidationError) as e:
                raise AccrualServiceError(f"Accrual system returned an invalid payload: {e}") from e
            logger.debug(
                "Accrual system answered",
                order_number=order_number,
                status=result.status,
                accrual=str(result.accrual) if result.accrual is not None else None,
            )
            return result

        error_body = response.text[:500] if response.text else "No response body"
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise AccrualServiceError(
                "Accrual system rate limit exceeded",
                status_code=response.status_code,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        raise AccrualServiceError(
            f"Accrual system returned status {response.status_code}: {error_body}",
            status_code=response.status_code,
        )
