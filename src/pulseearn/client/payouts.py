"""Ambassador payout form: local pre-check, then the server decides."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog

from pulseearn.client.errors import ClientError, Result
from pulseearn.payouts.validation import (
    PLATFORM_MINIMUM,
    PayoutValidationError,
    validate_payout_amount,
    validate_payout_details,
)

if TYPE_CHECKING:
    from pulseearn.client.api import ApiClient
    from pulseearn.client.auth_coordinator import Notifier

logger = structlog.get_logger()


class PayoutForm:
    """
    Holds the last fetched balance and submits payout requests.

    A request that fails the shared validation rules never reaches the network.
    The server can still reject a request that passed locally, e.g. when the
    balance changed in the meantime.
    """

    def __init__(self, api: ApiClient, notifier: Notifier | None = None) -> None:
        self.api = api
        self.notifier = notifier
        self.balance: dict[str, Any] | None = None
        self.error: str | None = None
        self.submitting = False

    @property
    def payable_balance(self) -> Decimal:
        return Decimal(str((self.balance or {}).get("payable_balance", "0")))

    @property
    def minimum(self) -> Decimal:
        return Decimal(str((self.balance or {}).get("minimum_payout", PLATFORM_MINIMUM)))

    async def load_balance(self) -> Result[dict[str, Any]]:
        try:
            self.balance = await self.api.get("/api/v1/payouts/balance")
        except ClientError as e:
            self.error = e.message
            return Result.failure(e)
        return Result.success(self.balance)

    def validate(self, amount: Decimal | float | str, method: str, details: dict[str, Any] | None) -> str | None:
        """Return the first rule violation message, or None."""
        try:
            validate_payout_amount(amount, self.payable_balance, self.minimum)
            validate_payout_details(method, details)
        except PayoutValidationError as e:
            return str(e)
        return None

    async def submit(
        self,
        amount: Decimal | float | str,
        method: str,
        details: dict[str, Any] | None = None,
    ) -> Result[dict[str, Any]]:
        self.error = self.validate(amount, method, details)
        if self.error is not None:
            self._notify_error(self.error)
            return Result.failure(self.error)

        self.submitting = True
        try:
            payout = await self.api.post(
                "/api/v1/payouts",
                {"amount": str(amount), "payout_method": method, "payout_details": details},
            )
        except ClientError as e:
            self.error = e.message
            logger.info("payout_rejected_by_server", error=e.message)
            self._notify_error(e.message)
            return Result.failure(e)
        finally:
            self.submitting = False

        if self.notifier is not None:
            self.notifier.success("Payout request submitted successfully")
        await self.load_balance()
        return Result.success(payout)

    def _notify_error(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.error(message)
