"""Payout request validation shared by the API and the client pre-check.

Order of checks for an amount: positive, platform minimum, then available
balance. A request that is both under the minimum and over the balance is
reported as under the minimum.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

PLATFORM_MINIMUM = Decimal("50.00")

# Payout method name -> detail keys that must be present and non-empty
REQUIRED_DETAILS: dict[str, tuple[str, ...]] = {
    "PayPal": ("email",),
    "Bank Transfer": ("account_name", "account_number", "bank_name"),
    "Manual": (),
}


class PayoutValidationError(ValueError):
    """A payout request failed validation. ``code`` identifies the rule."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Coerce to a two-decimal Decimal without float artefacts."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"${to_money(value):,.2f}"


def parse_amount(value: Decimal | float | int | str) -> Decimal:
    """Read a user-entered amount as money. Text, NaN and infinities are rejected."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise PayoutValidationError("invalid_amount", "Payout amount must be a number") from e
    if not amount.is_finite():
        raise PayoutValidationError("invalid_amount", "Payout amount must be a number")
    return to_money(amount)


def validate_payout_amount(
    amount: Decimal | float | str,
    payable_balance: Decimal | float,
    minimum: Decimal | float = PLATFORM_MINIMUM,
) -> Decimal:
    """Validate an amount against the minimum and the balance. Returns the amount as money.

    Raises:
        PayoutValidationError: with code ``invalid_amount`` (also for
            non-numeric input), ``below_minimum`` or ``insufficient_balance``.
    """
    amount = parse_amount(amount)
    minimum = to_money(minimum)
    balance = to_money(payable_balance)
    if amount <= 0:
        raise PayoutValidationError("invalid_amount", "Payout amount must be greater than zero")
    if amount < minimum:
        raise PayoutValidationError("below_minimum", f"Minimum payout amount is {format_money(minimum)}")
    if amount > balance:
        raise PayoutValidationError(
            "insufficient_balance",
            f"Insufficient balance. Your available balance is {format_money(balance)}",
        )
    return amount


def validate_payout_details(method: str, details: dict[str, Any] | None) -> None:
    """Check the per-method details (PayPal email, bank account fields)."""
    if method not in REQUIRED_DETAILS:
        raise PayoutValidationError("invalid_method", "Invalid payout method")
    details = details or {}
    missing = [key for key in REQUIRED_DETAILS[method] if not str(details.get(key) or "").strip()]
    if missing:
        raise PayoutValidationError(
            "missing_details",
            f"Missing payout details for {method}: {', '.join(missing)}",
        )
