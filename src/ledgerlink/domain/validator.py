"""Payload validator - structural and arithmetic checks before submission."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .models import DocumentKind
from .transformer import EXPENSE_LINE, SALES_LINE

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")

REQUIRED_FIELDS = {
    DocumentKind.INVOICE: ("CustomerRef", "Line"),
    DocumentKind.RECEIPT: ("EntityRef", "AccountRef", "PaymentType", "Line"),
}

SUBJECTS = {
    DocumentKind.INVOICE: "Invoice",
    DocumentKind.RECEIPT: "Receipt",
}


def _decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class PayloadValidator:
    """Validates transformed payloads.

    Missing fields are hard failures and are collected before raising.
    Amount mismatches beyond ``tolerance`` are returned as warnings (and
    logged when ``warn_on_mismatch`` is set) but never block submission.
    """

    def __init__(
        self,
        tolerance: Decimal | float | str = DEFAULT_TOLERANCE,
        warn_on_mismatch: bool = True,
    ) -> None:
        self.tolerance = Decimal(str(tolerance))
        self.warn_on_mismatch = warn_on_mismatch

    def validate(self, payload: dict[str, Any], kind: DocumentKind) -> list[str]:
        """Validate payload, returning non-fatal warnings.

        Raises ValidationError with every collected reason.
        """
        errors: list[str] = []
        warnings: list[str] = []

        for name in REQUIRED_FIELDS[kind]:
            if not payload.get(name):
                errors.append(f"Missing required field: {name}")

        lines = payload.get("Line")
        if isinstance(lines, list) and lines:
            for index, line in enumerate(lines):
                self._check_line(index, line, errors, warnings)
            if kind == DocumentKind.RECEIPT:
                self._check_total(payload, lines, warnings)
        else:
            errors.append("Missing or invalid Line items array")

        if errors:
            raise ValidationError(errors, subject=SUBJECTS[kind])

        return warnings

    def _check_line(
        self, index: int, line: Any, errors: list[str], warnings: list[str]
    ) -> None:
        if not isinstance(line, dict):
            errors.append(f"Line item {index}: Invalid line")
            return

        detail_type = line.get("DetailType")
        if detail_type not in (SALES_LINE, EXPENSE_LINE):
            return

        amount = _decimal(line.get("Amount"))
        if amount is None:
            errors.append(f"Line item {index}: Missing Amount")
            return

        if detail_type != SALES_LINE:
            return

        detail = line.get(SALES_LINE) or {}
        qty = _decimal(detail.get("Qty")) or Decimal(1)
        unit_price = _decimal(detail.get("UnitPrice")) or amount
        calculated = qty * unit_price
        if abs(calculated - amount) > self.tolerance:
            self._warn(
                warnings,
                f"Line item {index}: amount mismatch "
                f"(calculated {calculated}, declared {amount})",
            )

    def _check_total(
        self, payload: dict[str, Any], lines: list[Any], warnings: list[str]
    ) -> None:
        total = _decimal(payload.get("TotalAmt"))
        if total is None:
            return
        amounts = [
            _decimal(line.get("Amount")) or Decimal(0)
            for line in lines
            if isinstance(line, dict)
        ]
        line_sum = sum(amounts, Decimal(0))
        if abs(line_sum - total) > self.tolerance:
            self._warn(
                warnings,
                f"Total mismatch (lines {line_sum}, declared {total})",
            )

    def _warn(self, warnings: list[str], message: str) -> None:
        warnings.append(message)
        if self.warn_on_mismatch:
            logger.warning(f"Warning: {message}")
