"""
Domain: purchase payment plans.

A purchase is either paid in full or split into a deposit plus monthly
installments. Rules:

- Installments need a deposit in (0, total] and at least 2 months.
- monthly_amount = ceil((total - deposit) / max(1, months))
- The plan is recorded on the transaction as a "[PAYMENT PLAN]" note block.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from .errors import InvalidArgumentError
from .money import format_money

MIN_INSTALLMENT_MONTHS = 2
PLAN_NOTE_HEADER = "[PAYMENT PLAN]"


class PaymentMode(str, Enum):
    FULL = "full"
    INSTALLMENTS = "installments"


def deposit_from_percent(total: Decimal, percent: Decimal) -> Decimal:
    """Deposit for a percentage of total, clamped to 0..100 and rounded to whole units."""

    pct = min(Decimal("100"), max(Decimal("0"), percent))
    return (pct / Decimal("100") * total).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class PaymentPlan:
    mode: PaymentMode
    deposit: Optional[Decimal] = None
    months: int = 0
    start_date: Optional[date] = None

    @staticmethod
    def full() -> "PaymentPlan":
        return PaymentPlan(mode=PaymentMode.FULL)

    @staticmethod
    def installments(deposit: Decimal, months: int, start_date: Optional[date] = None) -> "PaymentPlan":
        return PaymentPlan(
            mode=PaymentMode.INSTALLMENTS,
            deposit=deposit,
            months=months,
            start_date=start_date,
        )

    @property
    def is_installments(self) -> bool:
        return self.mode is PaymentMode.INSTALLMENTS

    def validate(self, total: Decimal) -> None:
        if not self.is_installments:
            return
        if self.deposit is None or self.deposit <= 0:
            raise InvalidArgumentError("Installment deposit must be greater than zero")
        if self.deposit > total:
            raise InvalidArgumentError(
                f"Installment deposit {self.deposit} exceeds purchase total {total}"
            )
        if self.months < MIN_INSTALLMENT_MONTHS:
            raise InvalidArgumentError(
                f"Installment plans need at least {MIN_INSTALLMENT_MONTHS} months, got {self.months}"
            )

    def amount_due_now(self, total: Decimal) -> Decimal:
        """What the buyer pays at purchase time: the deposit, or everything."""

        if self.is_installments and self.deposit is not None:
            return self.deposit
        return total

    def monthly_amount(self, total: Decimal) -> Decimal:
        if not self.is_installments:
            return Decimal("0")
        outstanding = max(Decimal("0"), total - self.amount_due_now(total))
        return (outstanding / max(1, self.months)).quantize(Decimal("1"), rounding=ROUND_CEILING)

    def render_note(self, total: Decimal, user_note: str = "") -> str:
        """Build the notes text stored on the transaction."""

        lines = [PLAN_NOTE_HEADER]
        if self.is_installments:
            lines.append("Mode: Installments")
            lines.append(f"Deposit: {format_money(self.amount_due_now(total))}")
            lines.append(f"Months: {self.months}")
            lines.append(f"Est. Monthly: {format_money(self.monthly_amount(total))}")
            if self.start_date is not None:
                lines.append(f"Start: {self.start_date.isoformat()}")
        else:
            lines.append("Mode: Pay in Full")

        block = "\n".join(lines)
        note = user_note.strip()
        return f"{note}\n\n{block}" if note else block


__all__ = [
    "MIN_INSTALLMENT_MONTHS",
    "PLAN_NOTE_HEADER",
    "PaymentMode",
    "PaymentPlan",
    "deposit_from_percent",
]
