from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field


def _month_index(year: int, month: int) -> int:
    return year * 12 + month


@dataclass(frozen=True)
class InstallmentPlan:
    card_last4: str
    merchant: str
    monthly_amount: int
    total_months: int
    start_year: int
    start_month: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def _offset(self, year: int, month: int) -> int:
        return _month_index(year, month) - _month_index(self.start_year, self.start_month)

    def is_active(self, year: int, month: int) -> bool:
        return 0 <= self._offset(year, month) < self.total_months

    def months_remaining(self, year: int, month: int) -> int:
        offset = self._offset(year, month)
        if offset < 0:
            return self.total_months
        if offset >= self.total_months:
            return 0
        return self.total_months - offset


@dataclass(frozen=True)
class InstallmentWarning:
    message: str
    amount: int
    merchant: str
    card_last4: str
    remaining_months: int


def projected_warnings(
    plans: Iterable[InstallmentPlan], year: int, month: int
) -> list[InstallmentWarning]:
    """Installment charges due in the given month, largest first."""
    warnings = [
        InstallmentWarning(
            message=f"{month}월 할부 결제 예정",
            amount=plan.monthly_amount,
            merchant=plan.merchant,
            card_last4=plan.card_last4,
            remaining_months=plan.months_remaining(year, month),
        )
        for plan in plans
        if plan.is_active(year, month)
    ]
    return sorted(warnings, key=lambda w: w.amount, reverse=True)
