"""Multi-currency aggregation into one account snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from .errors import ValidationError
from .snapshots import FinancialSnapshot


@dataclass(frozen=True)
class AccountSnapshot:
    account_id: int
    date: date
    financial: FinancialSnapshot
    financial_other_currencies: tuple[FinancialSnapshot, ...] = field(default_factory=tuple)


def aggregate_account_snapshot(
    account_id: int,
    day: date,
    snapshots: Iterable[FinancialSnapshot],
    *,
    default_currency_id: int,
) -> AccountSnapshot:
    """Pick the busiest currency as primary and keep the rest in input order.

    The primary snapshot has the highest movement counter; ties go to the lowest
    currency id.
    """

    items = list(snapshots)
    for snapshot in items:
        if snapshot.account_id != account_id or snapshot.date != day:
            raise ValidationError(
                f"Snapshot {snapshot.key} does not belong to account {account_id} on {day}"
            )
    if not items:
        return AccountSnapshot(
            account_id=account_id,
            date=day,
            financial=FinancialSnapshot.empty(account_id, default_currency_id, day),
        )

    primary = min(items, key=lambda s: (-s.movement_counter, s.currency_id))
    others = tuple(s for s in items if s is not primary)
    return AccountSnapshot(
        account_id=account_id,
        date=day,
        financial=primary,
        financial_other_currencies=others,
    )


__all__ = ["AccountSnapshot", "aggregate_account_snapshot"]
