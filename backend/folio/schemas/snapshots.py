"""Pydantic schemas for snapshots and cascade results."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from folio.services import AccountSnapshot, CalculationWarning, CascadeResult, FinancialSnapshot


class FinancialSnapshotSchema(BaseModel):
    account_id: int
    currency_id: int
    date: dt.date
    movement_counter: int
    realized_gains: Decimal
    realized_percentage: Decimal
    unrealized_gains: Decimal
    unrealized_percentage: Decimal
    invested: Decimal
    commissions: Decimal
    fees: Decimal
    deposited: Decimal
    withdrawn: Decimal
    dividends_received: Decimal
    options_income: Decimal
    other_income: Decimal
    open_trades: bool
    net_cash_flow: Decimal

    @classmethod
    def from_domain(cls, snapshot: FinancialSnapshot) -> "FinancialSnapshotSchema":
        return cls(
            account_id=snapshot.account_id,
            currency_id=snapshot.currency_id,
            date=snapshot.date,
            movement_counter=snapshot.movement_counter,
            realized_gains=snapshot.realized_gains,
            realized_percentage=snapshot.realized_percentage,
            unrealized_gains=snapshot.unrealized_gains,
            unrealized_percentage=snapshot.unrealized_percentage,
            invested=snapshot.invested,
            commissions=snapshot.commissions,
            fees=snapshot.fees,
            deposited=snapshot.deposited,
            withdrawn=snapshot.withdrawn,
            dividends_received=snapshot.dividends_received,
            options_income=snapshot.options_income,
            other_income=snapshot.other_income,
            open_trades=snapshot.open_trades,
            net_cash_flow=snapshot.net_cash_flow,
        )


class AccountSnapshotSchema(BaseModel):
    account_id: int
    date: dt.date
    financial: FinancialSnapshotSchema
    financial_other_currencies: list[FinancialSnapshotSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, snapshot: AccountSnapshot) -> "AccountSnapshotSchema":
        return cls(
            account_id=snapshot.account_id,
            date=snapshot.date,
            financial=FinancialSnapshotSchema.from_domain(snapshot.financial),
            financial_other_currencies=[
                FinancialSnapshotSchema.from_domain(item) for item in snapshot.financial_other_currencies
            ],
        )


class CalculationWarningSchema(BaseModel):
    date: dt.date | None = None
    kind: str = Field(..., examples=["InconsistentStateError"])
    message: str

    @classmethod
    def from_domain(cls, warning: CalculationWarning) -> "CalculationWarningSchema":
        return cls(date=warning.date, kind=warning.kind, message=warning.message)


class CascadeResultSchema(BaseModel):
    account_id: int
    currency_id: int
    start_date: dt.date
    written: int
    unchanged: int
    snapshots: list[FinancialSnapshotSchema]
    warnings: list[CalculationWarningSchema]

    @classmethod
    def from_domain(cls, result: CascadeResult) -> "CascadeResultSchema":
        return cls(
            account_id=result.account_id,
            currency_id=result.currency_id,
            start_date=result.start_date,
            written=result.written,
            unchanged=result.unchanged,
            snapshots=[FinancialSnapshotSchema.from_domain(item) for item in result.snapshots],
            warnings=[CalculationWarningSchema.from_domain(item) for item in result.warnings],
        )


class RecalculateRequest(BaseModel):
    date: dt.date = Field(..., description="First snapshot date to recompute.")


class MovementRecordedResponse(BaseModel):
    movement_id: int
    cascade: CascadeResultSchema
