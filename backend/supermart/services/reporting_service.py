# Overview: Service-layer reporting; pure computation over already-loaded catalog and ledger data.

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Iterable

from ..domain import SALE, Product, Transaction
from ..time_utils import local_midnight_utc, to_utc_z

WINDOW_TODAY = "Today"
WINDOW_7D = "7D"
WINDOW_30D = "30D"
WINDOW_ALL = "All"
WINDOWS = (WINDOW_TODAY, WINDOW_7D, WINDOW_30D, WINDOW_ALL)


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


@dataclass(frozen=True)
class InventoryStats:
    total_items: int
    total_value_cents: int
    total_cost_value_cents: int
    low_stock_count: int
    out_of_stock_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FinancialSummary:
    window: str
    cutoff: datetime | None
    transaction_count: int
    revenue_cents: int
    cost_cents: int
    profit_cents: int
    margin: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["cutoff"] = to_utc_z(self.cutoff)
        data["margin"] = round(self.margin, 2)
        return data


def inventory_stats(products: Iterable[Product]) -> InventoryStats:
    products = list(products)
    return InventoryStats(
        total_items=len(products),
        total_value_cents=sum(p.price_cents * max(p.quantity, 0) for p in products),
        total_cost_value_cents=sum(p.cost_price_cents * max(p.quantity, 0) for p in products),
        low_stock_count=sum(1 for p in products if p.is_low_stock),
        out_of_stock_count=sum(1 for p in products if p.is_out_of_stock),
    )


def window_cutoff(window: str, now: datetime, tz_name: str = "UTC") -> datetime | None:
    """
    Earliest timestamp (inclusive) selected by a date window.

    Today -> local midnight of `now` in the store timezone
    7D / 30D -> now minus 7 / 30 days
    All -> None (no cutoff)
    """
    if window == WINDOW_ALL:
        return None
    if window == WINDOW_TODAY:
        return local_midnight_utc(now, tz_name)
    if window == WINDOW_7D:
        return now - timedelta(days=7)
    if window == WINDOW_30D:
        return now - timedelta(days=30)
    raise ReportError(f"window must be one of: {', '.join(WINDOWS)}")


def filter_by_window(
    transactions: Iterable[Transaction],
    window: str,
    now: datetime,
    tz_name: str = "UTC",
) -> list[Transaction]:
    cutoff = window_cutoff(window, now, tz_name)
    if cutoff is None:
        return list(transactions)
    return [t for t in transactions if t.timestamp >= cutoff]


def margin_percent(revenue_cents: int, cost_cents: int) -> float:
    if revenue_cents == 0:
        return 0.0
    return (revenue_cents - cost_cents) / revenue_cents * 100


def financial_summary(
    transactions: Iterable[Transaction],
    window: str,
    now: datetime,
    tz_name: str = "UTC",
) -> FinancialSummary:
    cutoff = window_cutoff(window, now, tz_name)
    sales = [
        t for t in transactions
        if t.type == SALE and (cutoff is None or t.timestamp >= cutoff)
    ]
    revenue = sum(t.total_cents for t in sales)
    cost = sum(t.total_cost_cents for t in sales)
    return FinancialSummary(
        window=window,
        cutoff=cutoff,
        transaction_count=len(sales),
        revenue_cents=revenue,
        cost_cents=cost,
        profit_cents=revenue - cost,
        margin=margin_percent(revenue, cost),
    )


def todays_sales_cents(transactions: Iterable[Transaction], now: datetime, tz_name: str = "UTC") -> int:
    return financial_summary(transactions, WINDOW_TODAY, now, tz_name).revenue_cents


def dashboard(
    products: list[Product],
    transactions: list[Transaction],
    now: datetime,
    tz_name: str = "UTC",
) -> dict:
    stats = inventory_stats(products)
    alerts = sorted(
        (p for p in products if p.is_low_stock or p.is_out_of_stock),
        key=lambda p: (p.quantity, p.name),
    )
    return {
        "stats": stats.to_dict(),
        "todays_sales_cents": todays_sales_cents(transactions, now, tz_name),
        "stock_alerts": [
            {
                "id": p.id,
                "sku": p.sku,
                "name": p.name,
                "quantity": p.quantity,
                "min_threshold": p.min_threshold,
                "status": "OUT_OF_STOCK" if p.is_out_of_stock else "LOW_STOCK",
            }
            for p in alerts
        ],
        "recent_transactions": [t.to_dict() for t in transactions[:5]],
        "generated_at": to_utc_z(now),
    }
