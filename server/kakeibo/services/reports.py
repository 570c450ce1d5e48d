"""Aggregations behind the dashboard, reports and budget views."""

import calendar
import re
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from ..models import Asset, Budget, Transaction

UNCATEGORIZED = {"id": "", "name": "Uncategorized", "color": "#9CA3AF"}

WARNING_RATIO = 80.0

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_period(period: str) -> tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month)."""
    match = _PERIOD_RE.match(period)
    if not match:
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in period '{period}'")
    return year, month


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def recent_months(today: date, months: int) -> list[str]:
    """The last N periods ending with today's month, oldest first."""
    return [
        format_period(*shift_month(today.year, today.month, -offset))
        for offset in range(months - 1, -1, -1)
    ]


def summarize(transactions: Iterable[Transaction]) -> dict:
    """Income, expense and net totals; amounts count by magnitude."""
    income = 0.0
    expenses = 0.0
    for tx in transactions:
        if tx.type == "income":
            income += abs(tx.amount)
        else:
            expenses += abs(tx.amount)

    return {
        "totalIncome": income,
        "totalExpenses": expenses,
        "netIncome": income - expenses,
    }


def category_breakdown(transactions: Iterable[Transaction], type: str = "expense") -> list[dict]:
    """Per-category totals for one entry type, largest first."""
    totals: dict[str, dict] = {}
    for tx in transactions:
        if tx.type != type:
            continue
        category = tx.categories.model_dump() if tx.categories else UNCATEGORIZED
        key = category["id"] or tx.category_id or ""
        if key not in totals:
            totals[key] = {
                "categoryId": key,
                "name": category["name"],
                "color": category["color"],
                "amount": 0.0,
            }
        totals[key]["amount"] += abs(tx.amount)

    grand_total = sum(item["amount"] for item in totals.values())
    breakdown = []
    for item in totals.values():
        percentage = (item["amount"] / grand_total * 100) if grand_total else 0.0
        breakdown.append({**item, "percentage": round(percentage, 1)})

    breakdown.sort(key=lambda x: x["amount"], reverse=True)
    return breakdown


def monthly_trend(transactions: Iterable[Transaction], months: int, today: date) -> list[dict]:
    """Income and expenses per month for the last N months; empty months are zero."""
    by_month = defaultdict(lambda: {"income": 0.0, "expenses": 0.0})
    for tx in transactions:
        bucket = by_month[tx.date[:7]]
        if tx.type == "income":
            bucket["income"] += abs(tx.amount)
        else:
            bucket["expenses"] += abs(tx.amount)

    return [
        {"month": period, **by_month.get(period, {"income": 0.0, "expenses": 0.0})}
        for period in recent_months(today, months)
    ]


def percent_change(current: float, previous: float) -> float:
    """Month-over-month change in percent; 0 when there is nothing to compare to."""
    if not previous:
        return 0.0
    return round((current - previous) / abs(previous) * 100, 1)


def budget_status(amount: float, spent: float) -> dict:
    """Spent/remaining and an over/warning/ok flag for one budget."""
    ratio = (spent / amount * 100) if amount else 0.0
    if ratio >= 100:
        status = "over"
    elif ratio >= WARNING_RATIO:
        status = "warning"
    else:
        status = "ok"

    return {
        "spent": spent,
        "remaining": amount - spent,
        "percentage": round(min(ratio, 100.0), 1),
        "status": status,
    }


def budget_window(period: str, today: date) -> tuple[date, date]:
    """First and last day of the week, month or year a budget covers today."""
    if period == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period == "yearly":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return date(today.year, today.month, 1), date(today.year, today.month, last_day)


def build_budget_overview(budgets: Iterable[Budget], transactions: list[Transaction], today: date) -> list[dict]:
    """Attach spending within each budget's own period window.

    transactions must cover the windows of every budget passed in.
    """
    overview = []
    for budget in budgets:
        start, end = budget_window(budget.period, today)
        first, last = start.isoformat(), end.isoformat()
        spent = sum(
            abs(tx.amount)
            for tx in transactions
            if tx.type == "expense"
            and tx.category_id
            and tx.category_id == budget.category_id
            and first <= tx.date[:10] <= last
        )

        category = budget.categories.model_dump() if budget.categories else UNCATEGORIZED
        overview.append({
            "id": budget.id,
            "categoryId": budget.category_id,
            "category": category["name"],
            "color": category["color"],
            "period": budget.period,
            "periodStart": first,
            "periodEnd": last,
            "budgetAmount": budget.amount,
            **budget_status(budget.amount, float(spent)),
        })
    return overview



def build_monthly_report(
    period: str,
    transactions: list[Transaction],
    previous_transactions: list[Transaction],
) -> dict:
    """Totals, category breakdown and change against the previous month."""
    current = summarize(transactions)
    previous = summarize(previous_transactions)

    return {
        "month": period,
        **current,
        "categoryBreakdown": category_breakdown(transactions),
        "change": {
            "income": percent_change(current["totalIncome"], previous["totalIncome"]),
            "expenses": percent_change(current["totalExpenses"], previous["totalExpenses"]),
            "net": percent_change(current["netIncome"], previous["netIncome"]),
        },
    }


def build_dashboard(
    recent: list[Transaction],
    trend_transactions: list[Transaction],
    assets: list[Asset],
    today: date,
    months: int = 6,
    top: int = 5,
) -> dict:
    """Payload of the dashboard view."""
    this_month = format_period(today.year, today.month)
    last_month = format_period(*shift_month(today.year, today.month, -1))

    current = summarize(tx for tx in trend_transactions if tx.date[:7] == this_month)
    previous = summarize(tx for tx in trend_transactions if tx.date[:7] == last_month)
    month_rows = [tx for tx in trend_transactions if tx.date[:7] == this_month]

    return {
        "stats": {
            **current,
            "monthlyChange": percent_change(current["netIncome"], previous["netIncome"]),
        },
        "recentTransactions": [tx.model_dump() for tx in recent],
        "monthlyData": monthly_trend(trend_transactions, months, today),
        "topCategories": category_breakdown(month_rows)[:top],
        "assetsTotal": sum(asset.balance for asset in assets),
    }


def trend_window(today: date, months: int) -> tuple[str, str]:
    """Start/end ISO bounds covering the last N months."""
    start_year, start_month = shift_month(today.year, today.month, -(months - 1))
    start = f"{format_period(start_year, start_month)}-01T00:00:00"
    last_day = calendar.monthrange(today.year, today.month)[1]
    end = f"{format_period(today.year, today.month)}-{last_day:02d}T23:59:59"
    return start, end
