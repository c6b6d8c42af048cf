import calendar
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable

from errors import ValidationError
from model import Record, Totals, coerce_amount

TIME_FILTERS = ("today", "month", "year")


def calculate_totals(records: Iterable[Record]) -> Totals:
    total_income = Decimal(0)
    total_expense = Decimal(0)
    for record in records:
        if record.type == "Income":
            total_income += coerce_amount(record.amount)
        elif record.type == "Expense":
            total_expense += coerce_amount(record.amount)

    return Totals(
        total_income=total_income,
        total_expense=total_expense,
        total_balance=total_income - total_expense,
    )


def time_window(period: str, now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive [start, end] of the calendar day/month/year containing ``now``."""
    if period not in TIME_FILTERS:
        raise ValidationError("Invalid filter. Use 'today', 'month', or 'year'.")

    today = now.date()
    if period == "today":
        first, last = today, today
    elif period == "month":
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        first = today.replace(day=1)
        last = today.replace(day=days_in_month)
    else:
        first = date(today.year, 1, 1)
        last = date(today.year, 12, 31)

    start = datetime.combine(first, time.min, tzinfo=now.tzinfo)
    end = datetime.combine(last, time.max, tzinfo=now.tzinfo)
    return start, end


def filter_by_window(records: Iterable[Record], period: str, now: datetime) -> list[Record]:
    start, end = time_window(period, now)
    # Record dates are calendar dates, so compare at day granularity.
    return [r for r in records if start.date() <= r.date <= end.date()]


def _search_terms(query: str) -> set[str]:
    """The casefolded query plus its y/ies plural twin ("grocery" -> "groceri", "groceries" -> "grocery")."""
    needle = query.strip().casefold()
    terms = {needle}
    if needle.endswith("ies") and len(needle) > 3:
        terms.add(needle[:-3] + "y")
    elif needle.endswith("y") and len(needle) > 1:
        terms.add(needle[:-1] + "i")
    return terms


def search_records(records: Iterable[Record], query: str) -> list[Record]:
    if query is None or not query.strip():
        raise ValidationError("Query parameter is required")

    terms = _search_terms(query)

    def matches(record: Record) -> bool:
        fields = (record.category, record.description, record.type)
        return any(term in (f or "").casefold() for f in fields for term in terms)

    return [r for r in records if matches(r)]
