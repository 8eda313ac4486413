# finance_tracker/services/transaction_list.py
# ------------------------------------------------------------
# In-memory list pipeline for the transactions view:
#   filter -> sort -> paginate -> group (+ summary over the filtered set)
#
# The user's rows are pulled once and everything below runs in Python, so the
# same code serves the JSON API, the HTML page and the exports.
# ------------------------------------------------------------
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from .validation import ValidationError, parse_iso_date

TYPE_OPTIONS = ("all", "income", "expense")
SORT_OPTIONS = ("newest", "oldest", "highest", "lowest")
DATE_RANGE_OPTIONS = ("all", "today", "week", "month", "custom")

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

GROUP_LABELS = {
    "th": {"today": "วันนี้", "yesterday": "เมื่อวาน", "week": "สัปดาห์นี้", "month": "เดือนนี้"},
    "en": {"today": "Today", "yesterday": "Yesterday", "week": "This week", "month": "This month"},
}


def _type_value(tx) -> str:
    t = tx.type
    return t.value if hasattr(t, "value") else str(t)


@dataclass(frozen=True)
class ListFilters:
    type: str = "all"
    category: str = "all"
    date_range: str = "all"
    sort: str = "newest"
    search: str = ""
    date_from: date | None = None
    date_to: date | None = None

    @classmethod
    def from_args(cls, args) -> "ListFilters":
        """Build filters from request args; unknown option values fall back to defaults."""
        def pick(key, options, default):
            val = (args.get(key) or "").strip().lower()
            return val if val in options else default

        date_range = pick("date_range", DATE_RANGE_OPTIONS, "all")
        date_from = date_to = None
        if date_range == "custom":
            errors = {}
            raw_from, raw_to = args.get("from"), args.get("to")
            date_from = parse_iso_date(raw_from)
            date_to = parse_iso_date(raw_to)
            if raw_from and date_from is None:
                errors["from"] = "Date must be YYYY-MM-DD."
            if raw_to and date_to is None:
                errors["to"] = "Date must be YYYY-MM-DD."
            if date_from and date_to and date_from > date_to:
                errors["to"] = "End date is before start date."
            if errors:
                raise ValidationError(errors)

        return cls(
            type=pick("type", TYPE_OPTIONS, "all"),
            category=(args.get("category") or "all").strip() or "all",
            date_range=date_range,
            sort=pick("sort", SORT_OPTIONS, "newest"),
            search=(args.get("q") or "").strip(),
            date_from=date_from,
            date_to=date_to,
        )

    @property
    def is_default(self) -> bool:
        return self == ListFilters()

    def to_query(self) -> dict:
        """Query-string form of the active filters (defaults omitted)."""
        qs = {}
        if self.type != "all":
            qs["type"] = self.type
        if self.category != "all":
            qs["category"] = self.category
        if self.date_range != "all":
            qs["date_range"] = self.date_range
        if self.sort != "newest":
            qs["sort"] = self.sort
        if self.search:
            qs["q"] = self.search
        if self.date_from:
            qs["from"] = self.date_from.isoformat()
        if self.date_to:
            qs["to"] = self.date_to.isoformat()
        return qs

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "category": self.category,
            "date_range": self.date_range,
            "sort": self.sort,
            "q": self.search,
            "from": self.date_from.isoformat() if self.date_from else None,
            "to": self.date_to.isoformat() if self.date_to else None,
        }


# ---------------------------
# Date helpers
# ---------------------------
def week_start(d: date) -> date:
    """Monday of the week containing ``d``."""
    return d - timedelta(days=d.weekday())


def same_week(a: date, b: date) -> bool:
    return week_start(a) == week_start(b)


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)


# ---------------------------
# Pipeline steps
# ---------------------------
def unique_categories(txns) -> list[str]:
    seen: dict[str, None] = {}
    for tx in txns:
        seen.setdefault(tx.category, None)
    return ["all", *seen.keys()]


def _matches_date_range(d: date, filters: ListFilters, today: date) -> bool:
    rng = filters.date_range
    if rng == "today":
        return d == today
    if rng == "week":
        return same_week(d, today)
    if rng == "month":
        return same_month(d, today)
    if rng == "custom":
        if filters.date_from and d < filters.date_from:
            return False
        if filters.date_to and d > filters.date_to:
            return False
    return True


def filter_transactions(txns, filters: ListFilters, today: date | None = None) -> list:
    today = today or date.today()
    needle = filters.search.lower()
    out = []
    for tx in txns:
        if filters.type != "all" and _type_value(tx) != filters.type:
            continue
        if filters.category != "all" and tx.category != filters.category:
            continue
        if needle:
            in_category = needle in (tx.category or "").lower()
            in_description = needle in (tx.description or "").lower()
            if not in_category and not in_description:
                continue
        if not _matches_date_range(tx.date, filters, today):
            continue
        out.append(tx)
    return out


def sort_transactions(txns, sort: str = "newest") -> list:
    rows = list(txns)
    if sort == "oldest":
        rows.sort(key=lambda t: t.date)
    elif sort == "highest":
        rows.sort(key=lambda t: Decimal(t.amount), reverse=True)
    elif sort == "lowest":
        rows.sort(key=lambda t: Decimal(t.amount))
    else:
        rows.sort(key=lambda t: t.date, reverse=True)
    return rows


@dataclass
class Page:
    items: list
    page: int
    per_page: int
    total_items: int
    total_pages: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(txns, page: int = 1, per_page: int = 10) -> Page:
    page = max(page or 1, 1)
    total = len(txns)
    per_page = max(per_page or 1, 1)
    start = (page - 1) * per_page
    return Page(
        items=list(txns[start:start + per_page]),
        page=page,
        per_page=per_page,
        total_items=total,
        total_pages=math.ceil(total / per_page) if total else 0,
    )


@dataclass
class TransactionGroup:
    title: str
    date: date
    transactions: list = field(default_factory=list)


def period_title(d: date, today: date, locale: str = "th") -> str:
    labels = GROUP_LABELS.get(locale, GROUP_LABELS["en"])
    if d == today:
        return labels["today"]
    if d == today - timedelta(days=1):
        return labels["yesterday"]
    if same_week(d, today):
        return labels["week"]
    if same_month(d, today):
        return labels["month"]
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"


def group_by_period(txns, today: date | None = None, locale: str = "th") -> list[TransactionGroup]:
    today = today or date.today()
    groups: dict[str, TransactionGroup] = {}
    for tx in txns:
        title = period_title(tx.date, today, locale)
        if title not in groups:
            groups[title] = TransactionGroup(title=title, date=tx.date)
        groups[title].transactions.append(tx)
    return sorted(groups.values(), key=lambda g: g.date, reverse=True)


def summarize(txns) -> dict:
    income = Decimal(0)
    expense = Decimal(0)
    for tx in txns:
        if _type_value(tx) == "income":
            income += Decimal(tx.amount)
        else:
            expense += Decimal(tx.amount)
    return {"total_income": income, "total_expense": expense, "balance": income - expense}


# ---------------------------
# Whole listing
# ---------------------------
@dataclass
class Listing:
    filters: ListFilters
    categories: list[str]
    processed: list
    page: Page
    groups: list[TransactionGroup]
    summary: dict

    def to_dict(self, serialize=lambda tx: tx.to_dict()) -> dict:
        return {
            "filters": self.filters.to_dict(),
            "categories": self.categories,
            "groups": [
                {
                    "title": g.title,
                    "date": g.date.isoformat(),
                    "transactions": [serialize(tx) for tx in g.transactions],
                }
                for g in self.groups
            ],
            "pagination": {
                "page": self.page.page,
                "per_page": self.page.per_page,
                "total_items": self.page.total_items,
                "total_pages": self.page.total_pages,
            },
            "summary": {k: float(v) for k, v in self.summary.items()},
        }


def process(txns, filters: ListFilters, today: date | None = None) -> list:
    """Filtered and sorted rows across every page (what the exports use)."""
    return sort_transactions(filter_transactions(txns, filters, today), filters.sort)


def build_listing(txns, filters: ListFilters, page: int = 1, *, today: date | None = None,
                  locale: str = "th", per_page: int = 10) -> Listing:
    today = today or date.today()
    txns = list(txns)
    processed = process(txns, filters, today)
    pg = paginate(processed, page, per_page)
    return Listing(
        filters=filters,
        categories=unique_categories(txns),
        processed=processed,
        page=pg,
        groups=group_by_period(pg.items, today, locale),
        summary=summarize(processed),
    )
