# finance_tracker/services/formatting.py
from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

THAI_MONTHS = [
    "มกราคม", "กุมภาพันธ์", "มีนาคม", "เมษายน", "พฤษภาคม", "มิถุนายน",
    "กรกฎาคม", "สิงหาคม", "กันยายน", "ตุลาคม", "พฤศจิกายน", "ธันวาคม",
]

THAI_MONTHS_SHORT = [
    "ม.ค.", "ก.พ.", "มี.ค.", "เม.ย.", "พ.ค.", "มิ.ย.",
    "ก.ค.", "ส.ค.", "ก.ย.", "ต.ค.", "พ.ย.", "ธ.ค.",
]

BUDDHIST_ERA_OFFSET = 543
CURRENCY_SYMBOL = "฿"


def format_amount_plain(amount) -> str:
    """Shortest decimal text for an amount: 100 -> '100', 12.50 -> '12.5'."""
    d = Decimal(str(amount))
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")


def format_currency(amount) -> str:
    """THB with thousands separators and at most two decimals: 1234.5 -> '฿1,234.5'."""
    d = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if d < 0 else ""
    d = abs(d)
    whole = int(d)
    frac = format((d - whole).normalize(), "f")  # '0', '0.5', '0.25'
    frac = "" if frac == "0" else frac[1:]
    return f"{sign}{CURRENCY_SYMBOL}{whole:,}{frac}"


def format_thai_date(d: date) -> str:
    return f"{d.day} {THAI_MONTHS[d.month - 1]} {d.year + BUDDHIST_ERA_OFFSET}"


def format_thai_short_date(d: date) -> str:
    year = str(d.year + BUDDHIST_ERA_OFFSET)[2:]
    return f"{d.day} {THAI_MONTHS_SHORT[d.month - 1]} {year}"
