# finance_tracker/services/validation.py
# Parse and validate transaction/category input coming from JSON bodies or forms.
from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from urllib.parse import urlsplit

from ..models import TxnType

# Numeric(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")


class ValidationError(ValueError):
    """Raised when user input cannot be turned into a valid record."""

    def __init__(self, fields: dict[str, str], message: str = "Invalid input"):
        super().__init__(message)
        self.message = message
        self.fields = fields

    def to_dict(self) -> dict:
        return {"error": self.message, "fields": self.fields}


def safe_decimal(s) -> Decimal | None:
    if s is None or s == "":
        return None
    try:
        return Decimal(str(s).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None


def parse_iso_date(s) -> date | None:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s).strip()[:10])
    except ValueError:
        return None


def is_receipt_url(value) -> bool:
    """http(s) URLs or paths on this site; anything else (javascript:, data:) is refused."""
    if not isinstance(value, str) or not value.strip():
        return False
    url = value.strip()
    parts = urlsplit(url)
    if parts.scheme:
        return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)
    return url.startswith("/") and not url.startswith(("//", "/\\"))


def request_values(body, form):
    """JSON object body when one was sent, else the form fields."""
    if body is None:
        return form
    if not isinstance(body, dict):
        raise ValidationError({"body": "Expected a JSON object."})
    return body or form


def parse_transaction_payload(data, *, partial: bool = False, today: date | None = None) -> dict:
    """
    Turn a request payload into column values for ``Transaction``.

    With ``partial=True`` only the keys present in ``data`` are validated and
    returned (PATCH semantics); otherwise type, amount and category are required
    and a missing date defaults to ``today``.
    """
    errors: dict[str, str] = {}
    values: dict = {}

    def present(key):
        return key in data and data.get(key) not in (None, "")

    if present("type") or not partial:
        raw = str(data.get("type") or "").strip().lower()
        try:
            values["type"] = TxnType(raw)
        except ValueError:
            errors["type"] = "Type must be 'income' or 'expense'."

    if present("amount") or not partial:
        amount = safe_decimal(data.get("amount"))
        if amount is None or not amount.is_finite():
            errors["amount"] = "Amount must be a number."
        elif amount <= 0:
            errors["amount"] = "Amount must be greater than zero."
        elif amount > MAX_AMOUNT:
            errors["amount"] = "Amount is too large."
        else:
            values["amount"] = amount.quantize(Decimal("0.01"))

    if present("category") or not partial:
        category = str(data.get("category") or "").strip()
        if not category:
            errors["category"] = "Category is required."
        else:
            values["category"] = category

    if present("date"):
        d = parse_iso_date(data.get("date"))
        if d is None:
            errors["date"] = "Date must be YYYY-MM-DD."
        else:
            values["date"] = d
    elif not partial:
        values["date"] = today or date.today()

    if "description" in data:
        values["description"] = str(data.get("description") or "").strip() or None

    if "receipt_images" in data:
        images = data.get("receipt_images") or []
        if isinstance(images, str):
            images = [images]
        if not isinstance(images, list) or not all(is_receipt_url(u) for u in images):
            errors["receipt_images"] = "Receipt images must be http(s) URLs or site paths."
        else:
            values["receipt_images"] = [u.strip() for u in images]

    if errors:
        raise ValidationError(errors)
    return values
