# finance_tracker/main/transactions.py
# ------------------------------------------------------------
# Transaction list: HTML page, JSON listing, single row, and exports.
# All three views share the same in-memory pipeline
# (services.transaction_list) over the user's non-deleted rows.
# ------------------------------------------------------------
import logging
from datetime import date
from urllib.parse import urlencode

from flask import abort, current_app, jsonify, render_template, request, Response, url_for
from flask_login import login_required, current_user

from ..main import main
from ..extensions import db
from ..models import Transaction
from ..services.export import build_transactions_pdf, export_filename, transactions_to_csv
from ..services.formatting import format_currency, format_thai_short_date
from ..services.transaction_list import ListFilters, build_listing, process, summarize
from ..services.validation import ValidationError

logger = logging.getLogger(__name__)


# ----------------------------
# Helpers
# ----------------------------
def _user_transactions():
    """Every active row of the current user, newest first (ties: newest id first)."""
    return (
        db.session.query(Transaction)
        .filter(Transaction.user_id == current_user.id, Transaction.is_deleted.is_(False))
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def _get_tx_or_404(txid: int, *, include_deleted: bool = False) -> Transaction:
    tx = db.session.get(Transaction, txid)
    if not tx or tx.user_id != current_user.id:
        abort(404)
    if tx.is_deleted and not include_deleted:
        abort(404)
    return tx


def _serialize(tx: Transaction) -> dict:
    return tx.to_dict() | {
        "amount_fmt": format_currency(tx.amount),
        "date_display": format_thai_short_date(tx.date),
    }


def _listing(filters: ListFilters):
    page = request.args.get("page", 1, type=int)
    return build_listing(
        _user_transactions(), filters, page,
        locale=current_app.config["APP_LOCALE"],
        per_page=current_app.config["TRANSACTIONS_PER_PAGE"],
    )


def _export_url(fmt: str, filters: ListFilters) -> str:
    base = url_for("main.transactions_export", fmt=fmt)
    qs = filters.to_query()
    return f"{base}?{urlencode(qs)}" if qs else base


# ----------------------------
# HTML page
# ----------------------------
@main.route("/transactions", methods=["GET"], endpoint="transactions_page")
@login_required
def transactions_page():
    warning = request.args.get("warning")
    try:
        filters = ListFilters.from_args(request.args)
    except ValidationError as e:
        warning = "; ".join(e.fields.values())
        filters = ListFilters()

    listing = _listing(filters)

    def page_url(n: int) -> str:
        return url_for("main.transactions_page", page=n, **filters.to_query())

    return render_template(
        "transactions.html",
        page_title="Transactions",
        listing=listing,
        filters=filters,
        page_url=page_url,
        csv_url=_export_url("csv", filters),
        pdf_url=_export_url("pdf", filters),
        warning=warning,
        success=request.args.get("success"),
    )


# ----------------------------
# JSON API
# ----------------------------
@main.route("/api/transactions", methods=["GET"], endpoint="api_transactions")
@login_required
def api_transactions():
    filters = ListFilters.from_args(request.args)
    listing = _listing(filters)
    return jsonify(listing.to_dict(serialize=_serialize))


@main.route("/api/transactions/<int:txid>", methods=["GET"], endpoint="api_transaction_detail")
@login_required
def api_transaction_detail(txid: int):
    return jsonify(_serialize(_get_tx_or_404(txid)))


# ----------------------------
# EXPORT route
# ----------------------------
@main.route("/api/transactions/export.<fmt>", methods=["GET"], endpoint="transactions_export")
@login_required
def transactions_export(fmt):
    if fmt not in ("csv", "pdf"):
        abort(404)

    # Same filters and sort as the list, but every page
    filters = ListFilters.from_args(request.args)
    rows = process(_user_transactions(), filters)
    if not rows:
        return jsonify({"error": "No data to export"}), 400

    today = date.today()
    filename = export_filename(today, fmt)
    logger.info(f"[transactions] user={current_user.id} export {fmt} rows={len(rows)}")

    if fmt == "csv":
        output = transactions_to_csv(rows, current_app.config["APP_LOCALE"]).encode("utf-8")
        return Response(output, content_type="text/csv; charset=utf-8",
                        headers={"Content-Disposition": f'attachment; filename="{filename}"'})

    pdf_bytes = build_transactions_pdf(rows, summarize(rows), filters,
                                       font_path=current_app.config.get("PDF_FONT_PATH"))
    return Response(pdf_bytes, mimetype="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})
