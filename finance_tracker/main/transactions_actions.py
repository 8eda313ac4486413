# finance_tracker/main/transactions_actions.py
import logging
import os

from flask import abort, jsonify, request, send_from_directory, url_for
from flask_login import login_required, current_user

from ..main import main
from ..extensions import db
from ..models import Transaction
from ..services.receipts import save_receipt, user_upload_dir
from ..services.validation import parse_transaction_payload, request_values
from .transactions import _get_tx_or_404, _serialize

logger = logging.getLogger(__name__)


def _payload():
    return request_values(request.get_json(silent=True), request.form)


@main.route("/api/transactions", methods=["POST"], endpoint="tx_create")
@login_required
def tx_create():
    values = parse_transaction_payload(_payload())
    tx = Transaction(user_id=current_user.id, **values)
    if tx.receipt_images is None:
        tx.receipt_images = []
    db.session.add(tx)
    db.session.commit()
    logger.info(f"[transactions] user={current_user.id} created id={tx.id} {tx.type.value} {tx.amount}")
    return jsonify(_serialize(tx)), 201


@main.route("/api/transactions/<int:txid>", methods=["PATCH"], endpoint="tx_edit")
@login_required
def tx_edit(txid):
    tx = _get_tx_or_404(txid)
    values = parse_transaction_payload(_payload(), partial=True)
    for key, val in values.items():
        setattr(tx, key, val)
    db.session.commit()
    logger.info(f"[transactions] user={current_user.id} updated id={tx.id} fields={sorted(values)}")
    return jsonify(_serialize(tx))


@main.route("/api/transactions/<int:txid>", methods=["DELETE"], endpoint="tx_delete")
@login_required
def tx_delete(txid):
    tx = _get_tx_or_404(txid)
    tx.is_deleted = True
    db.session.commit()
    logger.info(f"[transactions] user={current_user.id} deleted id={txid}")
    return jsonify({"ok": True, "id": txid})


@main.route("/api/transactions/<int:txid>/restore", methods=["POST"], endpoint="tx_restore")
@login_required
def tx_restore(txid):
    tx = _get_tx_or_404(txid, include_deleted=True)
    if not tx.is_deleted:
        return jsonify({"error": "Transaction is not deleted"}), 409
    tx.is_deleted = False
    db.session.commit()
    logger.info(f"[transactions] user={current_user.id} restored id={txid}")
    return jsonify(_serialize(tx))


# ----------------------------
# Receipts
# ----------------------------
@main.route("/api/transactions/<int:txid>/receipts", methods=["POST"], endpoint="tx_upload_receipt")
@login_required
def tx_upload_receipt(txid):
    tx = _get_tx_or_404(txid)
    stored = save_receipt(current_user.id, request.files.get("file"))
    url = url_for("main.receipt_file", user_id=current_user.id, filename=stored)
    # reassign so the JSON column is flagged dirty
    tx.receipt_images = [*(tx.receipt_images or []), url]
    db.session.commit()
    return jsonify(_serialize(tx)), 201


@main.route("/receipts/<int:user_id>/<path:filename>", methods=["GET"], endpoint="receipt_file")
@login_required
def receipt_file(user_id, filename):
    if user_id != current_user.id:
        abort(404)
    folder = user_upload_dir(user_id)
    if not os.path.isdir(folder):
        abort(404)
    return send_from_directory(folder, filename)
