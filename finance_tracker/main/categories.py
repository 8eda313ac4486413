# finance_tracker/main/categories.py
# ---------------------------------
# Category list (public) plus create & delete for signed-in users.

import logging

from flask import request, jsonify
from flask_login import login_required
from sqlalchemy import func

from . import main
from ..extensions import db
from ..models import Category, Transaction, TxnType
from ..services.validation import request_values

logger = logging.getLogger(__name__)


# ---------------------------
# Categories (LIST)
# ---------------------------
@main.route("/api/categories", methods=["GET"], endpoint="api_categories")
def api_categories():
    try:
        rows = db.session.query(Category).order_by(Category.name.asc()).all()
        return jsonify([c.to_dict() for c in rows])
    except Exception:
        logger.exception("[categories] Error fetching categories")
        db.session.rollback()
        return jsonify({"error": "Failed to fetch categories"}), 500


# ---------------------------
# Categories (CREATE)
# ---------------------------
@main.route("/api/categories", methods=["POST"], endpoint="api_create_category")
@login_required
def api_create_category():
    data = request_values(request.get_json(silent=True), request.form)
    name = str(data.get("name") or "").strip()
    type_raw = str(data.get("type") or "").strip().lower()

    if not name:
        return jsonify({"error": "Invalid input", "fields": {"name": "Name is required."}}), 400

    cat_type = None
    if type_raw:
        try:
            cat_type = TxnType(type_raw)
        except ValueError:
            return jsonify({"error": "Invalid input", "fields": {"type": "Type must be 'income' or 'expense'."}}), 400

    # Case-insensitive duplicate check
    exists = (
        db.session.query(Category.id)
        .filter(func.lower(Category.name) == func.lower(name))
        .first()
    )
    if exists:
        return jsonify({"error": "Category already exists"}), 409

    cat = Category(name=name, type=cat_type)
    db.session.add(cat)
    db.session.commit()
    logger.info(f"[categories] created id={cat.id} name={name!r}")
    return jsonify(cat.to_dict()), 201


# ---------------------------
# Categories (DELETE)
# ---------------------------
@main.route("/api/categories/<int:category_id>", methods=["DELETE"], endpoint="api_delete_category")
@login_required
def api_delete_category(category_id: int):
    cat = db.session.get(Category, category_id)
    if not cat:
        return jsonify({"error": "Category not found"}), 404

    in_use = (
        db.session.query(Transaction.id)
        .filter(Transaction.category == cat.name, Transaction.is_deleted.is_(False))
        .first()
    )
    if in_use:
        return jsonify({"error": "Category is used by transactions"}), 409

    db.session.delete(cat)
    db.session.commit()
    logger.info(f"[categories] deleted id={category_id}")
    return jsonify({"ok": True, "id": category_id})
