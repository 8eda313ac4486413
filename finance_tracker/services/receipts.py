# finance_tracker/services/receipts.py
# Receipt image storage on the local filesystem: UPLOAD_FOLDER/<user_id>/<uuid>_<name>
from __future__ import annotations

import logging
import os
from uuid import uuid4

from flask import current_app
from werkzeug.utils import secure_filename

from .validation import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_file(filename: str | None) -> bool:
    return bool(filename) and "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def user_upload_dir(user_id: int) -> str:
    return os.path.join(current_app.config["UPLOAD_FOLDER"], str(user_id))


def save_receipt(user_id: int, file_storage) -> str:
    """Store an uploaded image and return its stored filename."""
    if file_storage is None or not file_storage.filename:
        raise ValidationError({"file": "No file uploaded."})
    if not allowed_file(file_storage.filename):
        raise ValidationError({"file": "Receipts must be PNG, JPG, GIF or WEBP images."})

    safe = secure_filename(file_storage.filename) or "receipt"
    stored = f"{uuid4().hex}_{safe}"
    folder = user_upload_dir(user_id)
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, stored))
    logger.info(f"[receipts] user={user_id} stored {stored}")
    return stored
