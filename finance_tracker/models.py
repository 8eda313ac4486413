from __future__ import annotations
from datetime import datetime
from enum import Enum

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from sqlalchemy import text
from .extensions import db


# --------------------------
# Users
# --------------------------
class User(UserMixin, db.Model):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


# --------------------------
# Enums (Python)
# --------------------------
class TxnType(str, Enum):
    income = "income"
    expense = "expense"


# --------------------------
# Categories (shared by all users)
# --------------------------
class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    # NULL = usable for both income and expense
    type = db.Column(db.Enum(TxnType, name="txn_type_enum", native_enum=False), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value if self.type else None,
        }


# --------------------------
# Transactions
# --------------------------
class Transaction(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_txn_user_date", "user_id", "date"),
        db.Index("ix_txn_user_type_date", "user_id", "type", "date"),
        db.Index("ix_txn_user_category", "user_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.Enum(TxnType, name="txn_type_enum", native_enum=False), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)  # always positive; type carries the sign

    category = db.Column(db.String(120), nullable=False)  # name snapshot
    description = db.Column(db.Text)
    receipt_images = db.Column(db.JSON, nullable=False, default=list)

    is_deleted = db.Column(db.Boolean, nullable=False, server_default=text("false"), default=False)

    created_at = db.Column(db.DateTime(timezone=True), default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def has_receipts(self) -> bool:
        return bool(self.receipt_images)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "amount": float(self.amount),
            "category": self.category,
            "description": self.description,
            "date": self.date.isoformat(),
            "receipt_images": list(self.receipt_images or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
