# finance_tracker/cli.py
import csv
from datetime import date, timedelta
from decimal import Decimal

import click

from .extensions import db
from .models import Category, Transaction, TxnType, User
from .services.export import TYPE_LABELS
from .services.validation import ValidationError, parse_transaction_payload

DEFAULT_CATEGORIES = [
    ("Salary", TxnType.income),
    ("Bonus", TxnType.income),
    ("Freelance", TxnType.income),
    ("Food & Drinks", TxnType.expense),
    ("Groceries", TxnType.expense),
    ("Transport", TxnType.expense),
    ("Housing", TxnType.expense),
    ("Utilities", TxnType.expense),
    ("Health", TxnType.expense),
    ("Shopping", TxnType.expense),
    ("Entertainment", TxnType.expense),
    ("Education", TxnType.expense),
    ("Other", None),
]

# label -> type, accepting both export locales
_TYPE_BY_LABEL = {
    label: t for labels in TYPE_LABELS.values() for t, label in labels.items()
}


def _user_by_email(email: str) -> User:
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"No user with email {email!r}")
    return user


def seed_categories() -> int:
    existing = {name.lower() for (name,) in db.session.query(Category.name).all()}
    created = 0
    for name, cat_type in DEFAULT_CATEGORIES:
        if name.lower() in existing:
            continue
        db.session.add(Category(name=name, type=cat_type))
        created += 1
    db.session.commit()
    return created


def import_csv_rows(user: User, lines) -> tuple[int, list[tuple[int, str]]]:
    """
    Import rows in the export layout (date, type, category, description, amount).
    Returns (created, [(line_no, error), ...]); bad rows are skipped.
    """
    reader = csv.reader(lines)
    next(reader, None)  # header
    created, errors = 0, []
    for line_no, row in enumerate(reader, start=2):
        if not row:
            continue
        if len(row) != 5:
            errors.append((line_no, f"expected 5 columns, got {len(row)}"))
            continue
        d, type_label, category, description, amount = row
        payload = {
            "date": d,
            "type": _TYPE_BY_LABEL.get(type_label.strip(), type_label),
            "category": category,
            "description": description,
            "amount": amount,
        }
        try:
            values = parse_transaction_payload(payload)
        except ValidationError as e:
            errors.append((line_no, "; ".join(f"{k}: {v}" for k, v in e.fields.items())))
            continue
        db.session.add(Transaction(user_id=user.id, receipt_images=[], **values))
        created += 1
    db.session.commit()
    return created, errors


def register_cli(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (use `flask db upgrade` once migrations exist)."""
        db.create_all()
        click.echo("Initialized the database.")

    @app.cli.command("seed-categories")
    def seed_categories_command():
        """Insert the default categories (idempotent)."""
        created = seed_categories()
        click.echo(f"Seeded {created} categories.")

    @app.cli.command("seed-demo")
    @click.option("--email", required=True, help="Owner of the demo transactions.")
    def seed_demo(email):
        """Dev-only: a handful of transactions spread over the last few weeks."""
        user = _user_by_email(email)
        today = date.today()
        samples = [
            (0, TxnType.expense, "Food & Drinks", "Lunch", "120"),
            (1, TxnType.expense, "Transport", "BTS top-up", "500"),
            (3, TxnType.income, "Freelance", "Logo design", "3500"),
            (9, TxnType.expense, "Groceries", "Weekly groceries", "1450.75"),
            (25, TxnType.income, "Salary", "Monthly salary", "42000"),
            (40, TxnType.expense, "Utilities", "Electricity bill", "980.50"),
        ]
        for days_ago, t, category, description, amount in samples:
            db.session.add(Transaction(
                user_id=user.id, date=today - timedelta(days=days_ago), type=t,
                category=category, description=description, amount=Decimal(amount),
                receipt_images=[],
            ))
        db.session.commit()
        click.echo(f"Seeded {len(samples)} transactions for {user.email}.")

    @app.cli.command("import-csv")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--email", required=True, help="Owner of the imported transactions.")
    def import_csv_command(path, email):
        """Import transactions from a CSV in the export layout."""
        user = _user_by_email(email)
        with open(path, newline="", encoding="utf-8-sig") as fh:
            created, errors = import_csv_rows(user, fh)
        for line_no, msg in errors:
            click.echo(f"line {line_no}: {msg}", err=True)
        click.echo(f"Imported {created} transactions ({len(errors)} skipped).")
