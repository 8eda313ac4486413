from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from finance_tracker import create_app
from finance_tracker.extensions import db
from finance_tracker.models import Transaction, TxnType, User


@pytest.fixture()
def app(tmp_path: Path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "MAIL_DEFAULT_SENDER": "noreply@example.com",
        "MAIL_SUPPRESS_SEND": True,
        "APP_LOCALE": "th",
        "TRANSACTIONS_PER_PAGE": 10,
        "LOG_LEVEL": "WARNING",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def register(client, email="user1@example.com", password="password", name="User One"):
    return client.post(
        "/auth/register",
        data={"name": name, "email": email, "password": password, "password2": password},
        follow_redirects=False,
    )


def login(client, email="user1@example.com", password="password"):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


@pytest.fixture()
def auth_client(client):
    register(client)
    return client


def user_id(email="user1@example.com"):
    return db.session.query(User.id).filter_by(email=email).scalar()


def add_tx(uid, d, type_, amount, category, description=None, **kw):
    tx = Transaction(
        user_id=uid, date=d, type=TxnType(type_), amount=Decimal(str(amount)),
        category=category, description=description, receipt_images=kw.pop("receipt_images", []), **kw,
    )
    db.session.add(tx)
    db.session.commit()
    return tx


TODAY = date.today()
