import io
from datetime import timedelta

from conftest import TODAY, add_tx, login, register, user_id

from finance_tracker.extensions import db
from finance_tracker.models import Category, Transaction


def create(client, **overrides):
    payload = {
        "type": "expense",
        "amount": "120.50",
        "category": "Food",
        "description": "Lunch",
        "date": TODAY.isoformat(),
    }
    payload.update(overrides)
    return client.post("/api/transactions", json=payload)


# ---------------------------
# Auth guard
# ---------------------------
def test_api_requires_login(client):
    response = client.get("/api/transactions")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Authentication required"}


def test_page_redirects_to_login(client):
    response = client.get("/transactions")
    assert response.status_code == 302
    assert "/auth/login" in response.headers["Location"]


# ---------------------------
# Create / detail / edit
# ---------------------------
def test_create_transaction(auth_client):
    response = create(auth_client, receipt_images=["https://cdn.example.com/r1.jpg"])
    assert response.status_code == 201
    body = response.get_json()
    assert body["type"] == "expense"
    assert body["amount"] == 120.5
    assert body["category"] == "Food"
    assert body["date"] == TODAY.isoformat()
    assert body["receipt_images"] == ["https://cdn.example.com/r1.jpg"]
    assert body["amount_fmt"] == "฿120.5"

    detail = auth_client.get(f"/api/transactions/{body['id']}")
    assert detail.status_code == 200
    assert detail.get_json()["description"] == "Lunch"


def test_create_defaults_date_to_today(auth_client):
    response = auth_client.post("/api/transactions", data={"type": "income", "amount": "10", "category": "Gift"})
    assert response.status_code == 201
    assert response.get_json()["date"] == TODAY.isoformat()


def test_create_validation_errors(auth_client):
    response = create(auth_client, type="transfer", amount="-5", category="  ", date="2025/03/08")
    assert response.status_code == 400
    fields = response.get_json()["fields"]
    assert set(fields) == {"type", "amount", "category", "date"}


def test_non_object_json_bodies_are_rejected(auth_client):
    for body in ("type amount category", ["income", "100"], 42):
        response = auth_client.post("/api/transactions", json=body)
        assert response.status_code == 400
        assert response.get_json()["fields"] == {"body": "Expected a JSON object."}

    txid = create(auth_client).get_json()["id"]
    response = auth_client.patch(f"/api/transactions/{txid}", json=["amount", "99"])
    assert response.status_code == 400
    assert "body" in response.get_json()["fields"]
    assert auth_client.get(f"/api/transactions/{txid}").get_json()["amount"] == 120.5

    assert auth_client.post("/api/categories", json=["Pets"]).status_code == 400
    assert auth_client.post("/api/categories", json={"name": 7}).status_code == 201


def test_receipt_urls_must_be_http_or_site_paths(auth_client):
    for bad in ("javascript:alert(1)", " JavaScript:alert(1)", "data:text/html,hi", "//evil.example.com/x.png"):
        response = create(auth_client, receipt_images=[bad])
        assert response.status_code == 400
        assert "receipt_images" in response.get_json()["fields"]

    ok = create(auth_client, receipt_images=["http://cdn.example.com/a.png", "/receipts/1/a.png"])
    assert ok.status_code == 201


def test_patch_updates_only_given_fields(auth_client):
    txid = create(auth_client).get_json()["id"]
    response = auth_client.patch(f"/api/transactions/{txid}", json={"amount": "99", "description": ""})
    assert response.status_code == 200
    body = response.get_json()
    assert body["amount"] == 99.0
    assert body["description"] is None
    assert body["category"] == "Food"

    bad = auth_client.patch(f"/api/transactions/{txid}", json={"amount": "zero"})
    assert bad.status_code == 400


def test_other_users_rows_are_hidden(auth_client, client):
    txid = create(auth_client).get_json()["id"]
    auth_client.get("/auth/logout")

    register(client, email="other@example.com")
    assert client.get(f"/api/transactions/{txid}").status_code == 404
    assert client.delete(f"/api/transactions/{txid}").status_code == 404
    assert client.get("/api/transactions").get_json()["pagination"]["total_items"] == 0


# ---------------------------
# Listing
# ---------------------------
def test_listing_groups_pagination_and_summary(auth_client):
    uid = user_id()
    for i in range(12):
        add_tx(uid, TODAY, "expense", 10, "Food", f"meal {i}")
    add_tx(uid, TODAY - timedelta(days=400), "income", 1000, "Salary", "old salary")

    body = auth_client.get("/api/transactions").get_json()
    assert body["pagination"] == {"page": 1, "per_page": 10, "total_items": 13, "total_pages": 2}
    assert [g["title"] for g in body["groups"]] == ["วันนี้"]
    assert len(body["groups"][0]["transactions"]) == 10
    assert body["summary"] == {"total_income": 1000.0, "total_expense": 120.0, "balance": 880.0}
    assert body["categories"] == ["all", "Food", "Salary"]

    page2 = auth_client.get("/api/transactions?page=2").get_json()
    titles = [g["title"] for g in page2["groups"]]
    assert titles[0] == "วันนี้"
    assert len(titles) == 2


def test_listing_filters_and_sort(auth_client):
    uid = user_id()
    add_tx(uid, TODAY, "expense", 50, "Food", "Noodles")
    add_tx(uid, TODAY, "expense", 500, "Transport", "Taxi")
    add_tx(uid, TODAY, "income", 2000, "Freelance", "Website")

    body = auth_client.get("/api/transactions?type=expense&sort=highest").get_json()
    rows = [t for g in body["groups"] for t in g["transactions"]]
    assert [t["category"] for t in rows] == ["Transport", "Food"]
    assert body["filters"]["type"] == "expense"
    assert body["summary"]["total_income"] == 0.0

    body = auth_client.get("/api/transactions?q=noodle").get_json()
    assert body["pagination"]["total_items"] == 1

    body = auth_client.get("/api/transactions?category=Freelance").get_json()
    assert body["summary"]["balance"] == 2000.0


def test_listing_rejects_bad_custom_range(auth_client):
    response = auth_client.get("/api/transactions?date_range=custom&from=yesterday")
    assert response.status_code == 400
    assert "from" in response.get_json()["fields"]


def test_transactions_page_renders(auth_client):
    uid = user_id()
    add_tx(uid, TODAY, "expense", 1234.5, "Food", "Dinner")
    response = auth_client.get("/transactions")
    assert response.status_code == 200
    html = response.get_data(as_text=True)
    assert "Dinner" in html
    assert "฿1,234.5" in html
    assert "วันนี้" in html


def test_index_redirects_to_transactions(auth_client):
    response = auth_client.get("/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/transactions")


# ---------------------------
# Delete / restore
# ---------------------------
def test_delete_and_restore(auth_client):
    txid = create(auth_client).get_json()["id"]

    response = auth_client.delete(f"/api/transactions/{txid}")
    assert response.get_json() == {"ok": True, "id": txid}
    assert auth_client.get("/api/transactions").get_json()["pagination"]["total_items"] == 0
    assert auth_client.delete(f"/api/transactions/{txid}").status_code == 404

    db.session.expire_all()
    assert db.session.get(Transaction, txid).is_deleted is True

    restored = auth_client.post(f"/api/transactions/{txid}/restore")
    assert restored.status_code == 200
    assert auth_client.get("/api/transactions").get_json()["pagination"]["total_items"] == 1
    assert auth_client.post(f"/api/transactions/{txid}/restore").status_code == 409


# ---------------------------
# Export
# ---------------------------
def test_export_csv_uses_filters_across_pages(auth_client):
    uid = user_id()
    for i in range(15):
        add_tx(uid, TODAY, "expense", 10 + i, "Food", f"meal {i}")
    add_tx(uid, TODAY, "income", 500, "Gift")

    response = auth_client.get("/api/transactions/export.csv?type=expense&sort=lowest")
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert f"transactions_{TODAY.isoformat()}.csv" in response.headers["Content-Disposition"]
    lines = response.get_data(as_text=True).split("\n")
    assert lines[0] == "วันที่,ประเภท,หมวดหมู่,รายละเอียด,จำนวนเงิน"
    assert len(lines) == 16
    assert lines[1] == f'{TODAY.isoformat()},รายจ่าย,"Food","meal 0",10'
    assert lines[-1].endswith(",24")


def test_export_empty_is_rejected(auth_client):
    response = auth_client.get("/api/transactions/export.csv")
    assert response.status_code == 400
    assert response.get_json() == {"error": "No data to export"}


def test_export_pdf(auth_client):
    create(auth_client)
    response = auth_client.get("/api/transactions/export.pdf")
    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")


def test_export_unknown_format(auth_client):
    response = auth_client.get("/api/transactions/export.xlsx")
    assert response.status_code == 404
    assert "error" in response.get_json()


# ---------------------------
# Receipts
# ---------------------------
def test_upload_and_fetch_receipt(auth_client):
    txid = create(auth_client).get_json()["id"]
    response = auth_client.post(
        f"/api/transactions/{txid}/receipts",
        data={"file": (io.BytesIO(b"\x89PNG fake image"), "slip.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    images = response.get_json()["receipt_images"]
    assert len(images) == 1
    assert images[0].startswith(f"/receipts/{user_id()}/")
    assert images[0].endswith("_slip.png")

    fetched = auth_client.get(images[0])
    assert fetched.status_code == 200
    assert fetched.data == b"\x89PNG fake image"


def test_upload_rejects_non_images(auth_client):
    txid = create(auth_client).get_json()["id"]
    response = auth_client.post(
        f"/api/transactions/{txid}/receipts",
        data={"file": (io.BytesIO(b"#!/bin/sh"), "run.sh")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert "file" in response.get_json()["fields"]


def test_receipts_of_other_users_are_hidden(auth_client):
    uid = user_id()
    response = auth_client.get(f"/receipts/{uid + 1}/anything.png")
    assert response.status_code == 404


# ---------------------------
# Categories
# ---------------------------
def test_categories_list_is_public_and_sorted(client):
    db.session.add_all([Category(name="Transport"), Category(name="Food"), Category(name="Salary")])
    db.session.commit()
    response = client.get("/api/categories")
    assert response.status_code == 200
    assert [c["name"] for c in response.get_json()] == ["Food", "Salary", "Transport"]


def test_categories_list_empty(client):
    assert client.get("/api/categories").get_json() == []


def test_categories_failure_returns_500(client, monkeypatch):
    db.session.add(Category(name="Food"))
    db.session.commit()

    def boom(self):
        raise RuntimeError("db down")

    monkeypatch.setattr(Category, "to_dict", boom)
    response = client.get("/api/categories")
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to fetch categories"}


def test_create_category_and_duplicates(auth_client):
    response = auth_client.post("/api/categories", json={"name": "Pets", "type": "expense"})
    assert response.status_code == 201
    assert response.get_json()["type"] == "expense"

    assert auth_client.post("/api/categories", json={"name": "pets"}).status_code == 409
    assert auth_client.post("/api/categories", json={"name": ""}).status_code == 400
    assert auth_client.post("/api/categories", json={"name": "X", "type": "loan"}).status_code == 400


def test_delete_category_in_use(auth_client):
    cat_id = auth_client.post("/api/categories", json={"name": "Food"}).get_json()["id"]
    txid = create(auth_client, category="Food").get_json()["id"]

    assert auth_client.delete(f"/api/categories/{cat_id}").status_code == 409
    auth_client.delete(f"/api/transactions/{txid}")
    assert auth_client.delete(f"/api/categories/{cat_id}").get_json() == {"ok": True, "id": cat_id}
    assert auth_client.delete(f"/api/categories/{cat_id}").status_code == 404


def test_login_after_logout_keeps_data(auth_client):
    create(auth_client)
    auth_client.get("/auth/logout")
    login(auth_client)
    assert auth_client.get("/api/transactions").get_json()["pagination"]["total_items"] == 1
