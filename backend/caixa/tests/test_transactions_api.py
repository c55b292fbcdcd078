def _create(client, headers, **overrides):
    body = {"type": "venda", "amount": "100", "date": "2025-02-10", "description": "Parcela avulsa"}
    body.update(overrides)
    r = client.post("/api/transactions", json=body, headers=headers)
    assert r.status_code == 201
    return r.json()


def test_partial_then_full_payment(client, headers):
    t = _create(client, headers)
    assert t["status"] == "pendente"
    assert t["balance"] == "100.00"

    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "40", "payment_date": "2025-02-11"}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "parcial"
    assert body["paid_amount"] == "40.00"
    assert body["balance"] == "60.00"

    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "60,00", "payment_date": "2025-02-20"}, headers=headers)
    body = r.json()
    assert body["status"] == "completed"
    assert body["paid_amount"] == "100.00"
    assert body["payment_date"] == "2025-02-20"
    assert [p["amount"] for p in body["payment_history"]] == ["40.00", "60.00"]

    history = client.get(f"/api/transactions/{t['id']}/payments", headers=headers).json()
    assert len(history) == 2


def test_cancel_payment_returns_to_pending(client, headers):
    t = _create(client, headers)
    client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "30"}, headers=headers)

    r = client.delete(f"/api/transactions/{t['id']}/payments", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "pendente"
    assert body["paid_amount"] is None
    assert body["payment_history"] == []


def test_zero_payment_is_400(client, headers):
    t = _create(client, headers)
    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": 0}, headers=headers)
    assert r.status_code == 400


def test_paying_settled_installment_is_400(client, headers):
    t = _create(client, headers, status="pago")
    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "10"}, headers=headers)
    assert r.status_code == 400


def test_stale_version_is_409(client, headers):
    t = _create(client, headers)
    assert t["version"] == 1
    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "10", "expected_version": 1}, headers=headers)
    assert r.status_code == 200
    assert r.json()["version"] == 2

    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "10", "expected_version": 1}, headers=headers)
    assert r.status_code == 409

    r = client.patch(f"/api/transactions/{t['id']}", json={"description": "x", "expected_version": 1}, headers=headers)
    assert r.status_code == 409


def test_update_transaction_fields(client, headers):
    t = _create(client, headers)
    r = client.patch(f"/api/transactions/{t['id']}", json={"amount": "1.250,90", "date": "15/04/2025"}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["amount"] == "1250.90"
    assert body["date"] == "2025-04-15"


def test_type_filter_matches_legacy_names(client, headers):
    _create(client, headers, type="venda")
    _create(client, headers, type="income")
    _create(client, headers, type="compra")

    sales = client.get("/api/transactions", params={"type": "venda"}, headers=headers).json()
    assert sorted(t["type"] for t in sales) == ["income", "venda"]

    purchases = client.get("/api/transactions", params={"type": "compra"}, headers=headers).json()
    assert [t["type"] for t in purchases] == ["compra"]


def test_transactions_are_scoped_to_company(client, headers, make_user, auth_headers):
    t = _create(client, headers)
    other = auth_headers(make_user(email="outro@empresa.com.br"))

    assert client.get("/api/transactions", headers=other).json() == []
    assert client.get(f"/api/transactions/{t['id']}", headers=other).status_code == 404
    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "10"}, headers=other)
    assert r.status_code == 404


def test_delete_is_audited(client, headers, db):
    t = _create(client, headers)
    assert client.delete(f"/api/transactions/{t['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/transactions/{t['id']}", headers=headers).status_code == 404

    from caixa.models import AuditLog
    actions = [log.action for log in db.query(AuditLog).all()]
    assert "TRANSACTION_DELETED" in actions


def test_viewer_cannot_pay(client, make_user, auth_headers, admin, db):
    viewer = make_user(email="leitura@loja.com.br", role="viewer", company=admin.company)
    t = _create(client, auth_headers(admin))

    r = client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "10"}, headers=auth_headers(viewer))
    assert r.status_code == 403
    assert client.get("/api/transactions", headers=auth_headers(viewer)).status_code == 200

    from caixa.models import AuditLog
    denied = db.query(AuditLog).filter(AuditLog.action == "PERMISSION_DENIED").all()
    assert len(denied) == 1


def test_inactive_subscription_blocks_financial_routes(client, make_user, auth_headers):
    user = make_user(subscription_status="pending")
    r = client.get("/api/transactions", headers=auth_headers(user))
    assert r.status_code == 403
    assert client.get("/api/auth/me", headers=auth_headers(user)).status_code == 200


def test_missing_token_is_401(client):
    assert client.get("/api/transactions").status_code == 401


def test_references_from_another_company_are_404(client, headers, make_user, auth_headers):
    customer = client.post("/api/customers", json={"name": "Cliente A"}, headers=headers).json()
    supplier = client.post("/api/suppliers", json={"name": "Fornecedor A"}, headers=headers).json()
    other = auth_headers(make_user(email="outro@empresa.com.br"))

    body = {"type": "venda", "amount": "10", "date": "2025-02-10", "customer_id": customer["id"]}
    assert client.post("/api/transactions", json=body, headers=other).status_code == 404
    body = {"type": "compra", "amount": "10", "date": "2025-02-10", "supplier_id": supplier["id"]}
    assert client.post("/api/transactions", json=body, headers=other).status_code == 404

    own = _create(client, other)
    r = client.patch(f"/api/transactions/{own['id']}", json={"customer_id": customer["id"]}, headers=other)
    assert r.status_code == 404

    r = client.post("/api/sales", json={
        "customer_id": customer["id"], "sale_date": "2025-01-10", "total_amount": "50",
    }, headers=other)
    assert r.status_code == 404
    r = client.post("/api/purchases", json={
        "supplier_id": supplier["id"], "purchase_date": "2025-01-10", "total_amount": "50",
    }, headers=other)
    assert r.status_code == 404
    assert [t["id"] for t in client.get("/api/transactions", headers=other).json()] == [own["id"]]


def test_lowering_amount_below_paid_settles_row(client, headers):
    t = _create(client, headers)
    client.post(f"/api/transactions/{t['id']}/payments", json={"paid_amount": "40"}, headers=headers)

    r = client.patch(f"/api/transactions/{t['id']}", json={"amount": "30"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "completed"

    r = client.patch(f"/api/transactions/{t['id']}", json={"amount": "200"}, headers=headers)
    assert r.json()["status"] == "parcial"
