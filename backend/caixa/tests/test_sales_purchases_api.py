def _create_customer(client, headers, name="João Cliente"):
    r = client.post("/api/customers", json={"name": name, "document": "123.456.789-09"}, headers=headers)
    assert r.status_code == 201
    return r.json()


def _create_supplier(client, headers, name="Distribuidora Sul"):
    r = client.post("/api/suppliers", json={"name": name}, headers=headers)
    assert r.status_code == 201
    return r.json()


def test_installment_sale_creates_group(client, headers):
    customer = _create_customer(client, headers)
    r = client.post("/api/sales", json={
        "customer_id": customer["id"],
        "sale_date": "2025-01-31",
        "total_amount": "500,03",
        "installment_count": 5,
        "status": "pendente",
        "description": "Venda de balcão",
    }, headers=headers)
    assert r.status_code == 201
    sale = r.json()
    assert sale["amount"] == "500.03"
    assert sale["installment_count"] == 5
    assert sale["paid_amount"] == "0.00"
    assert sale["installment_group"].startswith(f"sale-{sale['id']}-")

    r = client.get(f"/api/transactions/groups/{sale['installment_group']}", headers=headers)
    assert r.status_code == 200
    installments = r.json()
    assert [t["amount"] for t in installments] == ["100.00"] * 4 + ["100.03"]
    assert [t["date"] for t in installments] == [
        "2025-02-28", "2025-03-31", "2025-04-30", "2025-05-31", "2025-06-30",
    ]
    assert installments[0]["description"] == "Venda de balcão (1/5)"
    assert {t["type"] for t in installments} == {"venda"}
    assert {t["status"] for t in installments} == {"pendente"}
    assert {t["customer_id"] for t in installments} == {customer["id"]}


def test_paid_sale_marks_installments_paid(client, headers):
    customer = _create_customer(client, headers)
    r = client.post("/api/sales", json={
        "customer_id": customer["id"],
        "sale_date": "10/03/2025",
        "total_amount": 300,
        "installment_count": 3,
    }, headers=headers)
    assert r.status_code == 201
    sale = r.json()
    assert sale["status"] == "pago"
    assert sale["paid_amount"] == "300.00"

    installments = client.get(f"/api/transactions/groups/{sale['installment_group']}", headers=headers).json()
    assert {t["status"] for t in installments} == {"pago"}
    assert {t["payment_date"] for t in installments} == {"2025-03-10"}


def test_custom_installment_dates(client, headers):
    supplier = _create_supplier(client, headers)
    r = client.post("/api/purchases", json={
        "supplier_id": supplier["id"],
        "purchase_date": "2025-01-10",
        "total_amount": "200",
        "status": "pendente",
        "custom_installments": [{"due_date": "2025-01-20"}, {"date": "2025-03-05"}],
    }, headers=headers)
    assert r.status_code == 201
    purchase = r.json()
    assert purchase["installment_count"] == 2

    installments = client.get(f"/api/transactions/groups/{purchase['installment_group']}", headers=headers).json()
    assert [t["date"] for t in installments] == ["2025-01-20", "2025-03-05"]
    assert [t["type"] for t in installments] == ["compra", "compra"]
    assert [t["amount"] for t in installments] == ["100.00", "100.00"]


def test_sale_for_unknown_customer_is_404_and_writes_nothing(client, headers):
    r = client.post("/api/sales", json={
        "customer_id": 999,
        "sale_date": "2025-01-10",
        "total_amount": "100",
    }, headers=headers)
    assert r.status_code == 404
    assert client.get("/api/sales", headers=headers).json() == []
    assert client.get("/api/transactions", headers=headers).json() == []


def test_invalid_date_is_400(client, headers):
    customer = _create_customer(client, headers)
    r = client.post("/api/sales", json={
        "customer_id": customer["id"],
        "sale_date": "31/02/2025",
        "total_amount": "100",
    }, headers=headers)
    assert r.status_code == 400
    assert client.get("/api/transactions", headers=headers).json() == []


def test_invalid_amount_is_400(client, headers):
    supplier = _create_supplier(client, headers)
    r = client.post("/api/purchases", json={
        "supplier_id": supplier["id"],
        "purchase_date": "2025-01-10",
        "total_amount": "muito",
    }, headers=headers)
    assert r.status_code == 400


def test_sales_and_purchases_are_listed_separately(client, headers):
    customer = _create_customer(client, headers)
    supplier = _create_supplier(client, headers)
    client.post("/api/sales", json={"customer_id": customer["id"], "sale_date": "2025-01-10", "total_amount": "50"}, headers=headers)
    client.post("/api/purchases", json={"supplier_id": supplier["id"], "purchase_date": "2025-01-11", "total_amount": "80"}, headers=headers)

    sales = client.get("/api/sales", headers=headers).json()
    purchases = client.get("/api/purchases", headers=headers).json()
    assert [s["amount"] for s in sales] == ["50.00"]
    assert [p["amount"] for p in purchases] == ["80.00"]


def test_reschedule_group_applies_canonical_schedule(client, headers):
    customer = _create_customer(client, headers)
    sale = client.post("/api/sales", json={
        "customer_id": customer["id"],
        "sale_date": "2025-01-10",
        "total_amount": "90",
        "installment_count": 3,
        "status": "pendente",
    }, headers=headers).json()

    r = client.post(
        f"/api/transactions/groups/{sale['installment_group']}/reschedule",
        json={"base_date": "2025-05-31"},
        headers=headers,
    )
    assert r.status_code == 200
    assert [t["date"] for t in r.json()] == ["2025-06-30", "2025-07-31", "2025-08-31"]
