from caixa.models import Category, Company, LoginAttempt, User


def _signup(client, email="dono@padaria.com.br", password="secret123"):
    return client.post("/api/auth/signup", json={
        "email": email,
        "password": password,
        "name": "Ana Lima",
        "company_name": "Padaria Central",
        "document": "12.345.678/0001-90",
    })


def test_signup_login_refresh_and_me(client, db):
    r = _signup(client)
    assert r.status_code == 200
    assert "access_token" in r.json()

    company = db.query(Company).one()
    assert company.document == "12345678000190"
    assert company.subscription_status == "pending"
    assert db.query(Category).filter(Category.company_id == company.id).count() == 8
    assert db.query(User).one().role == "admin"

    r = client.post("/api/auth/login", json={"email": "dono@padaria.com.br", "password": "secret123"})
    assert r.status_code == 200
    tokens = r.json()

    r = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert r.status_code == 200
    me = r.json()
    assert me["user"]["email"] == "dono@padaria.com.br"
    assert me["company"]["name"] == "Padaria Central"


def test_signup_rejects_short_password_and_duplicate_email(client):
    assert _signup(client, password="123").status_code == 400
    assert _signup(client).status_code == 200
    assert _signup(client).status_code == 400


def test_access_token_cannot_refresh(client):
    tokens = _signup(client).json()
    r = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401


def test_refresh_token_is_not_a_bearer_token(client):
    tokens = _signup(client).json()
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert r.status_code == 401


def test_login_is_rate_limited_per_ip(client, db):
    _signup(client)
    for _ in range(5):
        r = client.post("/api/auth/login", json={"email": "dono@padaria.com.br", "password": "errada"})
        assert r.status_code == 401

    r = client.post("/api/auth/login", json={"email": "dono@padaria.com.br", "password": "secret123"})
    assert r.status_code == 429
    assert db.query(LoginAttempt).filter(LoginAttempt.success.is_(False)).count() == 5


def test_admin_manages_users_and_permissions(client, headers):
    r = client.post("/api/users", json={"email": "caixa@loja.com.br", "password": "secret123", "role": "viewer"}, headers=headers)
    assert r.status_code == 201
    created = r.json()
    assert created["permissions"].get("create_transactions") is None

    r = client.patch(
        f"/api/users/{created['id']}/permissions",
        json={"permissions": {"view_transactions": True, "create_transactions": True}},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["permissions"] == {"view_transactions": True, "create_transactions": True}

    assert len(client.get("/api/users", headers=headers).json()) == 2
    assert client.delete(f"/api/users/{created['id']}", headers=headers).status_code == 204


def test_operator_cannot_manage_users(client, make_user, admin, auth_headers):
    operator = make_user(email="op@loja.com.br", role="operator", company=admin.company)
    assert client.get("/api/users", headers=auth_headers(operator)).status_code == 403
