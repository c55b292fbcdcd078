import json
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GATEWAY_WEBHOOK_SECRET"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from caixa.core.database import SessionLocal, engine  # noqa: E402
from caixa.core.roles import default_permissions_for  # noqa: E402
from caixa.core.security import create_token_pair, hash_password  # noqa: E402
from caixa.main import create_app  # noqa: E402
from caixa.models import Company, User  # noqa: E402
from caixa.models.company import Base  # noqa: E402
from caixa.services.payment_gateway import PaymentGateway  # noqa: E402
from caixa.services.seed import ensure_default_categories, seed_plans  # noqa: E402


class FakeGatewayBackend:
    """In-process stand-in for the payment provider, served through httpx.MockTransport."""

    def __init__(self):
        self.payments = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/v1/payments":
            body = json.loads(request.content)
            payment_id = str(5000 + len(self.payments))
            payment = {
                "id": int(payment_id),
                "status": "approved" if body.get("token") else "pending",
                "external_reference": body["external_reference"],
                "metadata": body.get("metadata", {}),
                "transaction_details": {"external_resource_url": f"https://pagamentos.test/boleto/{payment_id}"},
            }
            self.payments[payment_id] = payment
            return httpx.Response(201, json=payment)
        if request.method == "GET" and path.startswith("/v1/payments/"):
            payment = self.payments.get(path.rsplit("/", 1)[1])
            if payment is None:
                return httpx.Response(404, json={"message": "payment not found"})
            return httpx.Response(200, json=payment)
        return httpx.Response(404, json={"message": "unknown route"})


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway_backend():
    return FakeGatewayBackend()


@pytest.fixture
def gateway(gateway_backend):
    gw = PaymentGateway(
        access_token="test-token",
        base_url="https://gateway.test",
        transport=httpx.MockTransport(gateway_backend),
    )
    yield gw
    gw.close()


@pytest.fixture
def client(gateway):
    return TestClient(create_app(gateway=gateway))


@pytest.fixture
def make_user(db):
    def _make_user(
        email="admin@loja.com.br",
        role="admin",
        company=None,
        subscription_status="active",
        permissions=None,
        is_super_admin=False,
    ):
        if company is None:
            company = Company(name="Loja Teste", document="12345678000190", subscription_status=subscription_status)
            db.add(company)
            db.flush()
        user = User(
            email=email,
            name="Maria Souza",
            hashed_password=hash_password("secret123"),
            role=role,
            permissions=permissions if permissions is not None else default_permissions_for(role),
            is_super_admin=is_super_admin,
            company_id=company.id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        ensure_default_categories(db, company.id)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        access, _ = create_token_pair(user)
        return {"Authorization": f"Bearer {access}"}

    return _auth_headers


@pytest.fixture
def admin(make_user):
    return make_user()


@pytest.fixture
def headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def plans(db):
    seed_plans(db)
