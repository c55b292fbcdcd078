from fastapi.testclient import TestClient
from sqlalchemy.orm.exc import StaleDataError

from caixa.main import create_app


def test_stale_row_on_commit_is_409(gateway):
    app = create_app(gateway=gateway)

    @app.get("/api/_stale")
    def stale():
        raise StaleDataError("UPDATE statement on table 'transactions' expected to update 1 row(s); 0 were matched.")

    r = TestClient(app).get("/api/_stale")
    assert r.status_code == 409
    assert r.json()["detail"] == "Registro alterado por outra operação"
