import os
import tempfile
from decimal import Decimal

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="restaurant-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["ADMIN_BOOTSTRAP_USERNAME"] = "admin"
os.environ["ADMIN_BOOTSTRAP_PASSWORD"] = "admin-pass-123"
os.environ["OPENING_TIME"] = "11:00"
os.environ["CLOSING_TIME"] = "23:00"
os.environ["OCCUPANCY_HOURS"] = "2"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel, Session  # noqa: E402

from restaurant import models  # noqa: E402,F401
from restaurant.db import engine, init_db  # noqa: E402
from restaurant.models import Product  # noqa: E402

ADMIN_PASSWORD = "admin-pass-123"


@pytest.fixture
def session():
    SQLModel.metadata.drop_all(engine)
    init_db()
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_product(session):
    def _make(name="Lomo saltado", price="25.50", category="Platos de fondo", available=True, **kw):
        product = Product(
            name=name,
            description=kw.pop("description", f"{name} de la casa"),
            price=Decimal(price),
            category=category,
            available=available,
            **kw,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product
    return _make


@pytest.fixture
def client(session):
    from restaurant.main import app, ensure_bootstrap_admin
    ensure_bootstrap_admin()
    return TestClient(app)


@pytest.fixture
def admin_client(client):
    r = client.post("/login", data={"username": "admin", "password": ADMIN_PASSWORD}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/admin"
    return client
