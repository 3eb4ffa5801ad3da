from __future__ import annotations

import uuid
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import storefront.persistence.pg as pg
from storefront.catalog.store import ProductCatalog
from storefront.core.config import get_settings
from storefront.core.security import Principal, create_access_token
from storefront.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.auth_enabled = True

    engine = pg.create_engine_from_url(f"sqlite+pysqlite:///{test_db_path}")
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(configure_test_engine):
    from storefront.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def customer() -> Principal:
    return Principal(id=f"customer-{uuid.uuid4().hex[:8]}", role="customer")


@pytest.fixture()
def other_customer() -> Principal:
    return Principal(id=f"customer-{uuid.uuid4().hex[:8]}", role="customer")


@pytest.fixture()
def admin() -> Principal:
    return Principal(id=f"admin-{uuid.uuid4().hex[:8]}", role="admin")


def bearer(principal: Principal) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(principal.id, principal.role)}"}


@pytest.fixture()
def make_product():
    """Insert a committed product so service rollbacks never discard it."""

    def _make(price: int | str = 600000, stock: int = 5, status: str = "active", name: str | None = None) -> str:
        product_id = f"prod-{uuid.uuid4().hex[:10]}"
        with pg.session_scope() as s:
            ProductCatalog(s).add_product(
                name=name or f"Product {product_id}",
                price=Decimal(str(price)),
                stock=stock,
                status=status,
                product_id=product_id,
            )
        return product_id

    return _make


@pytest.fixture()
def stock_of():
    def _stock(product_id: str) -> int:
        with pg.session_scope() as s:
            return ProductCatalog(s).find_by_id(product_id).stock

    return _stock


def address(**overrides) -> dict:
    data = {
        "first_name": "Lan",
        "last_name": "Nguyen",
        "street": "12 Nguyen Hue",
        "city": "Ho Chi Minh",
        "state": "HCM",
        "zip_code": "700000",
        "phone": "0901234567",
    }
    data.update(overrides)
    return data


def order_payload(items: list[tuple[str, int]], **overrides) -> dict:
    data = {
        "items": [{"product_id": product_id, "quantity": qty} for product_id, qty in items],
        "payment_method": "cash",
        "shipping_address": address(),
    }
    data.update(overrides)
    return data
