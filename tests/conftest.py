import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_invoice_client, get_webhook_token
from app.data.database import Base, get_db
from app.data.models import CartItemModel
from app.domain.schemas import Invoice
from app.main import create_app
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.services.invoice_client import XenditClient

WEBHOOK_TOKEN = "test-callback-token"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def order_repo(db_session):
    return OrderRepo(db_session)


@pytest.fixture
def cart_repo(db_session):
    return CartRepo(db_session)


@pytest.fixture
def invoice_client():
    """Prawdziwa weryfikacja tokenu, zamockowane wywolania HTTP."""
    client = XenditClient(
        secret_key="xnd_development_test",
        base_url="https://gateway.test",
        app_url="https://shop.test",
    )
    client.create_invoice = MagicMock(
        return_value=Invoice(
            id="inv_123",
            invoice_url="https://checkout.xendit.co/web/inv_123",
            status="PENDING",
        )
    )
    client.find_invoices = MagicMock(return_value=[])
    return client


@pytest.fixture
def seed_cart(db_session):
    def _seed(user_id: str, count: int = 2):
        for n in range(count):
            db_session.add(CartItemModel(
                user_id=user_id,
                product_id=f"p-{n}",
                product_name=f"Produk {n}",
                quantity=1,
                price=10000,
            ))
        db_session.commit()
    return _seed


@pytest.fixture
def checkout_payload():
    return {
        "userId": "user-1",
        "customerName": "Siti Aminah",
        "customerEmail": "siti@example.com",
        "customerPhone": "081234567890",
        "customerAddress": "Jl. Merdeka No. 1, Bandung",
        "notes": "Tolong dibungkus rapi",
        "cartItems": [
            {"product_name": "Kopi", "quantity": 2, "price": 15000, "umkm_name": "Kopi Nusantara"},
        ],
    }


@pytest.fixture
def client(db_session, invoice_client):
    app = create_app()
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_invoice_client] = lambda: invoice_client
    app.dependency_overrides[get_webhook_token] = lambda: WEBHOOK_TOKEN
    return TestClient(app)
