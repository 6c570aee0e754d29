"""
Pytest fixtures for PharmaPOS backend tests.

Provides the app over in-memory SQLite, a test client, seeded admin/user
accounts with session tokens, and an in-memory stock ledger for service tests.
"""

from decimal import Decimal

import pytest

from pharmapos import create_app
from pharmapos.extensions import db
from pharmapos.models import Product, Sale, User
from pharmapos.models.auth import ROLE_ADMIN, ROLE_USER
from pharmapos.records import ProductRecord
from pharmapos.services.auth_context import AuthContext
from pharmapos.services.auth_service import hash_password
from pharmapos.services import session_service
from pharmapos.services.stock_ledger import InMemoryStockLedger, LedgerError

TEST_PASSWORD = "Password123!"

# bcrypt at cost 12 is slow; hash once for every seeded account
_PASSWORD_HASH = None


def _password_hash() -> str:
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        _PASSWORD_HASH = hash_password(TEST_PASSWORD)
    return _PASSWORD_HASH


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SQLALCHEMY_ENGINE_OPTIONS': {},
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, email: str, role: str, name: str = "") -> User:
    user = User(
        email=email,
        role=role,
        name=name,
        password_hash=_password_hash(),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, "admin@pharmapos.test", ROLE_ADMIN, name="Ada")


@pytest.fixture(scope='function')
def plain_user(db_session):
    return make_user(db_session, "clerk@pharmapos.test", ROLE_USER, name="Carl")


def token_for(user: User) -> str:
    _session, token = session_service.create_session(user_id=user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(token_for(admin_user))


@pytest.fixture(scope='function')
def user_headers(plain_user):
    return auth_headers(token_for(plain_user))


@pytest.fixture(scope='function')
def admin_auth(admin_user):
    return AuthContext(user_id=admin_user.id, email=admin_user.email, role=admin_user.role)


@pytest.fixture(scope='function')
def user_auth(plain_user):
    return AuthContext(user_id=plain_user.id, email=plain_user.email, role=plain_user.role)


def make_product(db_session, code: str, name: str, quantity: int, price: str = "9.99") -> Product:
    product = Product(
        product_code=code,
        name=name,
        quantity=quantity,
        price=Decimal(price),
        purchase_price=Decimal("1.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def products(db_session):
    """Aspirin (A=10), Bandages (B=2), Cough syrup (C=1)."""
    return {
        "A": make_product(db_session, "PR001", "Aspirin", 10),
        "B": make_product(db_session, "PR002", "Bandages", 2),
        "C": make_product(db_session, "PR003", "Cough syrup", 1),
    }


def sale_rows(db_session, product_id: int | None = None) -> list[Sale]:
    query = db_session.query(Sale)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    return query.order_by(Sale.id.asc()).all()


def product_record(product_id: int, name: str, quantity: int) -> ProductRecord:
    return ProductRecord(
        id=product_id,
        product_code=f"PR{product_id:03d}",
        name=name,
        quantity=quantity,
        price=Decimal("5.00"),
    )


@pytest.fixture(scope='function')
def ledger():
    """In-memory ledger: A=10 (id 1), B=2 (id 2), C=1 (id 3)."""
    return InMemoryStockLedger([
        product_record(1, "Aspirin", 10),
        product_record(2, "Bandages", 2),
        product_record(3, "Cough syrup", 1),
    ])


class FailingSaleInsertLedger(InMemoryStockLedger):
    """Fails the sale insert for one product."""

    def __init__(self, products, fail_product_id):
        super().__init__(products)
        self.fail_product_id = fail_product_id

    def insert_sale(self, product_id, quantity_sold, sale_date=None):
        if product_id == self.fail_product_id:
            raise LedgerError("insert failed")
        return super().insert_sale(product_id, quantity_sold, sale_date)


class UnreadableLedger(InMemoryStockLedger):
    def get_product(self, product_id):
        raise LedgerError("connection refused")
