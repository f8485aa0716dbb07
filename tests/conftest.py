import os

os.environ["STOREFRONT_DATABASE_URL"] = "sqlite://"

import pytest

from database import SessionLocal, drop_db, init_db
from models import User
from storefront import create_app
from storefront.services.catalog_service import CatalogService


@pytest.fixture
def app():
    app = create_app({"TESTING": True})
    drop_db()
    init_db()
    yield app
    SessionLocal.remove()
    drop_db()


@pytest.fixture
def session(app):
    with app.app_context():
        session = SessionLocal()
        yield session
        session.rollback()
        SessionLocal.remove()


@pytest.fixture
def catalog(app, session):
    return CatalogService(session, app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_product(app):
    """Create a product in its own app context and return its id."""

    def _make(**payload):
        with app.app_context():
            product = CatalogService(SessionLocal(), app).create_product(payload)
            product_id = product.id
            SessionLocal.remove()
        return product_id

    return _make


@pytest.fixture
def make_user(app):
    def _make(**values):
        with app.app_context():
            session = SessionLocal()
            user = User(**values)
            session.add(user)
            session.commit()
            user_id = user.id
            SessionLocal.remove()
        return user_id

    return _make
