import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.api.main import app
from marketplace.db.base import Base
from marketplace.db.models import Product, ProductVariant, Profile, Vendor
from marketplace.db.schema_probe import schema_probe
from marketplace.db.session import get_db
from marketplace.services.categories import slugify

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    schema_probe.reset()
    yield engine
    schema_probe.reset()
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def people(db):
    customer = Profile(email="buyer@example.com", full_name="Avery Buyer", role="customer")
    owner = Profile(email="seller@example.com", full_name="Sam Seller", role="vendor")
    other_owner = Profile(email="other@example.com", full_name="Robin Other", role="vendor")
    admin = Profile(email="admin@example.com", full_name="Alex Admin", role="admin")
    db.add_all([customer, owner, other_owner, admin])
    db.commit()
    return SimpleNamespace(customer=customer, owner=owner, other_owner=other_owner, admin=admin)


@pytest.fixture
def vendor(db, people):
    vendor = Vendor(name="Island Pantry", slug="island-pantry", owner_id=people.owner.id, location="Port of Spain")
    db.add(vendor)
    db.commit()
    return vendor


@pytest.fixture
def other_vendor(db, people):
    vendor = Vendor(name="Cocoa Coast", slug="cocoa-coast", owner_id=people.other_owner.id)
    db.add(vendor)
    db.commit()
    return vendor


@pytest.fixture
def make_product(db, vendor):
    """Create and commit a product; each call is one minute newer than the previous one."""
    minutes = itertools.count()

    def _make(title, base_price=None, variants=(), vendor_id=None, **fields):
        created_at = BASE_TIME + timedelta(minutes=next(minutes))
        product = Product(
            title=title,
            slug=fields.pop("slug", slugify(title)),
            vendor_id=vendor_id or vendor.id,
            base_price=base_price,
            currency=fields.pop("currency", "USD"),
            created_at=created_at,
            **fields,
        )
        product.variants = [
            ProductVariant(created_at=created_at + timedelta(seconds=i), **variant) for i, variant in enumerate(variants)
        ]
        db.add(product)
        db.commit()
        return product

    return _make


def _headers(profile, role=None):
    return {"X-User-Id": str(profile.id), "X-User-Role": role or profile.role}


@pytest.fixture
def auth():
    """Identity headers the upstream gateway would set for a profile."""
    return _headers
