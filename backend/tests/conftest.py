"""Shared fixtures: a fresh SQLite database per test and actor factories."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUCTION_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("SIGNUP_BONUS_COINS", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401  registers every table on Base.metadata
from app.database import Base, get_db
from app.middleware.auth import create_access_token, hash_password
from app.models.actor import Actor
from app.models.profile import Brand, Fan, ModelProfile
from app.services import ledger


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from app.main import app
    from app.middleware.rate_limit import limiter

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


def _fund(db, actor_id: str, balance: int) -> None:
    if balance:
        ledger.post_transaction(db, actor_id, balance, "admin_grant", {"reason": "test"})


def make_fan(db, balance: int = 0, email: str = None, name: str = "Fan") -> Actor:
    actor = Actor(email=email or f"{os.urandom(4).hex()}@fan.test", password_hash=hash_password("password123"), type="fan")
    db.add(actor)
    db.flush()
    db.add(Fan(id=actor.id, display_name=name))
    db.flush()
    _fund(db, actor.id, balance)
    db.commit()
    db.refresh(actor)
    return actor


def make_brand(db, balance: int = 0, company: str = "Acme") -> Actor:
    actor = Actor(email=f"{os.urandom(4).hex()}@brand.test", password_hash=hash_password("password123"), type="brand")
    db.add(actor)
    db.flush()
    db.add(Brand(id=actor.id, company_name=company, contact_name="Contact"))
    db.flush()
    _fund(db, actor.id, balance)
    db.commit()
    db.refresh(actor)
    return actor


def make_model(db, username: str = None, approved: bool = True, balance: int = 0, **rates) -> Actor:
    actor = Actor(email=f"{os.urandom(4).hex()}@model.test", password_hash=hash_password("password123"), type="model")
    db.add(actor)
    db.flush()
    db.add(ModelProfile(
        id=actor.id,
        username=username or f"model-{actor.id[:8]}",
        first_name="Ava",
        is_approved=approved,
        **rates,
    ))
    db.flush()
    _fund(db, actor.id, balance)
    db.commit()
    db.refresh(actor)
    return actor


def make_admin(db) -> Actor:
    actor = Actor(email=f"{os.urandom(4).hex()}@admin.test", password_hash=hash_password("password123"), type="admin")
    db.add(actor)
    db.commit()
    db.refresh(actor)
    return actor


def auth_headers(actor: Actor) -> dict:
    return {"Authorization": f"Bearer {create_access_token(actor)}"}
