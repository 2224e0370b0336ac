"""
Pytest fixtures for testing
"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from wardrobe.infrastructure.db.session import Base
from wardrobe.infrastructure.db import models


def _create_schema(engine):
    # SQLite doesn't support JSONB - remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine: separate sessions get separate connections."""
    engine = create_engine(f"sqlite:///{tmp_path / 'wardrobe.db'}")
    _create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def sample_user_id():
    """Sample user ID for tests"""
    return 1


@pytest.fixture
def wardrobe_items(db_session, sample_user_id):
    """
    Seed the item-family stores and combos for sample_user_id.

    2025 purchases: 620.00 over 5 items (January 50, March 550, June 20).
    Zara-branded in 2025: 80.00 over 2 menswear items.
    """
    uid = sample_user_id
    suit = models.MenswearItem(
        user_id=uid, name="Navy suit", category="suits", brand="Hugo Boss",
        final_price=Decimal("400.00"), purchase_date=date(2025, 3, 5),
    )
    dress = models.WomenswearItem(
        user_id=uid, name="Silk dress", category="dresses", brand="Mango",
        final_price=Decimal("120.00"), purchase_date=date(2025, 3, 2),
    )
    db_session.add_all([
        models.MenswearItem(
            user_id=uid, name="Oxford shirt", category="shirts", brand="Zara",
            final_price=Decimal("50.00"), purchase_date=date(2025, 1, 10),
        ),
        suit,
        models.MenswearItem(
            user_id=uid, name="Linen shirt", category="shirts", brand="ZARA Man",
            final_price=Decimal("30.00"), purchase_date=date(2025, 3, 20),
        ),
        dress,
        models.WomenswearItem(
            user_id=uid, name="Wrap dress", category="dresses", brand="Zara",
            final_price=Decimal("80.00"), purchase_date=date(2024, 12, 31),
        ),
        models.KidswearItem(
            user_id=uid, name="Striped tee", category="tops", age_group="toddler", brand="Gap",
            final_price=Decimal("20.00"), purchase_date=date(2025, 6, 1),
        ),
        models.MenswearItem(
            user_id=uid + 1, name="Someone else's coat", category="coats", brand="Zara",
            final_price=Decimal("999.00"), purchase_date=date(2025, 3, 1),
        ),
    ])
    db_session.flush()

    db_session.add_all([
        models.StyleComboModel(
            user_id=uid, name="Summer wedding", event_tag="Wedding", total_price=Decimal("300.00"),
            created_at=datetime(2025, 5, 1, 10, 0),
            items=[
                models.StyleComboItemModel(item_family="menswear", item_id=suit.id),
                models.StyleComboItemModel(item_family="womenswear", item_id=dress.id),
            ],
        ),
        models.StyleComboModel(
            user_id=uid, name="Office", event_tag="work", total_price=Decimal("100.00"),
            created_at=datetime(2025, 2, 1, 9, 0),
        ),
        models.StyleComboModel(
            user_id=uid, name="Last year's wedding", event_tag="wedding", total_price=Decimal("500.00"),
            created_at=datetime(2024, 6, 1, 9, 0),
        ),
    ])
    db_session.commit()
    return {"suit_id": suit.id, "dress_id": dress.id}
