"""
Item catalog gateway - read access to the item-family stores and StyleCombos

The menswear/womenswear/kidswear stores and the combo store belong to the
wardrobe CRUD side. Reports fan out over them here; any storage failure is
reported as DependencyError so that no partial report is ever built.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from wardrobe.domain.budget import ITEM_FAMILIES
from wardrobe.domain.errors import DependencyError
from wardrobe.infrastructure.db.models import (
    MenswearItem, WomenswearItem, KidswearItem, StyleComboModel,
)

logger = logging.getLogger(__name__)

_FAMILY_MODELS = {
    "menswear": MenswearItem,
    "womenswear": WomenswearItem,
    "kidswear": KidswearItem,
}


@dataclass(frozen=True)
class PurchaseRecord:
    family: str
    item_id: int
    user_id: int
    name: str
    category: str
    brand: str | None
    final_price: Decimal
    purchase_date: date
    age_group: str | None = None

    @property
    def group_key(self) -> str:
        """Reports group kidswear by age group, the other families by category."""
        if self.family == "kidswear":
            return self.age_group or self.category
        return self.category


@dataclass(frozen=True)
class ComboRecord:
    combo_id: int
    user_id: int
    name: str
    event_tag: str | None
    created_at: datetime
    total_price: Decimal
    items: Dict[str, Tuple[int, ...]] = field(default_factory=dict)


class ItemCatalog:
    """Gateway over the external item stores."""

    def __init__(self, db: Session):
        self.db = db

    def purchases(
        self,
        family: str,
        user_id: int,
        date_from: date,
        date_to: date,
        brand_contains: str | None = None,
    ) -> List[PurchaseRecord]:
        """
        Items of one family bought in [date_from, date_to)

        Raises:
            DependencyError: the store could not be read
        """
        model = _FAMILY_MODELS[family]
        query = self.db.query(model).filter(
            model.user_id == user_id,
            model.purchase_date >= date_from,
            model.purchase_date < date_to,
        )
        if brand_contains:
            query = query.filter(
                func.lower(model.brand).contains(brand_contains.lower(), autoescape=True)
            )

        try:
            rows = query.order_by(model.purchase_date, model.id).all()
        except SQLAlchemyError as exc:
            self._fail(family, exc)

        return [
            PurchaseRecord(
                family=family,
                item_id=r.id,
                user_id=r.user_id,
                name=r.name,
                category=r.category,
                brand=r.brand,
                final_price=r.final_price,
                purchase_date=r.purchase_date,
                age_group=getattr(r, "age_group", None),
            )
            for r in rows
        ]

    def purchases_by_family(
        self,
        user_id: int,
        date_from: date,
        date_to: date,
        brand_contains: str | None = None,
    ) -> Dict[str, List[PurchaseRecord]]:
        """Fan out over the three family stores; all or nothing."""
        return {
            family: self.purchases(family, user_id, date_from, date_to, brand_contains)
            for family in ITEM_FAMILIES
        }

    def combos(
        self,
        user_id: int,
        created_from: datetime,
        created_to: datetime,
        event_contains: str | None = None,
    ) -> List[ComboRecord]:
        """
        Combos created in [created_from, created_to), optionally by event tag substring

        Raises:
            DependencyError: the combo store could not be read
        """
        query = (
            self.db.query(StyleComboModel)
            .options(selectinload(StyleComboModel.items))
            .filter(
                StyleComboModel.user_id == user_id,
                StyleComboModel.created_at >= created_from,
                StyleComboModel.created_at < created_to,
            )
        )
        if event_contains:
            query = query.filter(
                func.lower(StyleComboModel.event_tag).contains(event_contains.lower(), autoescape=True)
            )

        try:
            rows = query.order_by(StyleComboModel.created_at, StyleComboModel.id).all()
        except SQLAlchemyError as exc:
            self._fail("stylecombo", exc)

        result = []
        for r in rows:
            items = {family: [] for family in ITEM_FAMILIES}
            for link in r.items:
                items.setdefault(link.item_family, []).append(link.item_id)
            result.append(ComboRecord(
                combo_id=r.id,
                user_id=r.user_id,
                name=r.name,
                event_tag=r.event_tag,
                created_at=r.created_at,
                total_price=r.total_price,
                items={family: tuple(ids) for family, ids in items.items()},
            ))
        return result

    def _fail(self, store: str, exc: SQLAlchemyError):
        logger.warning("Store %s unavailable: %s", store, exc)
        self.db.rollback()
        raise DependencyError(store, str(exc.__class__.__name__)) from exc
