from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.core.errors import InsufficientStock, ProductNotFound
from storefront.persistence.models import ProductModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
    price: Decimal
    stock: int
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == "active"


def _snapshot(row: ProductModel) -> ProductSnapshot:
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        price=Decimal(row.price),
        stock=int(row.stock),
        status=row.status,
    )


class ProductCatalog:
    """Read access to products plus atomic stock counters.

    Stock is never changed by read-modify-write in Python; ``adjust_stock``
    issues a single conditional UPDATE so concurrent orders for the last unit
    cannot both succeed.
    """

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, product_id: str) -> ProductSnapshot:
        row = self.session.scalar(
            select(ProductModel).where(ProductModel.id == product_id).execution_options(populate_existing=True)
        )
        if row is None:
            raise ProductNotFound(product_id)
        return _snapshot(row)

    def find_many(self, product_ids: list[str]) -> dict[str, ProductSnapshot]:
        if not product_ids:
            return {}
        rows = self.session.scalars(select(ProductModel).where(ProductModel.id.in_(product_ids))).all()
        return {row.id: _snapshot(row) for row in rows}

    def adjust_stock(self, product_id: str, delta: int) -> ProductSnapshot:
        stmt = (
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .where(ProductModel.stock + delta >= 0)
            .values(stock=ProductModel.stock + delta, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            # Either the row is gone or the guard rejected the decrement.
            current = self.find_by_id(product_id)
            logger.info(
                "stock adjustment rejected: product_id=%s delta=%s stock=%s",
                product_id,
                delta,
                current.stock,
            )
            raise InsufficientStock(product_id, current.name, requested=-delta, available=current.stock)
        return self.find_by_id(product_id)

    def add_product(
        self,
        name: str,
        price: Decimal | int | str,
        stock: int,
        status: str = "active",
        product_id: str | None = None,
    ) -> ProductSnapshot:
        if stock < 0:
            raise ValueError("stock must be non-negative")
        row = ProductModel(
            name=name,
            price=Decimal(str(price)),
            stock=stock,
            status=status,
            updated_at=datetime.now(timezone.utc),
        )
        if product_id:
            row.id = product_id
        self.session.add(row)
        self.session.flush()
        return _snapshot(row)
