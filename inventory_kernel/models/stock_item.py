"""
Stock item ORM model.

One row per SKU; the unique constraint on ``sku`` is what makes concurrent
upserts for the same key resolve to a single row.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class StockItemModel(TrackedBase):
    """Persisted stock record keyed by SKU."""

    __tablename__ = "stock_items"
    __table_args__ = (UniqueConstraint("sku", name="uq_stock_items_sku"),)

    sku: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(200), nullable=False)
    unit: Mapped[str] = mapped_column(String(100), nullable=False)
    current_stock: Mapped[float] = mapped_column(nullable=False)
    reorder_level: Mapped[float] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(100), nullable=False)

    def apply_fields(self, fields: dict[str, Any]) -> None:
        """Overwrite the non-key columns from an upsert payload."""
        self.item_name = fields["item_name"]
        self.category = fields["category"]
        self.unit = fields["unit"]
        self.current_stock = fields["current_stock"]
        self.reorder_level = fields["reorder_level"]
        self.status = fields["status"]

    def to_fields(self) -> dict[str, Any]:
        return {
            "item_name": self.item_name,
            "category": self.category,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "reorder_level": self.reorder_level,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<StockItem {self.sku}: {self.item_name} ({self.current_stock} {self.unit})>"
