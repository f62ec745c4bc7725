"""ORM models for the persistent inventory store."""

from inventory_kernel.models.stock_item import StockItemModel

__all__ = ["StockItemModel"]
