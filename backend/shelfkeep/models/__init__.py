from .catalog import Category, Product, UNIT_TYPES
from .inventory import StockMovement, MOVEMENT_TYPES
from .sales import SalesOrder, SalesItem

__all__ = [
    'Category', 'Product', 'UNIT_TYPES',
    'StockMovement', 'MOVEMENT_TYPES',
    'SalesOrder', 'SalesItem',
]
