from .stores import Store
from .auth import Role, User, SessionToken
from .catalog import Product, ProductBatch, BatchStatus
from .inventory import Inventory, InventoryStatus, DisposalReason
from .supply_orders import (
    SupplyOrder,
    SupplyOrderItem,
    SupplyOrderItemBatch,
    SupplyOrderStatus,
    SupplyOrderItemStatus,
)

__all__ = [
    'Store',
    'Role', 'User', 'SessionToken',
    'Product', 'ProductBatch', 'BatchStatus',
    'Inventory', 'InventoryStatus', 'DisposalReason',
    'SupplyOrder', 'SupplyOrderItem', 'SupplyOrderItemBatch',
    'SupplyOrderStatus', 'SupplyOrderItemStatus',
]
