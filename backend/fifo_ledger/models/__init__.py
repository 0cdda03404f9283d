from .catalog import Store, Item, StaffMember
from .inventory import InventoryLot, Transfer, ActivityLogEntry

__all__ = [
    'Store', 'Item', 'StaffMember',
    'InventoryLot', 'Transfer', 'ActivityLogEntry',
]
