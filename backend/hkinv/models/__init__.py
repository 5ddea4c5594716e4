from .master import User, Category, Supplier, USER_ROLES, RECORD_STATUSES
from .inventory import (
    Item,
    Transaction,
    Depreciation,
    TRANSACTION_TYPES,
    TRANSACTION_STATUSES,
    DEPRECIATION_STATUSES,
)
from .cost_control import CostItemDefinition, LaundryLogEntry, DEFAULT_COST_ITEMS

__all__ = [
    'User', 'Category', 'Supplier',
    'Item', 'Transaction', 'Depreciation',
    'CostItemDefinition', 'LaundryLogEntry',
    'USER_ROLES', 'RECORD_STATUSES',
    'TRANSACTION_TYPES', 'TRANSACTION_STATUSES', 'DEPRECIATION_STATUSES',
    'DEFAULT_COST_ITEMS',
]
