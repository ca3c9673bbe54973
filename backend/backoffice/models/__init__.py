from .tenancy import Company, Store
from .catalog import Product, Vendor, Customer
from .inventory import Inventory, StockMovement
from .purchases import Purchase, PurchaseItem
from .sales import Sale, SaleItem
from .documents import (
    Transfer, TransferItem,
    PurchaseReturn, PurchaseReturnItem,
    SaleReturn, SaleReturnItem,
    DocumentSequence,
)

__all__ = [
    'Company', 'Store',
    'Product', 'Vendor', 'Customer',
    'Inventory', 'StockMovement',
    'Purchase', 'PurchaseItem',
    'Sale', 'SaleItem',
    'Transfer', 'TransferItem',
    'PurchaseReturn', 'PurchaseReturnItem',
    'SaleReturn', 'SaleReturnItem',
    'DocumentSequence',
]
