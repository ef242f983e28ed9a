from .catalog import Product, SkuSequence
from .ledger import SaleTransaction, SaleTransactionItem
from .store import StoreSettings, Seller

__all__ = [
    'Product', 'SkuSequence',
    'SaleTransaction', 'SaleTransactionItem',
    'StoreSettings', 'Seller',
]
