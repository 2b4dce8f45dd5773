from .tenancy import Store
from .inventory import Product
from .sales import Invoice, InvoiceItem
from .customers import Customer
from .auth import StoreSession

__all__ = [
    'Store',
    'Product',
    'Invoice', 'InvoiceItem',
    'Customer',
    'StoreSession',
]
