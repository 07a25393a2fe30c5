from .auth import User, SessionToken
from .tenancy import Shop, UserShop
from .invoices import Invoice, InvoiceItem
from .catalog import Product

__all__ = [
    'User', 'SessionToken',
    'Shop', 'UserShop',
    'Invoice', 'InvoiceItem',
    'Product',
]
