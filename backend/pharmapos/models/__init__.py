from .inventory import Product, Sale
from .auth import User, SessionToken

__all__ = [
    'Product', 'Sale',
    'User', 'SessionToken',
]
