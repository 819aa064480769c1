from .catalog import Category, Product
from .sales import Sale
from .shop import ShopOwner
from .auth import User, SessionToken, ROLES

__all__ = [
    'Category', 'Product',
    'Sale',
    'ShopOwner',
    'User', 'SessionToken', 'ROLES',
]
