#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from app.data.models.order import OrderModel
from app.data.models.cart_item import CartItemModel

__all__ = ["OrderModel", "CartItemModel"]
