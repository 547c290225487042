#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata
from marketplace.data.models.profile import ProfileModel
from marketplace.data.models.item import ItemModel
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.market import MarketModel
from marketplace.data.models.market_enrollment import MarketEnrollmentModel
from marketplace.data.models.hanger_rental import HangerRentalModel

__all__ = [
    "ProfileModel",
    "ItemModel",
    "CartModel",
    "CartItemModel",
    "MarketModel",
    "MarketEnrollmentModel",
    "HangerRentalModel",
]
