"""Models package - exports all SQLAlchemy models."""
# Directory / catalog
from praetor.models.app_user import AppUser, UserRole
from praetor.models.client import Client
from praetor.models.product import Product
from praetor.models.special_bid import SpecialBid

# Commercial documents
from praetor.models.quote import Quote, QuoteStatus, is_quote_expired
from praetor.models.quote_item import QuoteItem
from praetor.models.client_order import ClientOrder, OrderStatus
from praetor.models.client_order_item import ClientOrderItem

# Downstream records
from praetor.models.project import Project
from praetor.models.notification import Notification

__all__ = [
    'AppUser', 'UserRole', 'Client', 'Product', 'SpecialBid',
    'Quote', 'QuoteStatus', 'is_quote_expired', 'QuoteItem',
    'ClientOrder', 'OrderStatus', 'ClientOrderItem',
    'Project', 'Notification',
]
