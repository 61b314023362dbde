from .locations import Location, LocationKind, Store, Vendor
from .catalog import Product, ProductPricing, Barcode, StorePriceOverride, UnitType
from .ledger import Movement, MovementAction
from .store_activity import StoreCount, StorePayment
from .alerts import Alert, AlertType, AlertSeverity, AlertStatus
from .auth import User, SessionToken

__all__ = [
    'Location', 'LocationKind', 'Store', 'Vendor',
    'Product', 'ProductPricing', 'Barcode', 'StorePriceOverride', 'UnitType',
    'Movement', 'MovementAction',
    'StoreCount', 'StorePayment',
    'Alert', 'AlertType', 'AlertSeverity', 'AlertStatus',
    'User', 'SessionToken',
]
