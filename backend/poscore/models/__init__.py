from .inventory import Product, InStoreStock, OnlineVariantStock
from .reservations import StockReservation
from .promotions import Promotion
from .sales import PosTransaction, PosTransactionLine
from .returns import PosReturn, PosReturnLine
from .documents import DocumentSequence
from .audit import ActivityLog, TransactionLog
from .settings import SystemSetting

__all__ = [
    'Product', 'InStoreStock', 'OnlineVariantStock',
    'StockReservation',
    'Promotion',
    'PosTransaction', 'PosTransactionLine',
    'PosReturn', 'PosReturnLine',
    'DocumentSequence',
    'ActivityLog', 'TransactionLog',
    'SystemSetting',
]
