"""
数据库模型
"""
from vestisen.models.user import User, UserRole
from vestisen.models.category import Category
from vestisen.models.publication_tarif import PublicationTarif
from vestisen.models.annonce import Annonce, AnnonceStatus, AnnonceCondition
from vestisen.models.credit_config import CreditConfig
from vestisen.models.credit import CreditTransaction, TransactionStatus, CreditPaymentMethod
from vestisen.models.payment import Payment, PaymentMethod, PaymentStatus
from vestisen.models.cart_item import CartItem
from vestisen.models.review import Review
from vestisen.models.conversation import Conversation, Message
from vestisen.models.action_log import ActionLog

__all__ = [
    "User",
    "UserRole",
    "Category",
    "PublicationTarif",
    "Annonce",
    "AnnonceStatus",
    "AnnonceCondition",
    "CreditConfig",
    "CreditTransaction",
    "TransactionStatus",
    "CreditPaymentMethod",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "CartItem",
    "Review",
    "Conversation",
    "Message",
    "ActionLog",
]
