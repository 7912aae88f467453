"""
发布支付服务 (按单条发布直接付费)

每个 annonce 仅一笔支付，金额为档位价格；确认支付后通过统一的审核流程上架。
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.models.annonce import AnnonceStatus
from vestisen.models.payment import Payment, PaymentMethod, PaymentStatus
from vestisen.models.user import User
from vestisen.services import payment_gateway
from vestisen.services.annonce_service import AnnonceService
from vestisen.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from vestisen.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.annonces = AnnonceService(db)

    async def create(self, user: User, annonce_id: str, method: PaymentMethod) -> Payment:
        annonce = await self.annonces.get(annonce_id)
        if annonce.seller_id != user.id:
            raise ForbiddenError("Cette annonce ne vous appartient pas")

        existing = await self.db.execute(select(Payment.id).where(Payment.annonce_id == annonce.id))
        if existing.first():
            raise ConflictError("Un paiement existe déjà pour cette annonce", "PAYMENT_EXISTS")

        tarif = await self.annonces.find_tarif(annonce.publication_type, active_only=False)
        amount = max(tarif.price, Decimal("0")) if tarif and tarif.price is not None else Decimal("0")

        payment = Payment(
            annonce_id=annonce.id,
            user_id=user.id,
            amount=amount,
            payment_method=method.value,
            status=PaymentStatus.PENDING.value,
        )
        self.db.add(payment)
        await self.db.flush()

        if method == PaymentMethod.PAIEMENT_LIVRAISON:
            payment.transaction_id = f"LIVRAISON-{payment.id}"
        elif method == PaymentMethod.STRIPE:
            intent = await payment_gateway.create_payment_intent(
                amount,
                {"type": "annonce_payment", "annonce_id": annonce.id, "payment_id": payment.id},
            )
            if intent is not None:
                payment.payment_provider_id = intent.id
                payment.transaction_id = intent.client_secret
        await self.db.flush()
        logger.info("Payment created: annonce=%s method=%s amount=%s", annonce.id, method.value, amount)
        return payment

    async def get(self, payment_id: str) -> Payment:
        payment = await self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Paiement non trouvé", "PAYMENT_NOT_FOUND")
        return payment

    async def find_by_provider_id(self, provider_id: str) -> Optional[Payment]:
        result = await self.db.execute(select(Payment).where(Payment.payment_provider_id == provider_id))
        return result.scalars().first()

    async def list_for_user(self, user_id: str) -> List[Payment]:
        result = await self.db.execute(
            select(Payment).where(Payment.user_id == user_id).order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    async def confirm(self, payment_id: str, owner: Optional[User] = None) -> Payment:
        """
        确认支付 (PENDING -> COMPLETED 一次性)，随后审核通过对应发布
        """
        payment = await self.get(payment_id)
        if owner is not None and payment.user_id != owner.id:
            raise ForbiddenError("Ce paiement ne vous appartient pas")

        result = await self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING.value)
            .values(status=PaymentStatus.COMPLETED.value, paid_at=utc_now_naive())
            .returning(Payment.id)
        )
        if result.first() is None:
            await self.db.refresh(payment)
            if payment.status == PaymentStatus.COMPLETED.value:
                raise ConflictError("Paiement déjà effectué", "ALREADY_COMPLETED")
            raise ValidationError(f"Paiement non confirmable (statut {payment.status})", "INVALID_PAYMENT_STATUS")

        annonce = await self.annonces.get(payment.annonce_id)
        if annonce.status in (AnnonceStatus.PENDING.value, AnnonceStatus.APPROVED.value):
            await self.annonces.approve(annonce.id)
        logger.info("Payment confirmed: %s (annonce %s)", payment.id, payment.annonce_id)
        return payment
