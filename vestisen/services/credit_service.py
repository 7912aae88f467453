"""
积分服务 - 积分价格配置、购买、确认入账与扣除

此服务提供：
1. 单行配置表的 get-or-create
2. 购买积分（可选 Stripe 卡支付）
3. 一次性确认入账（PENDING -> COMPLETED 条件更新，防止重复入账）
4. 原子性的积分扣除
"""
import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from vestisen.config import get_settings
from vestisen.models.credit import CreditTransaction, CreditPaymentMethod, TransactionStatus
from vestisen.models.credit_config import CreditConfig, CREDIT_CONFIG_ID
from vestisen.models.user import User
from vestisen.services import payment_gateway
from vestisen.services.errors import (
    ConflictError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
    ForbiddenError,
)
from vestisen.utils.codes import generate_unique_code
from vestisen.utils.metrics import CREDIT_PURCHASES_CONFIRMED
from vestisen.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)
settings = get_settings()

CENTS = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


async def get_or_create_config(db: AsyncSession) -> CreditConfig:
    """读取积分配置，不存在则以默认价格创建"""
    config = await db.get(CreditConfig, CREDIT_CONFIG_ID)
    if config:
        return config

    try:
        async with db.begin_nested():
            config = CreditConfig(
                id=CREDIT_CONFIG_ID,
                price_per_credit_fcfa=settings.default_price_per_credit_fcfa,
            )
            db.add(config)
    except IntegrityError:
        # 并发请求已创建
        config = await db.get(CreditConfig, CREDIT_CONFIG_ID, populate_existing=True)
    return config


class CreditService:
    """
    积分服务类

    使用方式:
        service = CreditService(db)
        tx = await service.purchase(user, Decimal("10"), "WAVE")
        await service.confirm(tx.id)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_config(self) -> CreditConfig:
        return await get_or_create_config(self.db)

    async def update_config(self, price_per_credit_fcfa: Decimal) -> CreditConfig:
        if price_per_credit_fcfa is None or price_per_credit_fcfa <= 0:
            raise ValidationError("Le prix par crédit doit être supérieur à 0")
        config = await self.get_config()
        config.price_per_credit_fcfa = quantize_money(price_per_credit_fcfa)
        await self.db.flush()
        return config

    async def get_balance(self, user_id: str) -> Decimal:
        result = await self.db.execute(
            select(User.credit_balance).where(User.id == user_id)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError("Utilisateur non trouvé", "USER_NOT_FOUND")
        return balance

    async def purchase(
        self,
        user: User,
        credits: Decimal,
        payment_method: str,
    ) -> CreditTransaction:
        """
        创建一笔待确认的积分购买

        amount_fcfa = 单价 x 积分数，四舍五入到 2 位小数。
        STRIPE 支付时创建 PaymentIntent，保存其 id 与 client_secret 供前端确认。
        """
        if credits is None or credits <= 0:
            raise ValidationError("Le nombre de crédits doit être positif")
        try:
            method = CreditPaymentMethod(payment_method)
        except ValueError:
            raise ValidationError(f"Méthode de paiement inconnue: {payment_method}")

        config = await self.get_config()
        amount = quantize_money(config.price_per_credit_fcfa * credits)

        tx = CreditTransaction(
            code=await generate_unique_code(self.db, CreditTransaction),
            user_id=user.id,
            amount_fcfa=amount,
            credits_added=credits,
            payment_method=method.value,
            status=TransactionStatus.PENDING.value,
            transaction_id=f"CRED-{int(time.time() * 1000)}-{user.id}",
        )

        if method == CreditPaymentMethod.STRIPE:
            intent = await payment_gateway.create_payment_intent(
                amount,
                {"type": "credit_purchase", "user_id": user.id, "code": tx.code},
            )
            if intent is not None:
                tx.payment_provider_id = intent.id
                tx.transaction_id = intent.client_secret

        self.db.add(tx)
        await self.db.flush()
        logger.info(
            "Credit purchase created: user=%s credits=%s amount=%s method=%s",
            user.id, credits, amount, method.value,
        )
        return tx

    async def list_transactions(self, user_id: str, limit: int = 100) -> List[CreditTransaction]:
        result = await self.db.execute(
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Tuple[List[CreditTransaction], int]:
        """管理后台：分页查询全部购买记录"""
        query = select(CreditTransaction)
        if status:
            query = query.where(CreditTransaction.status == status)
        if user_id:
            query = query.where(CreditTransaction.user_id == user_id)
        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(CreditTransaction.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def find_by_provider_id(self, provider_id: str) -> Optional[CreditTransaction]:
        result = await self.db.execute(
            select(CreditTransaction).where(CreditTransaction.payment_provider_id == provider_id)
        )
        return result.scalars().first()

    async def confirm(self, transaction_id: str, owner: Optional[User] = None) -> Decimal:
        """
        确认购买并入账（一次性）

        通过 status = PENDING 条件更新实现 compare-and-set，
        并发确认同一笔交易时只有一个请求能入账。

        Returns:
            入账后的余额
        """
        tx = await self.db.get(CreditTransaction, transaction_id)
        if tx is None:
            raise NotFoundError("Transaction non trouvée", "TRANSACTION_NOT_FOUND")
        if owner is not None and tx.user_id != owner.id:
            raise ForbiddenError("Cette transaction ne vous appartient pas")

        result = await self.db.execute(
            update(CreditTransaction)
            .where(
                CreditTransaction.id == transaction_id,
                CreditTransaction.status == TransactionStatus.PENDING.value,
            )
            .values(status=TransactionStatus.COMPLETED.value, paid_at=utc_now_naive())
            .returning(CreditTransaction.user_id, CreditTransaction.credits_added)
        )
        row = result.first()
        if row is None:
            await self.db.refresh(tx)
            if tx.status == TransactionStatus.COMPLETED.value:
                raise ConflictError("Transaction déjà complétée", "ALREADY_COMPLETED")
            raise ValidationError(
                f"Transaction non confirmable (statut {tx.status})", "INVALID_TRANSACTION_STATUS"
            )

        user_id, credits_added = row
        balance = await self._credit(user_id, credits_added)
        CREDIT_PURCHASES_CONFIRMED.labels(tx.payment_method).inc()
        logger.info("Credit purchase confirmed: tx=%s user=%s balance=%s", transaction_id, user_id, balance)
        return balance

    async def _credit(self, user_id: str, amount: Decimal) -> Decimal:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(credit_balance=User.credit_balance + amount)
            .returning(User.credit_balance)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError("Utilisateur non trouvé", "USER_NOT_FOUND")
        return balance

    async def deduct(self, user_id: str, amount: Decimal) -> Decimal:
        """
        扣除积分（原子操作）

        条件更新 balance >= amount，余额永不为负。

        Raises:
            InsufficientCreditsError: 余额不足
            NotFoundError: 用户不存在
        """
        if amount <= 0:
            return await self.get_balance(user_id)

        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.credit_balance >= amount)
            .values(credit_balance=User.credit_balance - amount)
            .returning(User.credit_balance)
        )
        balance_after = result.scalar_one_or_none()

        if balance_after is None:
            current_balance = await self.get_balance(user_id)
            raise InsufficientCreditsError(
                f"Solde de crédits insuffisant: {amount} requis, solde actuel {current_balance}"
            )
        return balance_after
