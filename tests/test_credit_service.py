"""
积分服务测试：原子扣除与一次性确认入账
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from vestisen import database
from vestisen.models.credit import TransactionStatus, CreditTransaction
from vestisen.models.user import User, UserRole
from vestisen.services.credit_service import CreditService, quantize_money
from vestisen.services.errors import ConflictError, InsufficientCreditsError, ValidationError

from tests.conftest import create_user

pytestmark = pytest.mark.anyio


async def _balance(user_id: str) -> Decimal:
    async with database.AsyncSessionLocal() as session:
        result = await session.execute(select(User.credit_balance).where(User.id == user_id))
        return result.scalar_one()


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("10.005")) == Decimal("10.01")
    assert quantize_money(Decimal("3")) == Decimal("3.00")


async def test_deduct_reduces_balance(seeded):
    seller = await create_user("deduct@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))

    async with database.AsyncSessionLocal() as session:
        balance = await CreditService(session).deduct(seller.id, Decimal("15"))
        await session.commit()

    assert balance == Decimal("5")
    assert await _balance(seller.id) == Decimal("5")


async def test_deduct_never_goes_negative(seeded):
    seller = await create_user("poor@vestisen.sn", UserRole.VENDEUR, balance=Decimal("10"))

    async with database.AsyncSessionLocal() as session:
        with pytest.raises(InsufficientCreditsError):
            await CreditService(session).deduct(seller.id, Decimal("15"))
        await session.rollback()

    assert await _balance(seller.id) == Decimal("10")


async def test_deduct_zero_is_noop(seeded):
    seller = await create_user("free@vestisen.sn", UserRole.VENDEUR)

    async with database.AsyncSessionLocal() as session:
        balance = await CreditService(session).deduct(seller.id, Decimal("0"))

    assert balance == Decimal("0")


async def test_purchase_computes_amount_from_config(seeded):
    seller = await create_user("buyer@vestisen.sn", UserRole.VENDEUR)

    async with database.AsyncSessionLocal() as session:
        service = CreditService(session)
        await service.update_config(Decimal("100"))
        tx = await service.purchase(seller, Decimal("10"), "WAVE")
        await session.commit()

    assert tx.amount_fcfa == Decimal("1000.00")
    assert tx.status == TransactionStatus.PENDING.value
    assert tx.transaction_id.startswith("CRED-")


async def test_purchase_rejects_unknown_method(seeded):
    seller = await create_user("method@vestisen.sn", UserRole.VENDEUR)

    async with database.AsyncSessionLocal() as session:
        with pytest.raises(ValidationError):
            await CreditService(session).purchase(seller, Decimal("5"), "BITCOIN")


async def test_confirm_credits_exactly_once(seeded):
    seller = await create_user("confirm@vestisen.sn", UserRole.VENDEUR, balance=Decimal("2"))

    async with database.AsyncSessionLocal() as session:
        tx = await CreditService(session).purchase(seller, Decimal("10"), "ORANGE_MONEY")
        await session.commit()

    async with database.AsyncSessionLocal() as session:
        balance = await CreditService(session).confirm(tx.id)
        await session.commit()
    assert balance == Decimal("12")

    async with database.AsyncSessionLocal() as session:
        with pytest.raises(ConflictError):
            await CreditService(session).confirm(tx.id)
        await session.rollback()

    assert await _balance(seller.id) == Decimal("12")
    async with database.AsyncSessionLocal() as session:
        stored = await session.get(CreditTransaction, tx.id)
        assert stored.status == TransactionStatus.COMPLETED.value
        assert stored.paid_at is not None
