"""
Stripe 支付网关

Stripe SDK 为同步调用，放入线程池执行避免阻塞事件循环。
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from vestisen.config import get_settings
from vestisen.services.errors import PaymentGatewayError

logger = logging.getLogger(__name__)
settings = get_settings()

MIN_INTENT_AMOUNT = 100


def is_configured() -> bool:
    return bool(settings.stripe_secret_key)


def to_minor_units(amount_fcfa: Decimal) -> int:
    """FCFA 金额转换为网关最小单位 (x100)，不低于 100"""
    amount = int((amount_fcfa * 100).to_integral_value(rounding=ROUND_HALF_UP))
    return max(MIN_INTENT_AMOUNT, amount)


async def create_payment_intent(amount_fcfa: Decimal, metadata: dict) -> Optional[stripe.PaymentIntent]:
    """
    创建 PaymentIntent，未配置密钥时返回 None

    Raises:
        PaymentGatewayError: 网关调用失败
    """
    if not is_configured():
        return None

    stripe.api_key = settings.stripe_secret_key
    params = {
        "amount": to_minor_units(amount_fcfa),
        "currency": settings.stripe_currency,
        "payment_method_types": ["card"],
        "metadata": metadata,
    }
    try:
        intent = await run_in_threadpool(stripe.PaymentIntent.create, **params)
    except stripe.StripeError as exc:
        logger.error("Stripe PaymentIntent creation failed: %s", exc)
        raise PaymentGatewayError("Erreur lors de la création du paiement par carte") from exc

    logger.info("Stripe PaymentIntent created: %s", intent.id)
    return intent


def construct_webhook_event(payload: bytes, sig_header: Optional[str]):
    """
    校验签名并解析 webhook 事件

    Raises:
        ValueError / stripe.SignatureVerificationError: 载荷或签名无效
    """
    return stripe.Webhook.construct_event(
        payload=payload, sig_header=sig_header, secret=settings.stripe_webhook_secret
    )
