"""
安全相关工具：JWT、密码哈希、角色校验
"""
from datetime import timedelta
from typing import Optional
import secrets
import logging
import time
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from vestisen.config import get_settings
from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.utils.redis_client import redis_client
from vestisen.utils.timezone import utc_now_naive

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)
metrics_security = HTTPBasic(auto_error=False)
logger = logging.getLogger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """生成密码哈希"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建 JWT Token"""
    to_encode = data.copy()
    if "jti" not in to_encode:
        to_encode["jti"] = secrets.token_urlsafe(16)
    expire = utc_now_naive() + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def decode_token_payload(token: str) -> dict:
    """解码 JWT Token，失败抛出 JWTError"""
    return jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )


def decode_token(token: str) -> dict:
    """解码 JWT Token，失败返回 401"""
    try:
        return decode_token_payload(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Jeton d'authentification invalide",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def _ensure_token_not_revoked(payload: dict) -> None:
    if not settings.jwt_blacklist_enabled:
        return

    jti = payload.get("jti")
    if not jti:
        return

    try:
        if await redis_client.get(f"jwt:revoked:{jti}"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Jeton d'authentification révoqué",
            )
    except HTTPException:
        raise
    except Exception as exc:
        logger.warning("JWT blacklist check failed: %s", exc)
        if settings.jwt_blacklist_fail_closed:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Vérification d'authentification impossible",
            )


async def revoke_token(token: str) -> None:
    """将 token 的 jti 加入黑名单直到过期"""
    if not settings.jwt_blacklist_enabled:
        return
    try:
        payload = decode_token_payload(token)
    except JWTError:
        return
    jti = payload.get("jti")
    exp = payload.get("exp")
    if not jti or not exp:
        return
    ttl = int(exp - time.time())
    if ttl <= 0:
        return
    try:
        await redis_client.set(f"jwt:revoked:{jti}", "1", ex=ttl)
    except Exception as exc:
        logger.warning("JWT revoke failed: %s", exc)


async def _load_user(token: str, db: AsyncSession) -> User:
    payload = decode_token(token)
    await _ensure_token_not_revoked(payload)
    user_id = payload.get("sub")

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Jeton d'authentification invalide",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur introuvable",
        )

    if not user.enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Compte désactivé",
        )

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """获取当前登录用户"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentification requise",
        )
    return await _load_user(credentials.credentials, db)


async def get_seller_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """获取卖家用户 (VENDEUR 或 ADMIN)"""
    if not current_user.is_seller:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Réservé aux vendeurs",
        )
    return current_user


async def get_admin_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """获取管理员用户"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accès administrateur requis",
        )
    return current_user


async def verify_metrics_basic_auth(
    credentials: Optional[HTTPBasicCredentials] = Depends(metrics_security),
) -> None:
    """未配置账号时 /metrics 不做认证"""
    if not settings.metrics_basic_auth_user:
        return
    valid = (
        credentials is not None
        and secrets.compare_digest(credentials.username, settings.metrics_basic_auth_user)
        and secrets.compare_digest(credentials.password, settings.metrics_basic_auth_password)
    )
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )
