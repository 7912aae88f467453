"""
用户服务 - 注册、邮箱验证、密码找回、登录校验与管理员用户管理
"""
import logging
import secrets
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.config import get_settings
from vestisen.models.annonce import Annonce
from vestisen.models.user import User, UserRole
from vestisen.schemas.admin import AdminUserCreate, AdminUserUpdate
from vestisen.schemas.user import UserRegister, UserUpdate
from vestisen.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from vestisen.utils.codes import generate_unique_code
from vestisen.utils.security import get_password_hash, verify_password
from vestisen.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)
settings = get_settings()


def validate_password_strength(password: str) -> None:
    if len(password) < settings.password_min_length:
        raise ValidationError(
            f"Le mot de passe doit contenir au moins {settings.password_min_length} caractères",
            "WEAK_PASSWORD",
        )
    if password.strip() != password:
        raise ValidationError("Le mot de passe ne peut pas commencer ou finir par un espace", "WEAK_PASSWORD")


def _new_token() -> str:
    return secrets.token_urlsafe(32)


class UserService:
    """用户服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("Utilisateur non trouvé", "USER_NOT_FOUND")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def _ensure_unique(self, email: Optional[str], phone: Optional[str], exclude_id: Optional[str] = None) -> None:
        if email:
            query = select(User.id).where(User.email == email.lower())
            if exclude_id:
                query = query.where(User.id != exclude_id)
            if (await self.db.execute(query)).first():
                raise ConflictError("Cet email est déjà utilisé", "EMAIL_EXISTS")
        if phone:
            query = select(User.id).where(User.phone == phone)
            if exclude_id:
                query = query.where(User.id != exclude_id)
            if (await self.db.execute(query)).first():
                raise ConflictError("Ce numéro de téléphone est déjà utilisé", "PHONE_EXISTS")

    # ------------------------------------------------------------------
    # 注册与验证
    # ------------------------------------------------------------------
    async def register(self, data: UserRegister) -> User:
        """注册：账号未启用、未验证，生成 24 小时有效的验证令牌"""
        validate_password_strength(data.password)
        await self._ensure_unique(data.email, data.phone)

        user = User(
            code=await generate_unique_code(self.db, User),
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            address=data.address,
            whatsapp=data.whatsapp,
            role=data.account_type,
            enabled=False,
            email_verified=False,
            verification_token=_new_token(),
            verification_token_expiry=utc_now_naive() + timedelta(hours=settings.verification_token_hours),
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("User registered: %s (%s)", user.id, user.role)
        return user

    async def verify_email(self, token: Optional[str]) -> User:
        if not token:
            raise ValidationError("Token de vérification manquant", "TOKEN_MISSING")
        result = await self.db.execute(select(User).where(User.verification_token == token))
        user = result.scalar_one_or_none()
        if user is None:
            raise ValidationError("Token de vérification invalide", "TOKEN_INVALID")
        if user.email_verified:
            raise ValidationError("Email déjà vérifié", "ALREADY_VERIFIED")
        if user.verification_token_expiry and user.verification_token_expiry < utc_now_naive():
            raise ValidationError("Token de vérification expiré", "TOKEN_EXPIRED")

        user.email_verified = True
        user.enabled = True
        user.verification_token = None
        user.verification_token_expiry = None
        await self.db.flush()
        return user

    async def refresh_verification_token(self, email: str) -> Optional[User]:
        """重新生成验证令牌，账号不存在或已验证时返回 None"""
        user = await self.get_by_email(email)
        if user is None or user.email_verified:
            return None
        user.verification_token = _new_token()
        user.verification_token_expiry = utc_now_naive() + timedelta(hours=settings.verification_token_hours)
        await self.db.flush()
        return user

    # ------------------------------------------------------------------
    # 密码
    # ------------------------------------------------------------------
    async def create_reset_token(self, email: str) -> Optional[User]:
        """生成 1 小时有效的重置令牌，账号不存在时返回 None"""
        user = await self.get_by_email(email)
        if user is None:
            return None
        user.reset_password_token = _new_token()
        user.reset_password_token_expiry = utc_now_naive() + timedelta(hours=settings.reset_token_hours)
        await self.db.flush()
        return user

    async def reset_password(self, token: str, new_password: str) -> User:
        result = await self.db.execute(select(User).where(User.reset_password_token == token))
        user = result.scalar_one_or_none()
        if user is None:
            raise ValidationError("Token de réinitialisation invalide", "TOKEN_INVALID")
        if user.reset_password_token_expiry and user.reset_password_token_expiry < utc_now_naive():
            raise ValidationError("Token de réinitialisation expiré", "TOKEN_EXPIRED")

        validate_password_strength(new_password)
        user.password_hash = get_password_hash(new_password)
        user.reset_password_token = None
        user.reset_password_token_expiry = None
        await self.db.flush()
        return user

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password, user.password_hash):
            raise ValidationError("Ancien mot de passe incorrect", "WRONG_PASSWORD")
        validate_password_strength(new_password)
        user.password_hash = get_password_hash(new_password)
        await self.db.flush()

    # ------------------------------------------------------------------
    # 登录
    # ------------------------------------------------------------------
    async def authenticate(self, email: str, password: str) -> User:
        """
        校验账号密码

        Raises:
            UnauthorizedError: 账号或密码错误
            ForbiddenError: 邮箱未验证（管理员除外）或账号被禁用
        """
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Email ou mot de passe incorrect", "INVALID_CREDENTIALS")
        if not user.email_verified and not user.is_admin:
            raise ForbiddenError("Veuillez vérifier votre email avant de vous connecter", "EMAIL_NOT_VERIFIED")
        if not user.enabled:
            raise ForbiddenError("Compte désactivé", "ACCOUNT_DISABLED")

        user.last_login_at = utc_now_naive()
        await self.db.flush()
        return user

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if changes.get("phone"):
            await self._ensure_unique(None, changes["phone"], exclude_id=user.id)
        for field, value in changes.items():
            if field in ("first_name", "last_name") and not value:
                continue
            setattr(user, field, value)
        await self.db.flush()
        return user

    # ------------------------------------------------------------------
    # 管理员
    # ------------------------------------------------------------------
    async def admin_create(self, data: AdminUserCreate) -> User:
        """管理员创建的用户直接启用并视为已验证"""
        validate_password_strength(data.password)
        await self._ensure_unique(data.email, data.phone)
        user = User(
            code=await generate_unique_code(self.db, User),
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            address=data.address,
            whatsapp=data.whatsapp,
            role=data.role.value,
            enabled=True,
            email_verified=True,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def admin_update(self, user_id: str, data: AdminUserUpdate) -> User:
        user = await self.get(user_id)
        changes = data.model_dump(exclude_unset=True)

        await self._ensure_unique(changes.get("email"), changes.get("phone"), exclude_id=user.id)

        password = changes.pop("password", None)
        if password:
            validate_password_strength(password)
            user.password_hash = get_password_hash(password)
        if "email" in changes and changes["email"]:
            changes["email"] = changes["email"].lower()
        if "role" in changes and changes["role"] is not None:
            changes["role"] = changes["role"].value
        for field, value in changes.items():
            if value is None and field in ("email", "first_name", "last_name", "role", "enabled",
                                           "email_verified", "credit_balance"):
                continue
            setattr(user, field, value)
        await self.db.flush()
        return user

    async def admin_delete(self, user_id: str) -> None:
        user = await self.get(user_id)
        if user.role == UserRole.ADMIN.value:
            raise ForbiddenError("Impossible de supprimer un administrateur", "ADMIN_IMMUNE")
        await self.db.delete(user)
        await self.db.flush()
        logger.info("User deleted by admin: %s", user_id)

    async def count_annonces(self, user_ids: List[str]) -> dict:
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(Annonce.seller_id, func.count(Annonce.id))
            .where(Annonce.seller_id.in_(user_ids))
            .group_by(Annonce.seller_id)
        )
        return {seller_id: count for seller_id, count in result.all()}

    async def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        query = select(User)
        if search:
            query = query.where(or_(
                User.email.icontains(search, autoescape=True),
                User.first_name.icontains(search, autoescape=True),
                User.last_name.icontains(search, autoescape=True),
                User.phone.icontains(search, autoescape=True),
            ))
        if role:
            query = query.where(User.role == role)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
