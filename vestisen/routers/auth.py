"""
认证路由：注册、邮箱验证、登录、密码管理
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks, Query
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.user import (
    UserRegister,
    UserLogin,
    UserResponse,
    UserUpdate,
    TokenResponse,
    MessageResponse,
    ForgotPasswordRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
)
from vestisen.services import email_service
from vestisen.services.errors import UnauthorizedError
from vestisen.services.user_service import UserService
from vestisen.utils.rate_limiter import RateLimiter
from vestisen.utils.redis_client import get_redis
from vestisen.utils.security import create_access_token, get_current_user, revoke_token, security

router = APIRouter()

# 每 IP 每小时最多注册 10 次
register_limiter = RateLimiter(times=10, seconds=3600, per_user=False)
# 每 IP 每 15 分钟最多 5 次找回密码 / 重发验证邮件
email_limiter = RateLimiter(times=5, seconds=900, per_user=False)

LOGIN_FAIL_LIMIT = 20  # 登录失败锁定次数
LIMIT_EXPIRE_SECONDS = 86400  # 24小时


def _issue_token(user: User) -> TokenResponse:
    access_token = create_access_token(
        data={"sub": user.id, "email": user.email, "role": user.role}
    )
    return TokenResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_limiter)],
)
async def register(
    data: UserRegister,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """用户注册，发送验证邮件（失败不影响注册）"""
    user = await UserService(db).register(data)
    background_tasks.add_task(
        email_service.send_verification_email, user.email, user.first_name, user.verification_token
    )
    return user


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """邮箱验证，成功后启用账号"""
    await UserService(db).verify_email(token)
    return MessageResponse(message="Email vérifié avec succès. Vous pouvez maintenant vous connecter.")


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(email_limiter)],
)
async def resend_verification(
    data: ResendVerificationRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).refresh_verification_token(data.email)
    if user:
        background_tasks.add_task(
            email_service.send_verification_email, user.email, user.first_name, user.verification_token
        )
    return MessageResponse(message="Si un compte non vérifié existe, un email a été envoyé.")


@router.post("/login", response_model=TokenResponse)
async def login(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
):
    """用户登录"""
    email_key = f"login_fail:{data.email.lower()}"

    fail_count = await redis_client.get(email_key)
    if fail_count and int(fail_count) >= LOGIN_FAIL_LIMIT:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Trop de tentatives échouées, compte temporairement bloqué",
        )

    try:
        user = await UserService(db).authenticate(data.email, data.password)
    except UnauthorizedError:
        await redis_client.incr(email_key)
        await redis_client.expire(email_key, LIMIT_EXPIRE_SECONDS)
        raise

    # 登录成功，清除失败计数
    await redis_client.delete(email_key)
    return _issue_token(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    current_user: User = Depends(get_current_user),
):
    await revoke_token(credentials.credentials)
    return MessageResponse(message="Déconnexion réussie")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(email_limiter)],
)
async def forgot_password(
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """找回密码，无论账号是否存在都返回相同结果"""
    user = await UserService(db).create_reset_token(data.email)
    if user:
        background_tasks.add_task(
            email_service.send_password_reset_email, user.email, user.first_name, user.reset_password_token
        )
    return MessageResponse(message="Si un compte existe pour cet email, un lien de réinitialisation a été envoyé.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).reset_password(data.token, data.new_password)
    return MessageResponse(message="Mot de passe réinitialisé avec succès")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).change_password(current_user, data.old_password, data.new_password)
    return MessageResponse(message="Mot de passe modifié avec succès")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """获取当前用户信息"""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).update_profile(current_user, data)
