"""
管理后台相关 Schemas
"""
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from vestisen.models.user import UserRole
from vestisen.schemas.annonce import AnnonceResponse
from vestisen.schemas.credit import CreditTransactionResponse
from vestisen.schemas.user import UserResponse


# ============================================================================
# 用户管理
# ============================================================================
class AdminUserCreate(BaseModel):
    """管理员创建用户（直接启用并视为已验证）"""
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    whatsapp: Optional[str] = Field(default=None, max_length=30)
    role: UserRole = UserRole.USER


class AdminUserUpdate(BaseModel):
    """管理员部分更新用户"""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    whatsapp: Optional[str] = Field(default=None, max_length=30)
    role: Optional[UserRole] = None
    enabled: Optional[bool] = None
    email_verified: Optional[bool] = None
    credit_balance: Optional[Decimal] = Field(default=None, ge=0)


class AdminUserResponse(UserResponse):
    """用户信息（含发布数）"""
    annonces_count: int = 0


class UserListResponse(BaseModel):
    users: List[AdminUserResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# 发布审核
# ============================================================================
class AdminAnnonceListResponse(BaseModel):
    annonces: List[AnnonceResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# 积分交易
# ============================================================================
class AdminCreditTransactionList(BaseModel):
    transactions: List[CreditTransactionResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# 操作日志
# ============================================================================
class ActionLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    user_role: Optional[str] = None
    http_method: str
    request_uri: str
    query_string: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    action_label: Optional[str] = None
    response_status: Optional[int] = None
    success: bool
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActionLogListResponse(BaseModel):
    logs: List[ActionLogResponse]
    total: int
    page: int
    page_size: int
