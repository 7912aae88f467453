"""
用户相关 Schemas
"""
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    cleaned = value.strip()
    if not cleaned:
        return None
    if "<" in cleaned or ">" in cleaned:
        raise ValueError("Caractères non autorisés")
    return cleaned


class UserRegister(BaseModel):
    """用户注册请求"""
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    whatsapp: Optional[str] = Field(default=None, max_length=30)
    account_type: Literal["USER", "VENDEUR"] = "USER"

    @field_validator("phone", "address", "whatsapp")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)

    @model_validator(mode="after")
    def check_seller_contact(self):
        if self.account_type == "VENDEUR" and not (self.phone and self.address and self.whatsapp):
            raise ValueError("Un vendeur doit renseigner téléphone, adresse et WhatsApp")
        return self


class UserLogin(BaseModel):
    """用户登录请求"""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=6, max_length=128)


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6, max_length=128)


class UserResponse(BaseModel):
    """用户信息响应"""
    id: str
    code: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    whatsapp: Optional[str] = None
    role: str
    enabled: bool
    email_verified: bool
    credit_balance: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    """公开的用户摘要（卖家信息）"""
    id: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    whatsapp: Optional[str] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """登录令牌响应"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class UserUpdate(BaseModel):
    """更新个人资料"""
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    whatsapp: Optional[str] = Field(default=None, max_length=30)

    @field_validator("first_name", "last_name", "phone", "address", "whatsapp")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)
