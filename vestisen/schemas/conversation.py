"""
会话 Schemas
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from vestisen.schemas.user import UserBrief


class MessageCreate(BaseModel):
    """发送消息请求"""
    conversation_id: str
    content: str = Field(min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AnnonceSummary(BaseModel):
    id: str
    code: str
    title: str
    images: List[str] = []

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    """会话列表项"""
    id: str
    annonce: AnnonceSummary
    buyer: UserBrief
    seller: UserBrief
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConversationDetailResponse(ConversationResponse):
    """会话详情（含消息）"""
    messages: List[MessageResponse] = []
