"""
买卖双方会话路由
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.conversation import (
    ConversationResponse,
    ConversationDetailResponse,
    MessageCreate,
    MessageResponse,
)
from vestisen.services.conversation_service import ConversationService
from vestisen.utils.security import get_current_user

router = APIRouter()


@router.post("/annonce/{annonce_id}", response_model=ConversationResponse)
async def open_conversation(
    annonce_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """打开（或复用）与卖家的会话"""
    return await ConversationService(db).get_or_create(annonce_id, current_user)


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """作为买家或卖家参与的会话，最近更新优先"""
    return await ConversationService(db).list_for_user(current_user)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """会话详情，同时将对方消息标记为已读"""
    service = ConversationService(db)
    conversation = await service.get_for_participant(conversation_id, current_user)
    await service.mark_read(conversation, current_user)
    return conversation


@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ConversationService(db).send_message(data.conversation_id, current_user, data.content)
