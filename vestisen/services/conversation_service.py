"""
买卖双方会话服务

- 每个 (annonce, buyer) 仅一个会话
- 卖家不能就自己的发布发起会话
- 只有参与者可以查看和发送消息
"""
import logging
from typing import List

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.models.annonce import Annonce
from vestisen.models.conversation import Conversation, Message
from vestisen.models.user import User
from vestisen.services.errors import ForbiddenError, NotFoundError, ValidationError
from vestisen.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)


class ConversationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, annonce_id: str, buyer_id: str):
        result = await self.db.execute(
            select(Conversation).where(
                Conversation.annonce_id == annonce_id,
                Conversation.buyer_id == buyer_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, annonce_id: str, buyer: User) -> Conversation:
        annonce = await self.db.get(Annonce, annonce_id)
        if annonce is None:
            raise NotFoundError("Annonce non trouvée", "ANNONCE_NOT_FOUND")
        if annonce.seller_id == buyer.id:
            raise ValidationError("Vous ne pouvez pas discuter avec vous-même", "OWN_ANNONCE")

        conversation = await self._find(annonce.id, buyer.id)
        if conversation:
            return conversation

        try:
            async with self.db.begin_nested():
                conversation = Conversation(
                    annonce_id=annonce.id,
                    annonce=annonce,
                    buyer_id=buyer.id,
                    buyer=buyer,
                    seller_id=annonce.seller_id,
                    seller=annonce.seller,
                    messages=[],
                )
                self.db.add(conversation)
        except IntegrityError:
            # 并发请求已创建
            conversation = await self._find(annonce.id, buyer.id)
        return conversation

    async def list_for_user(self, user: User) -> List[Conversation]:
        result = await self.db.execute(
            select(Conversation)
            .where(or_(Conversation.buyer_id == user.id, Conversation.seller_id == user.id))
            .order_by(Conversation.updated_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_participant(self, conversation_id: str, user: User) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation non trouvée", "CONVERSATION_NOT_FOUND")
        if user.id not in (conversation.buyer_id, conversation.seller_id):
            raise ForbiddenError("Accès refusé", "NOT_PARTICIPANT")
        return conversation

    async def mark_read(self, conversation: Conversation, reader: User) -> None:
        """将对方发送的未读消息标记为已读"""
        now = utc_now_naive()
        await self.db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation.id,
                Message.sender_id != reader.id,
                Message.read_at.is_(None),
            )
            .values(read_at=now)
        )

    async def send_message(self, conversation_id: str, sender: User, content: str) -> Message:
        conversation = await self.get_for_participant(conversation_id, sender)
        content = content.strip()
        if not content:
            raise ValidationError("Message vide", "EMPTY_MESSAGE")

        message = Message(conversation_id=conversation.id, sender_id=sender.id, content=content)
        conversation.messages.append(message)
        conversation.updated_at = utc_now_naive()
        await self.db.flush()
        return message
