"""
Messaging Service
Conversation and message persistence. Delivery to connected clients is done
by Supabase realtime listening on the messages table.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...db.models import Conversation, ConversationParticipant, Message, User, utcnow
from ..errors import InvalidRequestError, PermissionDeniedError, ResourceNotFoundError

logger = logging.getLogger(__name__)


class MessagingService:
    """Conversations between matched members and matchmaker groups."""

    def __init__(self, db: Session):
        self.db = db

    def find_direct_conversation(self, user_a: UUID, user_b: UUID) -> Optional[Conversation]:
        """The direct conversation whose participants are exactly these two users."""
        conversation_ids = (
            self.db.query(ConversationParticipant.conversation_id)
            .join(Conversation, Conversation.id == ConversationParticipant.conversation_id)
            .filter(
                Conversation.type == "direct",
                ConversationParticipant.user_id.in_([user_a, user_b]),
            )
            .group_by(ConversationParticipant.conversation_id)
            .having(func.count(ConversationParticipant.user_id) == 2)
            .all()
        )
        if not conversation_ids:
            return None
        return self.db.query(Conversation).filter(Conversation.id == conversation_ids[0][0]).first()

    def _create(self, type: str, created_by: UUID, members: Sequence[UUID],
                group_name: Optional[str] = None) -> Conversation:
        conversation = Conversation(type=type, created_by=created_by, group_name=group_name)
        self.db.add(conversation)
        self.db.flush()
        for member in members:
            self.db.add(ConversationParticipant(conversation_id=conversation.id, user_id=member))
        return conversation

    def get_or_create_direct_conversation(self, user_a: UUID, user_b: UUID) -> Conversation:
        existing = self.find_direct_conversation(user_a, user_b)
        if existing is not None:
            if existing.status == "archived":
                existing.status = "active"
            return existing
        conversation = self._create("direct", user_a, [user_a, user_b])
        logger.info(f"Created direct conversation {conversation.id}")
        return conversation

    def create_group_conversation(self, created_by: UUID, members: Sequence[UUID],
                                  group_name: Optional[str] = None) -> Conversation:
        conversation = self._create("group", created_by, list(dict.fromkeys(members)), group_name)
        logger.info(f"Created group conversation {conversation.id} with {len(members)} members")
        return conversation

    def archive_direct_conversation(self, user_a: UUID, user_b: UUID) -> Optional[Conversation]:
        conversation = self.find_direct_conversation(user_a, user_b)
        if conversation is not None:
            conversation.status = "archived"
            conversation.updated_at = utcnow()
        return conversation

    # ------------------------------------------------------------------
    # Participant-scoped reads and writes
    # ------------------------------------------------------------------

    def get_conversation_for(self, conversation_id: UUID, user_id: UUID) -> Conversation:
        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if conversation is None:
            raise ResourceNotFoundError("Conversation", conversation_id)
        if not any(p.user_id == user_id for p in conversation.participants):
            raise PermissionDeniedError("Not a participant in this conversation")
        return conversation

    def list_conversations(self, user_id: UUID) -> List[Dict[str, Any]]:
        conversations = (
            self.db.query(Conversation)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .filter(ConversationParticipant.user_id == user_id, Conversation.status != "archived")
            .order_by(Conversation.updated_at.desc())
            .all()
        )

        results = []
        for conversation in conversations:
            other_ids = [p.user_id for p in conversation.participants if p.user_id != user_id]
            others = self.db.query(User).filter(User.id.in_(other_ids)).all() if other_ids else []
            last = (
                self.db.query(Message)
                .filter(Message.conversation_id == conversation.id, Message.deleted_at.is_(None))
                .order_by(Message.created_at.desc())
                .first()
            )
            results.append({
                "id": str(conversation.id),
                "type": conversation.type,
                "group_name": conversation.group_name,
                "participants": [
                    {"user_id": str(u.id), "display_name": u.display_name} for u in others
                ],
                "last_message": serialize_message(last) if last else None,
                "updated_at": conversation.updated_at.isoformat(),
            })
        return results

    def list_messages(self, conversation_id: UUID, user_id: UUID, limit: int = 50,
                      before: Optional[datetime] = None) -> List[Message]:
        self.get_conversation_for(conversation_id, user_id)
        query = self.db.query(Message).filter(
            Message.conversation_id == conversation_id,
            Message.deleted_at.is_(None),
        )
        if before is not None:
            query = query.filter(Message.created_at < before)
        return query.order_by(Message.created_at.desc()).limit(limit).all()

    def send_message(self, conversation_id: UUID, sender_id: UUID, content: str,
                     message_type: str = "text",
                     client_message_id: Optional[str] = None) -> Message:
        conversation = self.get_conversation_for(conversation_id, sender_id)
        if conversation.status == "archived":
            raise InvalidRequestError("This conversation has been archived")

        if client_message_id:
            existing = (
                self.db.query(Message)
                .filter(
                    Message.conversation_id == conversation_id,
                    Message.sender_id == sender_id,
                    Message.client_message_id == client_message_id,
                )
                .first()
            )
            if existing is not None:
                return existing

        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            client_message_id=client_message_id,
        )
        self.db.add(message)
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(message)
        return message

    def delete_message(self, message_id: UUID, user_id: UUID) -> Message:
        message = self.db.query(Message).filter(Message.id == message_id).first()
        if message is None or message.deleted_at is not None:
            raise ResourceNotFoundError("Message", message_id)
        if message.sender_id != user_id:
            raise PermissionDeniedError("Only the sender can delete a message")
        message.deleted_at = utcnow()
        self.db.commit()
        return message


def serialize_message(message: Message) -> Dict[str, Any]:
    return {
        "id": str(message.id),
        "conversation_id": str(message.conversation_id),
        "sender_id": str(message.sender_id) if message.sender_id else None,
        "content": message.content,
        "message_type": message.message_type,
        "client_message_id": message.client_message_id,
        "status": message.status,
        "created_at": message.created_at.isoformat(),
    }
