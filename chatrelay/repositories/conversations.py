from datetime import datetime, timezone

from sqlmodel import Session, select

from chatrelay.models.conversation import Conversation


class ConversationRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, user_id: int, title: str = "New Conversation", is_hidden: bool = False) -> Conversation:
        conv = Conversation(user_id=user_id, title=title, is_hidden=is_hidden, is_public=False)
        self.session.add(conv)
        self.session.commit()
        self.session.refresh(conv)
        return conv

    def get(self, conversation_id: str) -> Conversation | None:
        return self.session.get(Conversation, conversation_id)

    def list_visible_for_user(self, user_id: int, page: int, per_page: int) -> list[Conversation]:
        statement = (
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .where(Conversation.is_hidden == False)  # noqa: E712
            .order_by(Conversation.created_at.desc())  # type: ignore
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(self.session.exec(statement).all())

    def save(self, conv: Conversation) -> Conversation:
        conv.updated_at = datetime.now(timezone.utc)
        self.session.add(conv)
        self.session.commit()
        self.session.refresh(conv)
        return conv

    def touch(self, conv: Conversation) -> None:
        """Bump updated_at without committing, for use inside a larger transaction."""
        conv.updated_at = datetime.now(timezone.utc)
        self.session.add(conv)
