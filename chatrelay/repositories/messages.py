from sqlmodel import Session, col, select

from chatrelay.models.conversation import Message


class MessageRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, message: Message) -> Message:
        """Stage a message and flush so its id is assigned. Caller commits."""
        self.session.add(message)
        self.session.flush()
        return message

    def get(self, message_id: int) -> Message | None:
        return self.session.get(Message, message_id)

    def list_for_conversation(self, conversation_id: str) -> list[Message]:
        statement = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def latest_with_response_id(self, conversation_id: str) -> Message | None:
        statement = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .where(col(Message.response_id).is_not(None))
            .order_by(col(Message.id).desc())
            .limit(1)
        )
        return self.session.exec(statement).first()

    def delete_ids(self, message_ids: list[int]) -> int:
        """Delete the given messages. Caller commits. Returns how many existed."""
        statement = select(Message).where(col(Message.id).in_(message_ids))
        messages = self.session.exec(statement).all()
        for msg in messages:
            self.session.delete(msg)
        return len(messages)
