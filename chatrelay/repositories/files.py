from datetime import datetime, timezone

from sqlmodel import Session, col, select

from chatrelay.models.file import UploadedFile


class FileRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, file: UploadedFile) -> UploadedFile:
        self.session.add(file)
        self.session.commit()
        self.session.refresh(file)
        return file

    def get(self, file_id: int) -> UploadedFile | None:
        return self.session.get(UploadedFile, file_id)

    def get_many(self, file_ids: list[int]) -> list[UploadedFile]:
        if not file_ids:
            return []
        statement = select(UploadedFile).where(col(UploadedFile.id).in_(file_ids))
        return list(self.session.exec(statement).all())

    def for_message(self, message_id: int) -> list[UploadedFile]:
        statement = select(UploadedFile).where(UploadedFile.message_id == message_id)
        return list(self.session.exec(statement).all())

    def for_messages(self, message_ids: list[int]) -> list[UploadedFile]:
        if not message_ids:
            return []
        statement = select(UploadedFile).where(col(UploadedFile.message_id).in_(message_ids))
        return list(self.session.exec(statement).all())

    def link_to_message(self, file_ids: list[int], message_id: int) -> None:
        """Point the given files at the message that consumed them. Caller commits."""
        now = datetime.now(timezone.utc)
        for file in self.get_many(file_ids):
            file.message_id = message_id
            file.updated_at = now
            self.session.add(file)

    def unlink_message(self, message_id: int) -> None:
        for file in self.for_message(message_id):
            file.message_id = None
            self.session.add(file)

    def mark_ready(self, file: UploadedFile) -> UploadedFile:
        if file.is_ready:
            return file
        file.is_ready = True
        file.updated_at = datetime.now(timezone.utc)
        self.session.add(file)
        self.session.commit()
        self.session.refresh(file)
        return file

    def delete(self, file: UploadedFile) -> None:
        self.session.delete(file)
        self.session.commit()
