from chatrelay.models.conversation import IMAGE_PLACEHOLDER, Conversation, Message
from chatrelay.models.file import UploadedFile
from chatrelay.models.job import JobRecord

__all__ = ["IMAGE_PLACEHOLDER", "Conversation", "Message", "UploadedFile", "JobRecord"]
