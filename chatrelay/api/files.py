from fastapi import APIRouter, Depends, UploadFile
from sqlmodel import Session

from chatrelay.api.schemas import file_dict
from chatrelay.core.auth import get_current_user_id
from chatrelay.core.database import get_session
from chatrelay.core.errors import Forbidden, NotFound, ValidationFailed
from chatrelay.core.storage import BaseStorage, get_storage
from chatrelay.repositories.files import FileRepository
from chatrelay.services.llm import get_llm_provider
from chatrelay.services.llm.base import BaseLLMProvider
from chatrelay.services.uploads import store_document, store_image

router = APIRouter()


@router.post("/")
async def upload_file(
    file: UploadFile | None = None,
    image: UploadFile | None = None,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    storage: BaseStorage = Depends(get_storage),
    provider: BaseLLMProvider = Depends(get_llm_provider),
):
    if file is not None:
        content = await file.read()
        record = await store_document(session, storage, provider, user_id, file.filename, content)
        return {"file": file_dict(record)}

    if image is not None:
        content = await image.read()
        record = await store_image(session, storage, user_id, image.filename, content)
        return {"file": file_dict(record)}

    raise ValidationFailed("No file was uploaded")


@router.get("/{file_id}/status")
async def file_status(
    file_id: int,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    record = FileRepository(session).get(file_id)
    if not record:
        raise NotFound("File not found")
    if record.user_id != user_id:
        raise Forbidden("You do not have access to this file")
    return {"is_ready": record.is_ready}
