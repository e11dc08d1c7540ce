from fastapi import APIRouter, Depends
from sqlmodel import Session

from chatrelay.api.schemas import StandaloneImageCreate
from chatrelay.core.auth import get_current_user_id
from chatrelay.core.database import get_session
from chatrelay.services.images import request_standalone_image

router = APIRouter()


@router.post("/")
async def generate_standalone_image(
    body: StandaloneImageCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    """Generate an image outside any visible conversation."""
    ticket = request_standalone_image(
        session,
        user_id,
        prompt=body.prompt,
        size=body.size,
        quality=body.quality,
        file_ids=body.files_id,
    )
    return {"id": ticket.message_id, "conversation_id": ticket.conversation_id}
