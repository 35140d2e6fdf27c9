from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from rifaria.database import get_db
from rifaria.models.user import User
from rifaria.schemas.raffle import MediaResponse
from rifaria.services.auth import get_current_user_required
from rifaria.services.media import MediaService

router = APIRouter(prefix="/media", tags=["media"])


@router.post("/{raffle_id}")
async def upload_media(
    raffle_id: int,
    photos: Optional[List[UploadFile]] = File(None),
    videos: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    # Any authenticated user may upload to any existing raffle.
    saved = await MediaService.upload(db, raffle_id, photos, videos)
    return {
        "message": "Files uploaded",
        "files": [MediaResponse.model_validate(m) for m in saved]
    }
