from pathlib import Path
from typing import List, Optional, Sequence
import logging
import secrets
import time

from fastapi import UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from rifaria.config import get_settings
from rifaria.exceptions import InternalError, NotFoundError, ValidationError
from rifaria.models.media import Media, MediaKind
from rifaria.models.raffle import Raffle

settings = get_settings()
logger = logging.getLogger(__name__)

MAX_PHOTOS = 10
MAX_VIDEOS = 2
MAX_PHOTO_BYTES = 10 * 1024 * 1024
MAX_VIDEO_BYTES = 50 * 1024 * 1024

PHOTO_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
PHOTO_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov", ".avi"}


def is_allowed(upload: UploadFile, kind: MediaKind) -> bool:
    extension = Path(upload.filename or "").suffix.lower()
    content_type = (upload.content_type or "").lower()
    if kind == MediaKind.PHOTO:
        return extension in PHOTO_EXTENSIONS and content_type in PHOTO_MIME_TYPES
    return extension in VIDEO_EXTENSIONS and content_type.startswith("video/")


def stored_filename(field: str, original: str) -> str:
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
    return f"{field}-{suffix}{Path(original).suffix.lower()}"


class MediaService:
    @staticmethod
    async def upload(
        db: Session,
        raffle_id: int,
        photos: Optional[Sequence[UploadFile]],
        videos: Optional[Sequence[UploadFile]]
    ) -> List[Media]:
        """
        Validate every file, then store them under the upload dir and record
        one media row each. Nothing is written if any file is rejected.
        """
        photos = list(photos or [])
        videos = list(videos or [])

        if not photos and not videos:
            raise ValidationError("No files uploaded")
        if len(photos) > MAX_PHOTOS:
            raise ValidationError(f"At most {MAX_PHOTOS} photos are allowed")
        if len(videos) > MAX_VIDEOS:
            raise ValidationError(f"At most {MAX_VIDEOS} videos are allowed")

        raffle = db.query(Raffle).filter(Raffle.id == raffle_id).first()
        if not raffle:
            raise NotFoundError("Raffle not found")

        accepted = []
        for kind, files, limit in (
            (MediaKind.PHOTO, photos, MAX_PHOTO_BYTES),
            (MediaKind.VIDEO, videos, MAX_VIDEO_BYTES),
        ):
            for upload in files:
                if not is_allowed(upload, kind):
                    raise ValidationError(f"Only {kind.value}s are allowed in the {kind.value}s field")
                content = await upload.read()
                if len(content) > limit:
                    raise ValidationError(f"{upload.filename} exceeds {limit // (1024 * 1024)}MB")
                accepted.append((kind, upload.filename, content))

        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)

        last_order = db.query(func.max(Media.display_order)).filter(
            Media.raffle_id == raffle.id
        ).scalar()
        order = 0 if last_order is None else last_order + 1

        saved = []
        for kind, original_name, content in accepted:
            filename = stored_filename(f"{kind.value}s", original_name)
            try:
                (upload_dir / filename).write_bytes(content)
            except OSError as e:
                logger.error(f"Could not write {filename}: {e}")
                db.rollback()
                raise InternalError("Could not store uploaded file")

            media = Media(
                raffle_id=raffle.id,
                url=f"/uploads/{filename}",
                display_order=order,
                kind=kind
            )
            db.add(media)
            saved.append(media)
            order += 1

        db.commit()
        for media in saved:
            db.refresh(media)

        logger.info(f"Stored {len(saved)} file(s) for raffle {raffle.id}")
        return saved
