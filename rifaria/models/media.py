from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rifaria.database import Base
import enum


class MediaKind(str, enum.Enum):
    PHOTO = "photo"
    VIDEO = "video"


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    raffle_id = Column(
        Integer, ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url = Column(String(500), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    kind = Column(Enum(MediaKind), nullable=False, default=MediaKind.PHOTO)
    created_at = Column(DateTime, server_default=func.now())

    raffle = relationship("Raffle", back_populates="media")
