from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rifaria.database import Base


class Raffle(Base):
    __tablename__ = "raffles"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(5000), nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    ticket_price = Column(Numeric(10, 2), nullable=False, default=0)
    draw_date = Column(DateTime, nullable=False)
    max_number = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="raffles")
    tickets = relationship(
        "Ticket",
        back_populates="raffle",
        cascade="all, delete-orphan"
    )
    media = relationship(
        "Media",
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by="Media.display_order"
    )
