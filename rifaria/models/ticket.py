from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rifaria.database import Base
import enum


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentMethod(str, enum.Enum):
    PIX = "PIX"
    CARD = "CARD"


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("raffle_id", "number", name="uq_tickets_raffle_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    raffle_id = Column(
        Integer, ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number = Column(Integer, nullable=False)
    buyer_name = Column(String(200), nullable=False)
    buyer_tax_id = Column(String(32), nullable=False)
    buyer_phone = Column(String(32), nullable=True)
    amount_paid = Column(Numeric(10, 2), nullable=True)
    view_code = Column(String(32), unique=True, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.PIX)
    gateway_charge_id = Column(String(255), nullable=True, index=True)
    reserved_at = Column(DateTime, server_default=func.now())

    raffle = relationship("Raffle", back_populates="tickets")
