from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from rifaria.models.ticket import PaymentMethod, PaymentStatus


class BuyerInfo(BaseModel):
    buyer_name: str = Field(min_length=1, max_length=200)
    buyer_tax_id: str = Field(min_length=1, max_length=32)
    buyer_phone: str = Field(min_length=1, max_length=32)


class PixReservationRequest(BuyerInfo):
    number: int


class CardReservationRequest(BuyerInfo):
    number: int
    payment_method_id: str = Field(min_length=1)


class PixReservationResponse(BaseModel):
    view_code: str
    charge_id: str
    qrcode: Optional[str]
    qrcode_text: Optional[str]
    amount: float
    expires_at: Optional[str]


class CardReservationResponse(BaseModel):
    id: str
    status: str
    payment_status: PaymentStatus
    view_code: str


class TicketOwnerResponse(BaseModel):
    id: int
    number: int
    buyer_name: str
    buyer_tax_id: str
    buyer_phone: Optional[str]
    amount_paid: Optional[float]
    view_code: str
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    gateway_charge_id: Optional[str]
    reserved_at: Optional[datetime]

    class Config:
        from_attributes = True


class TicketPublicInfo(BaseModel):
    number: int
    buyer_name: str
    buyer_phone: Optional[str]
    payment_status: PaymentStatus
    reserved_at: Optional[datetime]

    class Config:
        from_attributes = True


class RafflePublicInfo(BaseModel):
    title: str
    description: Optional[str]
    draw_date: datetime

    class Config:
        from_attributes = True


class TicketView(BaseModel):
    ticket: TicketPublicInfo
    raffle: RafflePublicInfo


class PaymentStatusResponse(BaseModel):
    status: str
    expires_at: Optional[str] = None
