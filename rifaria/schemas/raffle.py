from pydantic import BaseModel, Field, condecimal
from datetime import datetime
from typing import List, Optional
from rifaria.models.media import MediaKind

Price = condecimal(ge=0, max_digits=10, decimal_places=2)


class RaffleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    ticket_price: Price
    draw_date: datetime
    max_number: int = Field(gt=0)


class RaffleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    ticket_price: Optional[Price] = None
    draw_date: Optional[datetime] = None
    max_number: Optional[int] = Field(default=None, gt=0)


class MediaResponse(BaseModel):
    id: int
    url: str
    kind: MediaKind
    display_order: int

    class Config:
        from_attributes = True


class RaffleResponse(BaseModel):
    id: int
    owner_id: int
    title: str
    description: Optional[str]
    cover_image_url: Optional[str]
    ticket_price: float
    draw_date: datetime
    max_number: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RaffleDetail(RaffleResponse):
    occupied_numbers: List[int] = []
    available_numbers: List[int] = []
    media: List[MediaResponse] = []


class RaffleOwnerDetail(RaffleDetail):
    is_owner: bool = True
    pending_count: int = 0
    paid_count: int = 0


class PublicRaffleSummary(BaseModel):
    id: int
    title: str
    description: Optional[str]
    cover_image_url: Optional[str]
    ticket_price: float
    draw_date: datetime
    max_number: int
    sold: int
    available: int
    created_at: Optional[datetime]
