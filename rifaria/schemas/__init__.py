from rifaria.schemas.user import UserCreate, UserLogin, UserResponse, Token
from rifaria.schemas.raffle import (
    RaffleCreate, RaffleUpdate, RaffleResponse, RaffleDetail, RaffleOwnerDetail,
    PublicRaffleSummary, MediaResponse
)
from rifaria.schemas.ticket import (
    PixReservationRequest, PixReservationResponse, CardReservationRequest,
    CardReservationResponse, TicketOwnerResponse, TicketView, PaymentStatusResponse
)

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "Token",
    "RaffleCreate", "RaffleUpdate", "RaffleResponse", "RaffleDetail", "RaffleOwnerDetail",
    "PublicRaffleSummary", "MediaResponse",
    "PixReservationRequest", "PixReservationResponse", "CardReservationRequest",
    "CardReservationResponse", "TicketOwnerResponse", "TicketView", "PaymentStatusResponse"
]
