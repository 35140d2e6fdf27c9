from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rifaria.database import get_db
from rifaria.models.user import User
from rifaria.schemas.ticket import (
    CardReservationRequest, CardReservationResponse, PixReservationRequest,
    PixReservationResponse, TicketOwnerResponse
)
from rifaria.services.auth import get_current_user_required
from rifaria.services.card import CardGateway, get_card_gateway
from rifaria.services.pix import PixGateway, get_pix_gateway
from rifaria.services.raffle import RaffleService
from rifaria.services.reservation import ReservationService

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("/raffle/{raffle_id}", response_model=List[TicketOwnerResponse])
async def list_raffle_tickets(
    raffle_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return RaffleService.list_raffle_tickets(db, raffle_id, user)


@router.post("/{raffle_id}/pix", response_model=PixReservationResponse)
async def reserve_with_pix(
    raffle_id: int,
    payload: PixReservationRequest,
    pix: PixGateway = Depends(get_pix_gateway),
    db: Session = Depends(get_db)
):
    return await ReservationService.reserve_pix(db, raffle_id, payload, pix)


# The Stripe SDK blocks; a plain def endpoint runs in the threadpool.
@router.post("/{raffle_id}/card", response_model=CardReservationResponse)
def reserve_with_card(
    raffle_id: int,
    payload: CardReservationRequest,
    card: CardGateway = Depends(get_card_gateway),
    db: Session = Depends(get_db)
):
    return ReservationService.reserve_card(db, raffle_id, payload, card)
