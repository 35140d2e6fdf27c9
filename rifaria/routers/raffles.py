from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rifaria.database import get_db
from rifaria.models.user import User
from rifaria.schemas.raffle import (
    PublicRaffleSummary, RaffleCreate, RaffleResponse, RaffleUpdate
)
from rifaria.services.auth import (
    RequestContext, get_current_user_required, get_request_context
)
from rifaria.services.raffle import RaffleService

router = APIRouter(prefix="/raffles", tags=["raffles"])


@router.get("", response_model=List[RaffleResponse])
async def list_my_raffles(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return RaffleService.list_owned_raffles(db, user)


@router.get("/public", response_model=List[PublicRaffleSummary])
async def list_public_raffles(db: Session = Depends(get_db)):
    return RaffleService.list_public_raffles(db)


# No response_model: the owner projection carries extra fields.
@router.get("/{raffle_id}")
async def get_raffle(
    raffle_id: int,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    return RaffleService.get_raffle(db, raffle_id, context)


@router.post("", response_model=RaffleResponse, status_code=status.HTTP_201_CREATED)
async def create_raffle(
    payload: RaffleCreate,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return RaffleService.create_raffle(db, user, payload)


@router.put("/{raffle_id}", response_model=RaffleResponse)
async def update_raffle(
    raffle_id: int,
    payload: RaffleUpdate,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return RaffleService.update_raffle(db, raffle_id, user, payload)


@router.delete("/{raffle_id}")
async def delete_raffle(
    raffle_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    RaffleService.delete_raffle(db, raffle_id, user)
    return {"message": "Raffle deleted"}
