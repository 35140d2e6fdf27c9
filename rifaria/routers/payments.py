from typing import Optional
import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.orm import Session

from rifaria.database import get_db
from rifaria.models.ticket import PaymentStatus
from rifaria.schemas.ticket import PaymentStatusResponse, TicketView
from rifaria.services.card import CardGateway, get_card_gateway
from rifaria.services.pix import PixGateway, get_pix_gateway
from rifaria.services.reservation import ReservationService
from rifaria.templates_config import templates

router = APIRouter(prefix="/payments", tags=["payments"])
logger = logging.getLogger(__name__)


@router.post("/webhook")
async def pix_webhook(
    request: Request,
    abacate_signature: Optional[str] = Header(None, alias="x-abacate-signature"),
    webhook_signature: Optional[str] = Header(None, alias="x-webhook-signature"),
    db: Session = Depends(get_db)
):
    # AbacatePay sends x-abacate-signature; x-webhook-signature is accepted too.
    signature = abacate_signature or webhook_signature
    try:
        payload = await request.json()
    except ValueError:
        payload = {}

    message = ReservationService.confirm_by_webhook(db, signature, payload)
    return {"message": message}


@router.post("/card/webhook")
async def card_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    card: CardGateway = Depends(get_card_gateway),
    db: Session = Depends(get_db)
):
    payload = await request.body()
    event = card.verify_webhook_signature(payload, stripe_signature)
    message = ReservationService.confirm_card_event(db, event)
    return {"message": message}


@router.get("/card/public-key")
async def card_public_key(card: CardGateway = Depends(get_card_gateway)):
    return {"public_key": card.public_key()}


@router.get("/status/{charge_id}", response_model=PaymentStatusResponse)
async def check_status(
    charge_id: str,
    pix: PixGateway = Depends(get_pix_gateway),
    card: CardGateway = Depends(get_card_gateway),
    db: Session = Depends(get_db)
):
    return await ReservationService.check_status(db, charge_id, pix, card)


@router.get("/ticket/{code}", response_model=TicketView)
async def view_ticket(
    code: str,
    pix: PixGateway = Depends(get_pix_gateway),
    card: CardGateway = Depends(get_card_gateway),
    db: Session = Depends(get_db)
):
    return await ReservationService.view_by_code(db, code, pix, card)


@router.get("/receipt/{code}", response_class=HTMLResponse)
async def receipt(
    request: Request,
    code: str,
    db: Session = Depends(get_db)
):
    ticket = ReservationService.get_by_code(db, code)
    if not ticket:
        return PlainTextResponse("Ticket not found", status_code=404)

    return templates.TemplateResponse(
        request,
        "receipt.html",
        {
            "ticket": ticket,
            "raffle": ticket.raffle,
            "paid": ticket.payment_status == PaymentStatus.PAID
        }
    )
