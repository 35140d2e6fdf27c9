from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging
import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from rifaria.config import get_settings
from rifaria.exceptions import (
    AuthError, ConflictError, NotFoundError, PaymentGatewayError, ValidationError
)
from rifaria.models.raffle import Raffle
from rifaria.models.ticket import Ticket, PaymentMethod, PaymentStatus
from rifaria.schemas.ticket import (
    BuyerInfo, CardReservationRequest, CardReservationResponse, PaymentStatusResponse,
    PixReservationRequest, PixReservationResponse, RafflePublicInfo, TicketPublicInfo,
    TicketView
)
from rifaria.services.card import CardGateway
from rifaria.services.pix import PixCustomer, PixGateway

settings = get_settings()
logger = logging.getLogger(__name__)


# Gateway statuses after which a charge can no longer be paid.
RELEASABLE_STATUSES = {"EXPIRED", "CANCELLED"}


def generate_view_code() -> str:
    return secrets.token_hex(6).upper()


def to_minor_units(amount) -> int:
    """Currency units -> integer cents, rounding half up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ticket_description(ticket: Ticket, raffle: Raffle) -> str:
    return f"Ticket {ticket.number} - {raffle.title}"


class ReservationService:
    @staticmethod
    def claim_number(
        db: Session,
        raffle_id: int,
        number: int,
        buyer: BuyerInfo,
        method: PaymentMethod
    ) -> Ticket:
        """
        Insert a PENDING ticket for (raffle, number).
        The unique constraint on (raffle_id, number) decides concurrent claims.
        """
        raffle = db.query(Raffle).filter(Raffle.id == raffle_id).first()
        if not raffle:
            raise NotFoundError("Raffle not found")

        if number < 1 or number > raffle.max_number:
            raise ValidationError(f"Number must be between 1 and {raffle.max_number}")

        taken = db.query(Ticket.id).filter(
            Ticket.raffle_id == raffle_id,
            Ticket.number == number
        ).first()
        if taken:
            raise ConflictError("Number already reserved")

        ticket = Ticket(
            raffle_id=raffle.id,
            number=number,
            buyer_name=buyer.buyer_name,
            buyer_tax_id=buyer.buyer_tax_id,
            buyer_phone=buyer.buyer_phone,
            amount_paid=raffle.ticket_price,
            view_code=generate_view_code(),
            payment_status=PaymentStatus.PENDING,
            payment_method=method
        )
        db.add(ticket)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Number already reserved")
        db.refresh(ticket)
        return ticket

    @staticmethod
    def release(db: Session, ticket: Ticket) -> None:
        logger.info(f"Releasing number {ticket.number} of raffle {ticket.raffle_id}")
        db.delete(ticket)
        db.commit()

    @staticmethod
    async def reserve_pix(
        db: Session,
        raffle_id: int,
        request: PixReservationRequest,
        pix: PixGateway
    ) -> PixReservationResponse:
        ticket = ReservationService.claim_number(
            db, raffle_id, request.number, request, PaymentMethod.PIX
        )
        raffle = ticket.raffle
        customer = PixCustomer(
            name=request.buyer_name,
            cellphone=request.buyer_phone,
            tax_id=request.buyer_tax_id
        )

        try:
            await pix.create_customer(customer)
            charge = await pix.create_charge(
                amount=to_minor_units(raffle.ticket_price),
                description=ticket_description(ticket, raffle),
                customer=customer,
                external_id=ticket.view_code,
                expires_in=settings.pix_charge_expires_in
            )
        except BaseException:
            ReservationService.release(db, ticket)
            raise

        ticket.gateway_charge_id = charge.id
        db.commit()
        logger.info(f"Ticket {ticket.view_code} reserved with PIX charge {charge.id}")

        return PixReservationResponse(
            view_code=ticket.view_code,
            charge_id=charge.id,
            qrcode=charge.br_code_base64,
            qrcode_text=charge.br_code,
            amount=float(raffle.ticket_price),
            expires_at=charge.expires_at
        )

    @staticmethod
    def reserve_card(
        db: Session,
        raffle_id: int,
        request: CardReservationRequest,
        card: CardGateway
    ) -> CardReservationResponse:
        if not card.is_configured():
            raise PaymentGatewayError("Card payments are not configured")

        ticket = ReservationService.claim_number(
            db, raffle_id, request.number, request, PaymentMethod.CARD
        )
        raffle = ticket.raffle

        try:
            charge = card.create_charge(
                amount=to_minor_units(raffle.ticket_price),
                description=ticket_description(ticket, raffle),
                payment_method_id=request.payment_method_id,
                metadata={
                    "view_code": ticket.view_code,
                    "raffle_id": str(raffle.id),
                    "number": str(ticket.number)
                }
            )
        except BaseException:
            ReservationService.release(db, ticket)
            raise

        ticket.gateway_charge_id = charge.id
        if charge.status == PaymentStatus.PAID.value:
            ticket.payment_status = PaymentStatus.PAID
        db.commit()
        logger.info(f"Ticket {ticket.view_code} reserved with card charge {charge.id} ({charge.gateway_status})")

        return CardReservationResponse(
            id=charge.id,
            status=charge.gateway_status,
            payment_status=ticket.payment_status,
            view_code=ticket.view_code
        )

    @staticmethod
    def mark_paid(db: Session, ticket: Ticket) -> None:
        if ticket.payment_status == PaymentStatus.PAID:
            return
        ticket.payment_status = PaymentStatus.PAID
        db.commit()
        logger.info(f"Ticket {ticket.view_code} marked as paid")

    @staticmethod
    def mark_paid_by(db: Session, *criteria) -> int:
        """Set every ticket matching `criteria` to PAID; returns the number of matched rows."""
        updated = db.query(Ticket).filter(*criteria).update(
            {Ticket.payment_status: PaymentStatus.PAID},
            synchronize_session=False
        )
        db.commit()
        return updated

    @staticmethod
    async def reconcile(
        db: Session,
        ticket: Ticket,
        pix: PixGateway,
        card: CardGateway
    ) -> PaymentStatusResponse:
        """Ask the ticket's gateway for its charge status and upgrade PENDING to PAID."""
        if ticket.payment_status == PaymentStatus.PAID:
            return PaymentStatusResponse(status=PaymentStatus.PAID.value)

        if not ticket.gateway_charge_id:
            return PaymentStatusResponse(status=ticket.payment_status.value)

        if ticket.payment_method == PaymentMethod.CARD:
            charge = await run_in_threadpool(card.check_charge, ticket.gateway_charge_id)
            status, expires_at = charge.status, None
        else:
            charge = await pix.check_charge(ticket.gateway_charge_id)
            status, expires_at = charge.status, charge.expires_at

        if status == PaymentStatus.PAID.value:
            ReservationService.mark_paid(db, ticket)

        return PaymentStatusResponse(status=status, expires_at=expires_at)

    @staticmethod
    def confirm_by_webhook(
        db: Session,
        signature: Optional[str],
        payload: Any
    ) -> str:
        if not signature or not secrets.compare_digest(
            signature.encode("utf-8"),
            settings.pix_webhook_secret.encode("utf-8")
        ):
            logger.warning("PIX webhook with invalid signature")
            raise AuthError("Invalid webhook signature")

        body: Dict[str, Any] = payload if isinstance(payload, dict) else {}
        data = body.get("data") if isinstance(body.get("data"), dict) else {}

        status = body.get("status") or data.get("status")
        charge_id = body.get("pixId") or body.get("id") or body.get("billingId") or data.get("id")
        metadata = body.get("metadata") or data.get("metadata") or {}
        external_id = metadata.get("externalId") if isinstance(metadata, dict) else None

        logger.info(f"PIX webhook received: status={status} charge={charge_id} external_id={external_id}")

        if not status:
            return "Ignored: missing status"

        if status != PaymentStatus.PAID.value:
            return "Status received"

        updated = 0
        if charge_id:
            updated = ReservationService.mark_paid_by(db, Ticket.gateway_charge_id == str(charge_id))
        if not updated and external_id:
            updated = ReservationService.mark_paid_by(db, Ticket.view_code == str(external_id))

        return "Payment confirmed" if updated else "Payment confirmed (no local match)"

    @staticmethod
    def confirm_card_event(db: Session, event: dict) -> str:
        if event["type"] != "payment_intent.succeeded":
            return "Event ignored"

        intent_id = event["data"]["object"]["id"]
        updated = ReservationService.mark_paid_by(db, Ticket.gateway_charge_id == intent_id)
        logger.info(f"Card payment {intent_id} succeeded, {updated} ticket(s) updated")
        return "Payment confirmed" if updated else "Payment confirmed (no local match)"

    @staticmethod
    async def check_status(
        db: Session,
        charge_id: str,
        pix: PixGateway,
        card: CardGateway
    ) -> PaymentStatusResponse:
        ticket = db.query(Ticket).filter(Ticket.gateway_charge_id == charge_id).first()
        if not ticket:
            raise NotFoundError("Ticket not found")
        return await ReservationService.reconcile(db, ticket, pix, card)

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[Ticket]:
        return db.query(Ticket).filter(Ticket.view_code == code).first()

    @staticmethod
    async def view_by_code(
        db: Session,
        code: str,
        pix: PixGateway,
        card: CardGateway
    ) -> TicketView:
        ticket = ReservationService.get_by_code(db, code)
        if not ticket:
            raise NotFoundError("Ticket not found")

        if ticket.payment_status != PaymentStatus.PAID and ticket.gateway_charge_id:
            try:
                await ReservationService.reconcile(db, ticket, pix, card)
            except PaymentGatewayError as e:
                logger.warning(f"Could not refresh status of ticket {code}: {e.message}")

        return TicketView(
            ticket=TicketPublicInfo.model_validate(ticket),
            raffle=RafflePublicInfo.model_validate(ticket.raffle)
        )

    @staticmethod
    async def release_expired(
        db: Session,
        pix: PixGateway,
        card: CardGateway,
        hold_minutes: int,
        now: Optional[datetime] = None
    ) -> int:
        """
        Free the numbers of PENDING tickets held longer than `hold_minutes`.
        A ticket with a gateway charge is only released once the gateway
        reports that charge expired or cancelled; a ticket that never got a
        charge is released as soon as the hold runs out.
        """
        cutoff = (now or datetime.utcnow()) - timedelta(minutes=hold_minutes)
        expired = db.query(Ticket).filter(
            Ticket.payment_status == PaymentStatus.PENDING,
            Ticket.reserved_at < cutoff
        ).all()

        released = 0
        for ticket in expired:
            try:
                result = await ReservationService.reconcile(db, ticket, pix, card)
            except PaymentGatewayError as e:
                logger.warning(f"Keeping ticket {ticket.view_code}, status check failed: {e.message}")
                continue

            if ticket.gateway_charge_id and result.status not in RELEASABLE_STATUSES:
                continue

            ReservationService.release(db, ticket)
            released += 1

        if released:
            logger.info(f"Released {released} expired reservation(s)")
        return released
