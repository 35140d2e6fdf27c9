import logging
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from rifaria.config import get_settings
from rifaria.exceptions import NotFoundError, ValidationError
from rifaria.models.media import Media, MediaKind
from rifaria.models.raffle import Raffle
from rifaria.models.ticket import Ticket, PaymentStatus
from rifaria.models.user import User
from rifaria.schemas.raffle import (
    RaffleCreate, RaffleUpdate, RaffleResponse, RaffleDetail, RaffleOwnerDetail,
    PublicRaffleSummary, MediaResponse
)
from rifaria.services.auth import Authenticated, RequestContext

settings = get_settings()
logger = logging.getLogger(__name__)


def absolute_url(url: Optional[str]) -> Optional[str]:
    """Resolve a stored media path against the public base URL."""
    if not url:
        return None
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"{settings.public_base_url.rstrip('/')}/{url.lstrip('/')}"


class RaffleService:
    @staticmethod
    def create_raffle(db: Session, owner: User, data: RaffleCreate) -> Raffle:
        raffle = Raffle(
            owner_id=owner.id,
            title=data.title,
            description=data.description,
            cover_image_url=data.cover_image_url,
            ticket_price=data.ticket_price,
            draw_date=data.draw_date,
            max_number=data.max_number
        )
        db.add(raffle)
        db.commit()
        db.refresh(raffle)
        logger.info(f"User {owner.id} created raffle {raffle.id}")
        return raffle

    @staticmethod
    def list_owned_raffles(db: Session, owner: User) -> List[Raffle]:
        return db.query(Raffle).filter(
            Raffle.owner_id == owner.id
        ).order_by(Raffle.created_at.desc(), Raffle.id.desc()).all()

    @staticmethod
    def get_owned_raffle(db: Session, raffle_id: int, owner: User) -> Raffle:
        raffle = db.query(Raffle).filter(
            Raffle.id == raffle_id,
            Raffle.owner_id == owner.id
        ).first()
        if not raffle:
            raise NotFoundError("Raffle not found")
        return raffle

    @staticmethod
    def occupied_numbers(db: Session, raffle_id: int) -> List[int]:
        rows = db.query(Ticket.number).filter(
            Ticket.raffle_id == raffle_id
        ).order_by(Ticket.number.asc()).all()
        return [row.number for row in rows]

    @staticmethod
    def available_numbers(max_number: int, occupied: List[int]) -> List[int]:
        taken = set(occupied)
        return [n for n in range(1, max_number + 1) if n not in taken]

    @staticmethod
    def get_raffle(db: Session, raffle_id: int, context: RequestContext) -> RaffleDetail:
        """
        Full raffle view with occupied/available numbers and media.
        The owner additionally gets ticket counts per payment status.
        """
        raffle = db.query(Raffle).filter(Raffle.id == raffle_id).first()
        if not raffle:
            raise NotFoundError("Raffle not found")

        occupied = RaffleService.occupied_numbers(db, raffle.id)
        media = db.query(Media).filter(
            Media.raffle_id == raffle.id
        ).order_by(Media.display_order.asc(), Media.id.asc()).all()

        fields = dict(
            RaffleResponse.model_validate(raffle).model_dump(),
            occupied_numbers=occupied,
            available_numbers=RaffleService.available_numbers(raffle.max_number, occupied),
            media=[MediaResponse.model_validate(m) for m in media]
        )

        if isinstance(context, Authenticated) and context.user_id == raffle.owner_id:
            counts = dict(
                db.query(Ticket.payment_status, func.count(Ticket.id))
                .filter(Ticket.raffle_id == raffle.id)
                .group_by(Ticket.payment_status)
                .all()
            )
            return RaffleOwnerDetail(
                **fields,
                pending_count=counts.get(PaymentStatus.PENDING, 0),
                paid_count=counts.get(PaymentStatus.PAID, 0)
            )

        return RaffleDetail(**fields)

    @staticmethod
    def list_public_raffles(db: Session) -> List[PublicRaffleSummary]:
        sold_counts = (
            db.query(Ticket.raffle_id, func.count(Ticket.id).label("sold"))
            .group_by(Ticket.raffle_id)
            .subquery()
        )
        rows = (
            db.query(Raffle, func.coalesce(sold_counts.c.sold, 0))
            .outerjoin(sold_counts, sold_counts.c.raffle_id == Raffle.id)
            .order_by(Raffle.created_at.desc(), Raffle.id.desc())
            .all()
        )

        first_photos = {}
        for media in db.query(Media).filter(
            Media.kind == MediaKind.PHOTO
        ).order_by(Media.display_order.asc(), Media.id.asc()).all():
            first_photos.setdefault(media.raffle_id, media.url)

        summaries = []
        for raffle, sold in rows:
            cover = raffle.cover_image_url or first_photos.get(raffle.id)
            summaries.append(PublicRaffleSummary(
                id=raffle.id,
                title=raffle.title,
                description=raffle.description,
                cover_image_url=absolute_url(cover),
                ticket_price=raffle.ticket_price,
                draw_date=raffle.draw_date,
                max_number=raffle.max_number,
                sold=sold,
                available=max(raffle.max_number - sold, 0),
                created_at=raffle.created_at
            ))
        return summaries

    @staticmethod
    def update_raffle(db: Session, raffle_id: int, owner: User, data: RaffleUpdate) -> Raffle:
        raffle = RaffleService.get_owned_raffle(db, raffle_id, owner)
        changes = data.model_dump(exclude_unset=True)

        for field in ("title", "ticket_price", "draw_date", "max_number"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        if "max_number" in changes:
            highest = db.query(func.max(Ticket.number)).filter(
                Ticket.raffle_id == raffle.id
            ).scalar()
            if highest is not None and changes["max_number"] < highest:
                raise ValidationError(
                    f"max_number cannot be lower than reserved number {highest}"
                )

        for field, value in changes.items():
            setattr(raffle, field, value)
        db.commit()
        db.refresh(raffle)
        return raffle

    @staticmethod
    def delete_raffle(db: Session, raffle_id: int, owner: User) -> None:
        raffle = RaffleService.get_owned_raffle(db, raffle_id, owner)
        # Tickets and media go with the raffle in one commit.
        db.delete(raffle)
        db.commit()
        logger.info(f"User {owner.id} deleted raffle {raffle_id}")

    @staticmethod
    def list_raffle_tickets(db: Session, raffle_id: int, owner: User) -> List[Ticket]:
        raffle = RaffleService.get_owned_raffle(db, raffle_id, owner)
        return db.query(Ticket).filter(
            Ticket.raffle_id == raffle.id
        ).order_by(Ticket.number.asc()).all()
