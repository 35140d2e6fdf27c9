from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging

from rifaria.config import get_settings
from rifaria.database import SessionLocal
from rifaria.services.card import get_card_gateway
from rifaria.services.pix import get_pix_gateway
from rifaria.services.reservation import ReservationService

settings = get_settings()
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

RELEASE_JOB_ID = "release_expired_reservations"


async def release_expired_reservations():
    """Free numbers whose PENDING reservation outlived the hold window."""
    db = SessionLocal()
    try:
        await ReservationService.release_expired(
            db,
            get_pix_gateway(),
            get_card_gateway(),
            hold_minutes=settings.reservation_hold_minutes
        )
    except Exception as e:
        logger.error(f"Error releasing expired reservations: {e}")
    finally:
        db.close()


def init_scheduler():
    """Start the expiry sweep when a reservation hold is configured."""
    if settings.reservation_hold_minutes <= 0:
        logger.info("Reservation expiry disabled, pending tickets are held indefinitely")
        return

    scheduler.add_job(
        release_expired_reservations,
        'interval',
        minutes=1,
        id=RELEASE_JOB_ID,
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Scheduler started, reservations expire after {settings.reservation_hold_minutes} min")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shutdown")
