from rifaria.services.auth import AuthService
from rifaria.services.raffle import RaffleService
from rifaria.services.reservation import ReservationService
from rifaria.services.media import MediaService

__all__ = ["AuthService", "RaffleService", "ReservationService", "MediaService"]
