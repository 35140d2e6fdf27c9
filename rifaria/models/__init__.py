from rifaria.models.user import User
from rifaria.models.raffle import Raffle
from rifaria.models.ticket import Ticket
from rifaria.models.media import Media

__all__ = ["User", "Raffle", "Ticket", "Media"]
