# Carpool Seat Queue — Database Models
# Import all models here for SQLAlchemy discovery

from carpool.models.car import Car                      # noqa
from carpool.models.passenger import Passenger          # noqa
from carpool.models.reservation import Reservation      # noqa
from carpool.models.payment import Payment              # noqa
from carpool.models.arrival import Arrival              # noqa
from carpool.models.vote import VoteForExtraCar         # noqa
from carpool.models.anomaly import Anomaly              # noqa
from carpool.models.audit_log import AuditLog           # noqa
