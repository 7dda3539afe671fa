# Rental engine: database models
# Import all models here for SQLAlchemy discovery

from app.models.car import Car                         # noqa
from app.models.customer import Customer               # noqa
from app.models.driver import Driver                   # noqa
from app.models.booking import Booking                 # noqa
from app.models.payment import Payment                 # noqa
from app.models.release import Release                 # noqa
from app.models.return_record import ReturnRecord      # noqa
from app.models.transaction import Transaction         # noqa
from app.models.waitlist import Waitlist               # noqa
from app.models.manage_fee import ManageFee            # noqa
