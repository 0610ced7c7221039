# Parking Time Tracker: Database Models
# Import all models here for SQLAlchemy discovery

from app.models.parking_session import ParkingSession      # noqa
from app.models.monthly_total import MonthlyTotal          # noqa
from app.models.schema_migration import SchemaMigration    # noqa
