# Import the declarative base
from hubtrack.db.base import Base

# Import all models so they register themselves on Base.metadata
# (Alembic's env.py and the test fixtures rely on this).
from hubtrack.models.reference import Branch, City, Transport
from hubtrack.models.challan import Challan
from hubtrack.models.transit import TransitRecord
from hubtrack.models.shipment_source import Bilty, StationBiltySummary
from hubtrack.models.hub_rate import HubRate
from hubtrack.models.kaat import KaatRecord
