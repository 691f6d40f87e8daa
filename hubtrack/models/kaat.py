from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from hubtrack.db.base import Base
from hubtrack.models.mixins import AuditMixin

CHARGE_FIELDS = ("bilty_chrg", "ewb_chrg", "labour_chrg", "other_chrg")
TOTAL_FIELDS = ("kaat", "pf", "dd_chrg") + CHARGE_FIELDS


class KaatRecord(AuditMixin, Base):
    """
    Charge ledger entry for one GR number.
    Written only through insert-or-update keyed by gr_no.
    pohonch_no and bilty_number are mutually exclusive.
    """
    __tablename__ = "bilty_wise_kaat"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gr_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    challan_no: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    destination_city_id: Mapped[int | None] = mapped_column(ForeignKey("cities.id"), nullable=True)

    pohonch_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bilty_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    transport_id: Mapped[int | None] = mapped_column(ForeignKey("transports.id"), nullable=True)
    hub_rate_id: Mapped[int | None] = mapped_column(ForeignKey("transport_hub_rates.id"), nullable=True)

    kaat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    actual_kaat_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    pf: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    dd_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    bilty_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    ewb_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    labour_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    other_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<KaatRecord(gr_no={self.gr_no}, transport={self.transport_id}, kaat={self.kaat})>"
