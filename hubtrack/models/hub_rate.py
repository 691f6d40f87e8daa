from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubtrack.db.base import Base
from hubtrack.models.mixins import AuditMixin

PRICING_MODES = ("per_kg", "per_pkg")


class HubRate(AuditMixin, Base):
    """
    Carrier pricing for one destination city.
    Only the rate matching `pricing_mode` is meaningful; the four ancillary
    charges are copied onto the kaat record as-is.
    """
    __tablename__ = "transport_hub_rates"
    __table_args__ = (
        CheckConstraint(
            "pricing_mode IN ('per_kg', 'per_pkg')", name="ck_transport_hub_rates_pricing_mode"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transport_id: Mapped[int] = mapped_column(ForeignKey("transports.id"), nullable=False, index=True)
    transport_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    destination_city_id: Mapped[int] = mapped_column(ForeignKey("cities.id"), nullable=False, index=True)
    goods_type: Mapped[str | None] = mapped_column(String(60), nullable=True)

    pricing_mode: Mapped[str] = mapped_column(String(10), nullable=False, default="per_kg")
    rate_per_kg: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    rate_per_pkg: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    min_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True, default=0)

    bilty_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    ewb_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    labour_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    other_chrg: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    transport = relationship("Transport")

    def __repr__(self) -> str:
        return (
            f"<HubRate(transport={self.transport_id}, city={self.destination_city_id}, "
            f"mode={self.pricing_mode})>"
        )
