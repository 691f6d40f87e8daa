from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubtrack.db.base import Base


class Branch(Base):
    """Company branch. Origin and hub of a challan are both branches."""
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    branch_name: Mapped[str] = mapped_column(String(120), nullable=False)
    branch_code: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class City(Base):
    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    city_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    # Station summaries reference their destination by this code, not by id.
    city_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)


class Transport(Base):
    """
    Onward carrier handling final-mile delivery from the hub.
    A carrier is eligible for every shipment destined to its home city.
    """
    __tablename__ = "transports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transport_name: Mapped[str] = mapped_column(String(200), nullable=False)
    city_id: Mapped[int | None] = mapped_column(ForeignKey("cities.id"), nullable=True, index=True)
    city_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gst_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mob_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    branch_owner_name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    city: Mapped["City | None"] = relationship("City")
