from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from hubtrack.db.base import Base


class Bilty(Base):
    """
    Regular consignment note booked at a branch counter.
    Destination is a foreign key into `cities`.
    """
    __tablename__ = "bilty"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gr_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    bilty_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    consignor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    consignor_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    consignee_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    consignee_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    to_city_id: Mapped[int | None] = mapped_column(ForeignKey("cities.id"), nullable=True)
    payment_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    delivery_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    no_of_pkg: Mapped[int | None] = mapped_column(Integer, nullable=True)
    wt: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    freight_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    labour_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    contain: Mapped[str | None] = mapped_column(String(200), nullable=True)
    e_way_bill: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pvt_marks: Mapped[str | None] = mapped_column(String(100), nullable=True)
    transport_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    invoice_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    remark: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bilty_image: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class StationBiltySummary(Base):
    """
    Summary entry for a consignment booked at an outside station.
    Destination is carried as a city *code* in `station`, and several fields
    use their own names (no_of_packets, weight, contents, payment_status).
    """
    __tablename__ = "station_bilty_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gr_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    station: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)

    consignor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    consignee: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contents: Mapped[str | None] = mapped_column(String(200), nullable=True)
    no_of_packets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    payment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    pvt_marks: Mapped[str | None] = mapped_column(String(100), nullable=True)
    e_way_bill: Mapped[str | None] = mapped_column(String(50), nullable=True)
    delivery_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    w_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    transport_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    transport_gst: Mapped[str | None] = mapped_column(String(20), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
