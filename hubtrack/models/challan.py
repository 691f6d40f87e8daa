from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from hubtrack.db.base import Base


class Challan(Base):
    """
    Dispatch manifest grouping the shipments loaded on one vehicle trip.
    Created at dispatch time by the booking side; this service only flips the
    one-way received-at-hub flag.
    """
    __tablename__ = "challan_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey("branches.id"), nullable=True)

    truck_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    owner_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    challan_date: Mapped[date | None] = mapped_column("date", Date, nullable=True)
    total_bilty_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remarks: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dispatch_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_received_at_hub: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    received_at_hub_timing: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    received_by_user: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
