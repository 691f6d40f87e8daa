from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from hubtrack.db.base import Base


class TransitRecord(Base):
    """
    One row per shipment per challan. Each delivery stage is an independent
    flag/timestamp pair so that skipped stages stay visible.
    Rows are never deleted.
    """
    __tablename__ = "transit_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_no: Mapped[str] = mapped_column(
        ForeignKey("challan_details.challan_no"), nullable=False, index=True
    )
    gr_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    from_branch_id: Mapped[int | None] = mapped_column(ForeignKey("branches.id"), nullable=True)
    to_branch_id: Mapped[int | None] = mapped_column(ForeignKey("branches.id"), nullable=True)

    # Origin branch -> hub
    is_out_of_delivery_from_branch1: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    out_of_delivery_from_branch1_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Arrived at hub
    is_delivered_at_branch2: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered_at_branch2_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Hub -> destination
    is_out_of_delivery_from_branch2: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    out_of_delivery_from_branch2_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_delivered_at_destination: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered_at_destination_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Final-mile door delivery, outside the main chain
    out_for_door_delivery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    out_for_door_delivery_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    delivery_agent_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    delivery_agent_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vehicle_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    remarks: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
