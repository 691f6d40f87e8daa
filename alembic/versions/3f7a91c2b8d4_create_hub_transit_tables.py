"""create hub transit, source, hub rate and kaat tables

Revision ID: 3f7a91c2b8d4
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f7a91c2b8d4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.Numeric(12, 2), nullable=True)
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default=sa.text("0"))


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("branch_name", sa.String(length=120), nullable=False),
        sa.Column("branch_code", sa.String(length=20), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "cities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("city_name", sa.String(length=120), nullable=False),
        sa.Column("city_code", sa.String(length=20), nullable=False),
    )
    op.create_index("ix_cities_city_name", "cities", ["city_name"])
    op.create_index("ix_cities_city_code", "cities", ["city_code"], unique=True)

    op.create_table(
        "transports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transport_name", sa.String(length=200), nullable=False),
        sa.Column("city_id", sa.Integer(), sa.ForeignKey("cities.id"), nullable=True),
        sa.Column("city_name", sa.String(length=120), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("gst_number", sa.String(length=20), nullable=True),
        sa.Column("mob_number", sa.String(length=20), nullable=True),
        sa.Column("branch_owner_name", sa.String(length=120), nullable=True),
    )
    op.create_index("ix_transports_city_id", "transports", ["city_id"])

    op.create_table(
        "challan_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("challan_no", sa.String(length=50), nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("truck_number", sa.String(length=30), nullable=True),
        sa.Column("driver_name", sa.String(length=120), nullable=True),
        sa.Column("owner_name", sa.String(length=120), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("total_bilty_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_dispatched", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dispatch_date", sa.DateTime(), nullable=True),
        sa.Column("is_received_at_hub", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("received_at_hub_timing", sa.DateTime(), nullable=True),
        sa.Column("received_by_user", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )
    op.create_index("ix_challan_details_challan_no", "challan_details", ["challan_no"], unique=True)

    op.create_table(
        "transit_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "challan_no",
            sa.String(length=50),
            sa.ForeignKey("challan_details.challan_no"),
            nullable=False,
        ),
        sa.Column("gr_no", sa.String(length=50), nullable=False),
        sa.Column("from_branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("to_branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column(
            "is_out_of_delivery_from_branch1",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("out_of_delivery_from_branch1_date", sa.DateTime(), nullable=True),
        sa.Column("is_delivered_at_branch2", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("delivered_at_branch2_date", sa.DateTime(), nullable=True),
        sa.Column(
            "is_out_of_delivery_from_branch2",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("out_of_delivery_from_branch2_date", sa.DateTime(), nullable=True),
        sa.Column(
            "is_delivered_at_destination",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("delivered_at_destination_date", sa.DateTime(), nullable=True),
        sa.Column("out_for_door_delivery", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("out_for_door_delivery_date", sa.DateTime(), nullable=True),
        sa.Column("delivery_agent_name", sa.String(length=120), nullable=True),
        sa.Column("delivery_agent_phone", sa.String(length=20), nullable=True),
        sa.Column("vehicle_number", sa.String(length=30), nullable=True),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_transit_details_challan_no", "transit_details", ["challan_no"])
    op.create_index("ix_transit_details_gr_no", "transit_details", ["gr_no"], unique=True)

    op.create_table(
        "bilty",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("gr_no", sa.String(length=50), nullable=False),
        sa.Column("bilty_date", sa.Date(), nullable=True),
        sa.Column("consignor_name", sa.String(length=200), nullable=True),
        sa.Column("consignor_number", sa.String(length=20), nullable=True),
        sa.Column("consignee_name", sa.String(length=200), nullable=True),
        sa.Column("consignee_number", sa.String(length=20), nullable=True),
        sa.Column("to_city_id", sa.Integer(), sa.ForeignKey("cities.id"), nullable=True),
        sa.Column("payment_mode", sa.String(length=20), nullable=True),
        sa.Column("delivery_type", sa.String(length=30), nullable=True),
        sa.Column("no_of_pkg", sa.Integer(), nullable=True),
        sa.Column("wt", sa.Numeric(12, 3), nullable=True),
        _money("rate", nullable=True),
        _money("freight_amount", nullable=True),
        _money("labour_charge", nullable=True),
        _money("total", nullable=True),
        sa.Column("contain", sa.String(length=200), nullable=True),
        sa.Column("e_way_bill", sa.String(length=50), nullable=True),
        sa.Column("pvt_marks", sa.String(length=100), nullable=True),
        sa.Column("transport_name", sa.String(length=200), nullable=True),
        sa.Column("invoice_no", sa.String(length=50), nullable=True),
        sa.Column("invoice_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("remark", sa.String(length=255), nullable=True),
        sa.Column("bilty_image", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )
    op.create_index("ix_bilty_gr_no", "bilty", ["gr_no"])

    op.create_table(
        "station_bilty_summary",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("gr_no", sa.String(length=50), nullable=False),
        sa.Column("station", sa.String(length=20), nullable=True),
        sa.Column("consignor", sa.String(length=200), nullable=True),
        sa.Column("consignee", sa.String(length=200), nullable=True),
        sa.Column("contents", sa.String(length=200), nullable=True),
        sa.Column("no_of_packets", sa.Integer(), nullable=True),
        sa.Column("weight", sa.Numeric(12, 3), nullable=True),
        sa.Column("payment_status", sa.String(length=20), nullable=True),
        _money("amount", nullable=True),
        sa.Column("pvt_marks", sa.String(length=100), nullable=True),
        sa.Column("e_way_bill", sa.String(length=50), nullable=True),
        sa.Column("delivery_type", sa.String(length=30), nullable=True),
        sa.Column("w_name", sa.String(length=120), nullable=True),
        sa.Column("transport_name", sa.String(length=200), nullable=True),
        sa.Column("transport_gst", sa.String(length=20), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )
    op.create_index("ix_station_bilty_summary_gr_no", "station_bilty_summary", ["gr_no"])
    op.create_index("ix_station_bilty_summary_station", "station_bilty_summary", ["station"])

    op.create_table(
        "transport_hub_rates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transport_id", sa.Integer(), sa.ForeignKey("transports.id"), nullable=False),
        sa.Column("transport_name", sa.String(length=200), nullable=True),
        sa.Column(
            "destination_city_id", sa.Integer(), sa.ForeignKey("cities.id"), nullable=False
        ),
        sa.Column("goods_type", sa.String(length=60), nullable=True),
        sa.Column("pricing_mode", sa.String(length=10), nullable=False, server_default="per_kg"),
        _money("rate_per_kg", nullable=True),
        _money("rate_per_pkg", nullable=True),
        _money("min_charge", nullable=True),
        _money("bilty_chrg"),
        _money("ewb_chrg"),
        _money("labour_chrg"),
        _money("other_chrg"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_audit_columns(),
        sa.CheckConstraint(
            "pricing_mode IN ('per_kg', 'per_pkg')", name="ck_transport_hub_rates_pricing_mode"
        ),
    )
    op.create_index("ix_transport_hub_rates_transport_id", "transport_hub_rates", ["transport_id"])
    op.create_index(
        "ix_transport_hub_rates_destination_city_id",
        "transport_hub_rates",
        ["destination_city_id"],
    )
    op.create_index("ix_transport_hub_rates_is_active", "transport_hub_rates", ["is_active"])

    op.create_table(
        "bilty_wise_kaat",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("gr_no", sa.String(length=50), nullable=False),
        sa.Column("challan_no", sa.String(length=50), nullable=True),
        sa.Column(
            "destination_city_id", sa.Integer(), sa.ForeignKey("cities.id"), nullable=True
        ),
        sa.Column("pohonch_no", sa.String(length=50), nullable=True),
        sa.Column("bilty_number", sa.String(length=50), nullable=True),
        sa.Column("transport_id", sa.Integer(), sa.ForeignKey("transports.id"), nullable=True),
        sa.Column(
            "hub_rate_id", sa.Integer(), sa.ForeignKey("transport_hub_rates.id"), nullable=True
        ),
        _money("kaat"),
        _money("actual_kaat_rate"),
        _money("pf"),
        _money("dd_chrg"),
        _money("bilty_chrg"),
        _money("ewb_chrg"),
        _money("labour_chrg"),
        _money("other_chrg"),
        *_audit_columns(),
    )
    op.create_index("ix_bilty_wise_kaat_gr_no", "bilty_wise_kaat", ["gr_no"], unique=True)
    op.create_index("ix_bilty_wise_kaat_challan_no", "bilty_wise_kaat", ["challan_no"])


def downgrade() -> None:
    op.drop_index("ix_bilty_wise_kaat_challan_no", table_name="bilty_wise_kaat")
    op.drop_index("ix_bilty_wise_kaat_gr_no", table_name="bilty_wise_kaat")
    op.drop_table("bilty_wise_kaat")
    op.drop_index("ix_transport_hub_rates_is_active", table_name="transport_hub_rates")
    op.drop_index("ix_transport_hub_rates_destination_city_id", table_name="transport_hub_rates")
    op.drop_index("ix_transport_hub_rates_transport_id", table_name="transport_hub_rates")
    op.drop_table("transport_hub_rates")
    op.drop_index("ix_station_bilty_summary_station", table_name="station_bilty_summary")
    op.drop_index("ix_station_bilty_summary_gr_no", table_name="station_bilty_summary")
    op.drop_table("station_bilty_summary")
    op.drop_index("ix_bilty_gr_no", table_name="bilty")
    op.drop_table("bilty")
    op.drop_index("ix_transit_details_gr_no", table_name="transit_details")
    op.drop_index("ix_transit_details_challan_no", table_name="transit_details")
    op.drop_table("transit_details")
    op.drop_index("ix_challan_details_challan_no", table_name="challan_details")
    op.drop_table("challan_details")
    op.drop_index("ix_transports_city_id", table_name="transports")
    op.drop_table("transports")
    op.drop_index("ix_cities_city_code", table_name="cities")
    op.drop_index("ix_cities_city_name", table_name="cities")
    op.drop_table("cities")
    op.drop_table("branches")
