from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("hubtrack.main").app
from hubtrack.db.base import Base
from hubtrack.db.session import get_db
from hubtrack.services.in_flight_guard import transit_guard

# Ensure all models are registered with SQLAlchemy metadata
import hubtrack.models  # noqa: F401
from hubtrack.models import (
    Bilty,
    Branch,
    Challan,
    City,
    HubRate,
    StationBiltySummary,
    TransitRecord,
    Transport,
)


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_transit_guard():
    transit_guard._busy.clear()
    yield
    transit_guard._busy.clear()


@pytest.fixture
def hub_data(db_session):
    """
    Challan C-100 from Aligarh to the Kanpur hub:
    - G1: regular 2 kg bilty to Kanpur (one carrier, 5/kg with a 20 minimum)
    - G2: station summary to Lucknow by city code (two carriers serve Lucknow)
    - G3: regular bilty to Kanpur, already delivered at hub
    - G4: no source row in either table
    """
    aligarh = Branch(id=1, branch_name="Aligarh", branch_code="ALG")
    kanpur_hub = Branch(id=2, branch_name="Kanpur Hub", branch_code="KNP")
    kanpur = City(id=10, city_name="Kanpur", city_code="KNP")
    lucknow = City(id=11, city_name="Lucknow", city_code="LKO")
    x_transport = Transport(id=100, transport_name="X-Transport", city_id=10, city_name="Kanpur")
    lko_a = Transport(id=101, transport_name="Awadh Carriers", city_id=11, city_name="Lucknow")
    lko_b = Transport(id=102, transport_name="Gomti Roadways", city_id=11, city_name="Lucknow")
    db_session.add_all([aligarh, kanpur_hub, kanpur, lucknow, x_transport, lko_a, lko_b])
    db_session.flush()

    db_session.add(
        HubRate(
            id=500,
            transport_id=100,
            transport_name="X-Transport",
            destination_city_id=10,
            pricing_mode="per_kg",
            rate_per_kg=Decimal("5"),
            min_charge=Decimal("20"),
            bilty_chrg=Decimal("10"),
            ewb_chrg=Decimal("5"),
            labour_chrg=Decimal("3"),
            other_chrg=Decimal("0"),
        )
    )
    db_session.add(
        Challan(
            id=1,
            challan_no="C-100",
            branch_id=1,
            truck_number="UP81AB1234",
            challan_date=date(2026, 10, 19),
            total_bilty_count=4,
            is_dispatched=True,
        )
    )
    db_session.flush()

    db_session.add_all(
        [
            TransitRecord(id=1, challan_no="C-100", gr_no="G1", from_branch_id=1, to_branch_id=2),
            TransitRecord(id=2, challan_no="C-100", gr_no="G2", from_branch_id=1, to_branch_id=2),
            TransitRecord(
                id=3,
                challan_no="C-100",
                gr_no="G3",
                from_branch_id=1,
                to_branch_id=2,
                is_delivered_at_branch2=True,
            ),
            TransitRecord(id=4, challan_no="C-100", gr_no="G4", from_branch_id=1, to_branch_id=2),
        ]
    )
    db_session.add_all(
        [
            Bilty(
                gr_no="G1",
                consignor_name="Ram Traders",
                consignee_name="Shyam Stores",
                to_city_id=10,
                no_of_pkg=4,
                wt=Decimal("2"),
                total=Decimal("450"),
                payment_mode="to-pay",
                contain="Hardware",
            ),
            Bilty(
                gr_no="G3",
                consignor_name="Gupta & Sons",
                consignee_name="Verma Agencies",
                to_city_id=10,
                no_of_pkg=2,
                wt=Decimal("30"),
                total=Decimal("900"),
                payment_mode="paid",
            ),
            StationBiltySummary(
                gr_no="G2",
                station="LKO",
                consignor="Mehta Exports",
                consignee="Lucknow Mart",
                contents="Cloth",
                no_of_packets=3,
                weight=Decimal("25"),
                payment_status="paid",
                amount=Decimal("300"),
            ),
        ]
    )
    db_session.commit()
    return {"challan_no": "C-100"}
