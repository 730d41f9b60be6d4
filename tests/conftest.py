"""
Shared fixtures: a throwaway SQLite file database per test plus small
factories for rooms, bookings and feeds.
"""

import pytest
from decimal import Decimal
import uuid

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app import models  # noqa: F401
from app.models.booking import Booking, BookingStatus
from app.models.calendar_feed import RoomCalendarFeed
from app.models.room import Room, RoomStatus


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_room(db):
    def _make_room(slug="garden-suite", base_price="100.00", status=RoomStatus.ACTIVE.value,
                   service_fee_rate="0", tax_rate="0"):
        room = Room(
            name=slug.replace("-", " ").title(),
            slug=slug,
            base_price=Decimal(base_price),
            service_fee_rate=Decimal(service_fee_rate),
            tax_rate=Decimal(tax_rate),
            currency="USD",
            status=status
        )
        db.add(room)
        db.commit()
        db.refresh(room)
        return room
    return _make_room


@pytest.fixture
def room(make_room):
    return make_room()


@pytest.fixture
def make_booking(db):
    def _make_booking(room, check_in, check_out, status=BookingStatus.CONFIRMED.value):
        booking = Booking(
            confirmation_id=f"RC-{uuid.uuid4().hex[:8].upper()}",
            room_id=room.id,
            check_in_date=check_in,
            check_out_date=check_out,
            guest_name="Test Guest",
            status=status
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return _make_booking


@pytest.fixture
def make_feed(db):
    def _make_feed(room, platform="airbnb", url="https://calendar.example.com/room.ics", is_active=True):
        feed = RoomCalendarFeed(room_id=room.id, platform=platform, ical_url=url, is_active=is_active)
        db.add(feed)
        db.commit()
        db.refresh(feed)
        return feed
    return _make_feed
