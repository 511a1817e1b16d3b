"""
SQLAlchemy ORM models for the fleet, route, schedule and contact records.

Every record is keyed by a 24-character hex id generated here, so store ids
are exactly the strings the reference resolver treats as identifiers.

Bus.driver, Bus.route, Schedule.route and Schedule.bus are polymorphic text
columns: either a record id or a free-text label (see fleet.references).
Nested sub-records (route stops, schedule delays) are stored as JSON lists
in caller order; assign a new list to change them.
"""

import secrets
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, Index, Integer, String, Text, text
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

BUS_TYPES = ("standard", "luxury", "double-decker", "mini")
BUS_STATUSES = ("active", "maintenance", "out-of-service", "retired")
FUEL_TYPES = ("diesel", "petrol", "electric", "hybrid")
ROUTE_STATUSES = ("active", "suspended", "seasonal")
SCHEDULE_STATUSES = ("scheduled", "in-progress", "completed", "cancelled", "delayed")
CONTACT_CATEGORIES = ("complaint", "suggestion", "inquiry", "compliment", "lost-found", "other")
CONTACT_PRIORITIES = ("low", "medium", "high", "urgent")
CONTACT_STATUSES = ("new", "in-progress", "resolved", "closed")
STAFF_SHIFTS = (
    "Day (8:00 AM - 4:00 PM)",
    "Evening (4:00 PM - 12:00 AM)",
    "Night (12:00 AM - 8:00 AM)",
    "Rotating",
)
STAFF_STATUSES = ("active", "inactive", "on-leave", "terminated")
USER_ROLES = ("admin", "manager", "driver", "staff")


def new_id() -> str:
    """Store-assigned identifier: 24 lower-case hex characters."""
    return secrets.token_hex(12)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, nullable=False)
    full_name = Column(String(100))
    email = Column(String(255))
    role = Column(String(20), nullable=False, default="staff")
    api_token_hash = Column(String(64), unique=True, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class Bus(Base):
    __tablename__ = "buses"

    id = Column(String(24), primary_key=True, default=new_id)
    bus_number = Column(String(50), unique=True, nullable=False)  # stored upper-case
    capacity = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False, default="standard")
    status = Column(String(20), nullable=False, default="active", index=True)
    driver = Column(String(255), nullable=True)  # user id or driver name
    route = Column(String(255), nullable=True, index=True)  # route id or route label
    model = Column(String(100))
    year = Column(Integer)
    license_plate = Column(String(50))
    fuel_type = Column(String(20), nullable=False, default="diesel")
    last_maintenance = Column(DateTime)
    next_maintenance = Column(DateTime)
    mileage = Column(Float, nullable=False, default=0)
    features = Column(JSON, nullable=False, default=list)
    location_latitude = Column(Float)
    location_longitude = Column(Float)
    location_updated_at = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Route(Base):
    __tablename__ = "routes"

    id = Column(String(24), primary_key=True, default=new_id)
    route_number = Column(String(50), unique=True, nullable=False)  # stored upper-case
    name = Column(String(200), nullable=False)
    start_location = Column(String(200), nullable=False)
    end_location = Column(String(200), nullable=False)
    # [{"name", "coordinates": {"latitude", "longitude"}, "estimated_time", "order"}]
    stops = Column(JSON, nullable=False, default=list)
    distance = Column(Float, nullable=False)            # km
    estimated_duration = Column(Integer, nullable=False)  # minutes
    operating_start = Column(String(5), nullable=False)   # HH:MM
    operating_end = Column(String(5), nullable=False)     # HH:MM
    frequency = Column(Integer, nullable=False)           # minutes
    fare = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        Index("ix_schedules_route_departure", "route", "departure_time"),
        Index("ix_schedules_bus_departure", "bus", "departure_time"),
        Index("ix_schedules_driver_departure", "driver", "departure_time"),
    )

    id = Column(String(24), primary_key=True, default=new_id)
    route = Column(String(255), nullable=False)  # route id or route label
    bus = Column(String(255), nullable=False)    # bus id or bus label
    driver = Column(String(24), nullable=True)   # user id
    departure_time = Column(DateTime, nullable=False, index=True)
    arrival_time = Column(DateTime, nullable=False)
    actual_departure_time = Column(DateTime)
    actual_arrival_time = Column(DateTime)
    status = Column(String(20), nullable=False, default="scheduled", index=True)
    passengers_current = Column(Integer, nullable=False, default=0)
    passengers_boarded = Column(Integer, nullable=False, default=0)
    passengers_alighted = Column(Integer, nullable=False, default=0)
    # [{"reason", "duration", "timestamp"}] in the order they were recorded
    delays = Column(JSON, nullable=False, default=list)
    notes = Column(String(500))
    weather_condition = Column(String(100))
    weather_temperature = Column(Float)
    weather_visibility = Column(String(20))
    fuel_consumption = Column(Float)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Contact(Base):
    """Customer inquiry or staff contact.  At most one non-closed row per email."""
    __tablename__ = "contacts"
    __table_args__ = (
        Index(
            "uq_contacts_active_email",
            "email",
            unique=True,
            sqlite_where=text("status != 'closed'"),
            postgresql_where=text("status != 'closed'"),
        ),
    )

    id = Column(String(24), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)  # lower-case
    phone = Column(String(50))
    subject = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    category = Column(String(20), nullable=False, default="inquiry", index=True)
    priority = Column(String(20), nullable=False, default="medium", index=True)
    status = Column(String(20), nullable=False, default="new", index=True)
    assigned_to = Column(String(24), nullable=True)
    related_route = Column(String(24), nullable=True)
    related_bus = Column(String(24), nullable=True)
    department = Column(String(100))
    position = Column(String(100))
    role = Column(String(100))
    tags = Column(JSON, nullable=False, default=list)
    response_message = Column(String(2000))
    responded_by = Column(String(24))
    responded_at = Column(DateTime)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime)
    read_by = Column(String(24))
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class StaffContact(Base):
    __tablename__ = "staff_contacts"

    id = Column(String(24), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)  # lower-case
    phone = Column(String(50), nullable=False)
    department = Column(String(100), nullable=False, index=True)
    position = Column(String(100))
    role = Column(String(100))
    shift = Column(String(40), nullable=False, default=STAFF_SHIFTS[0])
    status = Column(String(20), nullable=False, default="active", index=True)
    emergency_contact = Column(String(200))
    address = Column(Text)
    hire_date = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
