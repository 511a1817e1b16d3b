"""
Administrative command line for the transport database.

  python -m db.seed create-user <username> [--role admin] [--name ...] [--email ...]
      Create (or re-key) a user and print a fresh bearer token.  Only the
      token's sha256 digest is stored, so the printed value cannot be
      recovered later; run the command again to rotate it.

  python -m db.seed demo
      Load a small demo data set (routes, buses, a schedule, contacts) through
      the same core functions the API uses.  Existing rows are left alone; run
      `clear` first for a clean slate.

  python -m db.seed clear
      Delete every row from every table.
"""

import argparse
import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from api.deps import hash_token, issue_token
from contacts.lifecycle import create_contact
from contacts.staff import create_staff_contact
from db.models import USER_ROLES, Base, User, utcnow
from db.session import init_db, session_scope
from db.store import EntityStore
from fleet.buses import create_bus
from fleet.routes import create_route
from fleet.schedules import create_schedule

logger = logging.getLogger(__name__)

_DEMO_ROUTES = [
    {
        "route_number": "R001",
        "name": "City Center - Airport",
        "start_location": "City Center Bus Terminal",
        "end_location": "International Airport",
        "distance": 25.5,
        "estimated_duration": 45,
        "operating_hours": {"start": "05:30", "end": "23:30"},
        "frequency": 15,
        "fare": 3.5,
        "stops": [
            {"name": "City Center Bus Terminal", "coordinates": {"latitude": 22.5726, "longitude": 88.3639},
             "estimated_time": 0, "order": 1},
            {"name": "Downtown Plaza", "coordinates": {"latitude": 22.5958, "longitude": 88.4010},
             "estimated_time": 10, "order": 2},
            {"name": "University Campus", "coordinates": {"latitude": 22.6201, "longitude": 88.4305},
             "estimated_time": 25, "order": 3},
            {"name": "International Airport", "coordinates": {"latitude": 22.6547, "longitude": 88.4467},
             "estimated_time": 45, "order": 4},
        ],
    },
    {
        "route_number": "R002",
        "name": "Residential - Business District",
        "start_location": "Sunset Residential Area",
        "end_location": "Business District Center",
        "distance": 18.2,
        "estimated_duration": 35,
        "operating_hours": {"start": "06:00", "end": "22:00"},
        "frequency": 20,
        "fare": 2.75,
        "stops": [
            {"name": "Sunset Residential Area", "coordinates": {"latitude": 22.5120, "longitude": 88.3920},
             "estimated_time": 0, "order": 1},
            {"name": "Metro Shopping Center", "coordinates": {"latitude": 22.5390, "longitude": 88.3960},
             "estimated_time": 12, "order": 2},
            {"name": "Business District Center", "coordinates": {"latitude": 22.5700, "longitude": 88.4320},
             "estimated_time": 35, "order": 3},
        ],
    },
]

_DEMO_BUSES = [
    # (bus fields, index into _DEMO_ROUTES or None)
    ({"bus_number": "BUS-001", "capacity": 50, "type": "standard", "model": "Mercedes Citaro",
      "year": 2020, "license_plate": "TC-001", "fuel_type": "diesel", "mileage": 45000,
      "features": ["Air Conditioning", "WiFi", "USB Charging"]}, 0),
    ({"bus_number": "BUS-002", "capacity": 45, "type": "luxury", "model": "Volvo 7900",
      "year": 2021, "license_plate": "TC-002", "fuel_type": "electric", "mileage": 28000,
      "features": ["Air Conditioning", "WiFi", "USB Charging", "Leather Seats"]}, 1),
    ({"bus_number": "BUS-003", "capacity": 55, "type": "standard", "status": "maintenance",
      "model": "MAN Lions City", "year": 2019, "license_plate": "TC-003", "fuel_type": "hybrid",
      "mileage": 62000, "features": ["Air Conditioning", "Low Floor"], "driver": "John Smith"}, None),
]

_DEMO_CONTACTS = [
    {"name": "Priya Sharma", "email": "priya.sharma@example.com", "subject": "Late bus on R001",
     "message": "The 7:30 bus on route R001 was 20 minutes late this morning.",
     "category": "complaint", "priority": "high"},
    {"name": "Arjun Mehta", "email": "arjun.mehta@example.com", "subject": "Weekend service",
     "message": "Could the R002 route run a later service on weekends?",
     "category": "suggestion", "priority": "low"},
]

_DEMO_STAFF = [
    {"name": "Ravi Kumar", "email": "ravi.kumar@example.com", "phone": "+91-9876500001",
     "department": "Operations", "position": "Depot Supervisor"},
    {"name": "Anita Das", "email": "anita.das@example.com", "phone": "+91-9876500002",
     "department": "Customer Service", "position": "Support Lead", "shift": "Rotating"},
]


def create_user(session: Session, username: str, role: str, full_name: str | None, email: str | None) -> str:
    """Create or re-key `username`; returns the plaintext token (shown once)."""
    token = issue_token()
    user = session.query(User).filter(User.username == username).one_or_none()
    if user is None:
        user = User(username=username, role=role, full_name=full_name, email=email)
        session.add(user)
        logger.info("Creating user %s (%s).", username, role)
    else:
        user.role = role
        user.full_name = full_name or user.full_name
        user.email = email or user.email
        logger.info("Rotating token for existing user %s.", username)
    user.api_token_hash = hash_token(token)
    session.commit()
    return token


def load_demo(session: Session) -> dict[str, int]:
    store = EntityStore(session)
    routes = [create_route(store, data) for data in _DEMO_ROUTES]

    buses = []
    for data, route_index in _DEMO_BUSES:
        values = dict(data)
        if route_index is not None:
            values["route"] = routes[route_index].id
        buses.append(create_bus(store, values))

    departure = (utcnow() + timedelta(days=1)).replace(hour=6, minute=30, second=0, microsecond=0)
    create_schedule(store, {
        "route": routes[0].id,
        "bus": buses[0].id,
        "departure_time": departure,
        "arrival_time": departure + timedelta(minutes=routes[0].estimated_duration),
    })

    for data in _DEMO_CONTACTS:
        create_contact(store, data, origin="customer")
    for data in _DEMO_STAFF:
        create_staff_contact(store, data)

    counts = {
        "routes": len(routes),
        "buses": len(buses),
        "schedules": 1,
        "contacts": len(_DEMO_CONTACTS),
        "staff": len(_DEMO_STAFF),
    }
    logger.info("Demo data loaded: %s", counts)
    return counts


def clear_all(session: Session) -> None:
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    logger.info("All tables cleared.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m db.seed", description="Transport database administration.")
    commands = parser.add_subparsers(dest="command", required=True)

    user = commands.add_parser("create-user", help="create a user and print a bearer token")
    user.add_argument("username")
    user.add_argument("--role", choices=USER_ROLES, default="staff")
    user.add_argument("--name", dest="full_name")
    user.add_argument("--email")

    commands.add_parser("demo", help="load demo routes, buses, schedules and contacts")
    commands.add_parser("clear", help="delete every row from every table")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    init_db()
    with session_scope() as session:
        if args.command == "create-user":
            token = create_user(session, args.username, args.role, args.full_name, args.email)
            print(token)
        elif args.command == "demo":
            load_demo(session)
        elif args.command == "clear":
            clear_all(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
