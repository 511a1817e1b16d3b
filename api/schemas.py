from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

ObjectIdStr = Annotated[str, StringConstraints(pattern=r"^[0-9a-fA-F]{24}$")]
HHMM = Annotated[str, StringConstraints(pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\+?[\d\s\-()]+$")]

BusType = Literal["standard", "luxury", "double-decker", "mini"]
BusStatus = Literal["active", "maintenance", "out-of-service", "retired"]
FuelType = Literal["diesel", "petrol", "electric", "hybrid"]
RouteStatus = Literal["active", "suspended", "seasonal"]
ScheduleStatus = Literal["scheduled", "in-progress", "completed", "cancelled", "delayed"]
Category = Literal["complaint", "suggestion", "inquiry", "compliment", "lost-found", "other"]
Priority = Literal["low", "medium", "high", "urgent"]
ContactStatus = Literal["new", "in-progress", "resolved", "closed"]
Shift = Literal[
    "Day (8:00 AM - 4:00 PM)",
    "Evening (4:00 PM - 12:00 AM)",
    "Night (12:00 AM - 8:00 AM)",
    "Rotating",
]
StaffStatus = Literal["active", "inactive", "on-leave", "terminated"]


def naive_utc(value: datetime | None) -> datetime | None:
    """Store timestamps as naive UTC; aware inputs are converted first."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class MessageResponse(BaseModel):
    message: str


class DeletedRecord(BaseModel):
    id: str
    label: str | None = None


class DeleteResponse(BaseModel):
    message: str
    deleted: DeletedRecord


# ---------------------------------------------------------------------------
# /api/fleet
# ---------------------------------------------------------------------------

class Location(BaseModel):
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class LocationOut(Location):
    last_updated: datetime | None = None


class _BusFields(_Input):
    @field_validator("year", check_fields=False)
    @classmethod
    def _year_not_in_future(cls, value: int | None) -> int | None:
        if value is not None and value > datetime.now().year + 1:
            raise ValueError("year cannot be more than one year ahead")
        return value

    @field_validator("last_maintenance", "next_maintenance", check_fields=False)
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class BusCreate(_BusFields):
    bus_number: str = Field(..., min_length=1, max_length=50)
    capacity: int = Field(..., ge=1, le=100)
    type: BusType = "standard"
    status: BusStatus = "active"
    driver: str | None = Field(None, description="User id or driver name")
    route: str | None = Field(None, description="Route id or route label")
    model: str | None = Field(None, max_length=100)
    year: int | None = Field(None, ge=1980)
    license_plate: str | None = Field(None, max_length=50)
    fuel_type: FuelType = "diesel"
    mileage: float = Field(0, ge=0)
    features: list[str] = Field(default_factory=list)
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None
    location: Location | None = None


class BusUpdate(_BusFields):
    """Partial update.  For driver / route: omit to keep, send "" or null to clear."""
    bus_number: str | None = Field(None, min_length=1, max_length=50)
    capacity: int | None = Field(None, ge=1, le=100)
    type: BusType | None = None
    status: BusStatus | None = None
    driver: str | None = None
    route: str | None = None
    model: str | None = Field(None, max_length=100)
    year: int | None = Field(None, ge=1980)
    license_plate: str | None = Field(None, max_length=50)
    fuel_type: FuelType | None = None
    mileage: float | None = Field(None, ge=0)
    features: list[str] | None = None
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None
    location: Location | None = None


class BusOut(BaseModel):
    id: str
    bus_number: str
    capacity: int
    type: str
    status: str
    driver: str | None
    route: str | None
    model: str | None
    year: int | None
    license_plate: str | None
    fuel_type: str
    mileage: float
    features: list[str]
    last_maintenance: datetime | None
    next_maintenance: datetime | None
    location: LocationOut | None
    created_at: datetime | None
    updated_at: datetime | None
    driver_details: dict[str, Any] | None = None
    route_details: dict[str, Any] | None = None

    @classmethod
    def from_record(cls, bus, driver_details=None, route_details=None) -> BusOut:
        location = None
        if bus.location_latitude is not None or bus.location_longitude is not None:
            location = LocationOut(
                latitude=bus.location_latitude,
                longitude=bus.location_longitude,
                last_updated=bus.location_updated_at,
            )
        return cls(
            id=bus.id,
            bus_number=bus.bus_number,
            capacity=bus.capacity,
            type=bus.type,
            status=bus.status,
            driver=bus.driver,
            route=bus.route,
            model=bus.model,
            year=bus.year,
            license_plate=bus.license_plate,
            fuel_type=bus.fuel_type,
            mileage=bus.mileage,
            features=bus.features or [],
            last_maintenance=bus.last_maintenance,
            next_maintenance=bus.next_maintenance,
            location=location,
            created_at=bus.created_at,
            updated_at=bus.updated_at,
            driver_details=driver_details,
            route_details=route_details,
        )


class BusListResponse(BaseModel):
    buses: list[BusOut]
    total: int
    page: int
    pages: int


class BusCreatedResponse(BaseModel):
    message: str
    bus: BusOut


class FleetSummary(BaseModel):
    total_buses: int
    active_buses: int
    maintenance_buses: int
    out_of_service_buses: int
    total_capacity: int
    average_mileage: int
    total_mileage: float
    utilization_rate: int
    bus_by_type: dict[str, int]


# ---------------------------------------------------------------------------
# /api/routes
# ---------------------------------------------------------------------------

class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RouteStop(_Input):
    name: str = Field(..., min_length=1)
    coordinates: Coordinates
    estimated_time: float = Field(0, ge=0, description="Minutes from the start of the route")
    order: int


class OperatingHours(BaseModel):
    start: HHMM
    end: HHMM


class RouteCreate(_Input):
    route_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    start_location: str = Field(..., min_length=1, max_length=200)
    end_location: str = Field(..., min_length=1, max_length=200)
    stops: list[RouteStop] = Field(default_factory=list)
    distance: float = Field(..., ge=0.1, description="Kilometres")
    estimated_duration: int = Field(..., ge=1, description="Minutes")
    operating_hours: OperatingHours
    frequency: int = Field(..., ge=5, description="Minutes between departures")
    fare: float = Field(..., ge=0)
    status: RouteStatus = "active"


class RouteUpdate(_Input):
    route_number: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=200)
    start_location: str | None = Field(None, min_length=1, max_length=200)
    end_location: str | None = Field(None, min_length=1, max_length=200)
    stops: list[RouteStop] | None = None
    distance: float | None = Field(None, ge=0.1)
    estimated_duration: int | None = Field(None, ge=1)
    operating_hours: OperatingHours | None = None
    frequency: int | None = Field(None, ge=5)
    fare: float | None = Field(None, ge=0)
    status: RouteStatus | None = None


class RouteOut(BaseModel):
    id: str
    route_number: str
    name: str
    start_location: str
    end_location: str
    stops: list[RouteStop]
    distance: float
    estimated_duration: int
    operating_hours: OperatingHours
    frequency: int
    fare: float
    status: str
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_record(cls, route) -> RouteOut:
        return cls(
            id=route.id,
            route_number=route.route_number,
            name=route.name,
            start_location=route.start_location,
            end_location=route.end_location,
            stops=route.stops or [],
            distance=route.distance,
            estimated_duration=route.estimated_duration,
            operating_hours=OperatingHours(start=route.operating_start, end=route.operating_end),
            frequency=route.frequency,
            fare=route.fare,
            status=route.status,
            created_at=route.created_at,
            updated_at=route.updated_at,
        )


class RouteListResponse(BaseModel):
    routes: list[RouteOut]
    total: int
    page: int
    pages: int


# ---------------------------------------------------------------------------
# /api/schedules
# ---------------------------------------------------------------------------

class Passengers(BaseModel):
    current: int = Field(0, ge=0)
    boarded: int = Field(0, ge=0)
    alighted: int = Field(0, ge=0)


class PassengersUpdate(BaseModel):
    current: int | None = Field(None, ge=0)
    boarded: int | None = Field(None, ge=0)
    alighted: int | None = Field(None, ge=0)


class Weather(_Input):
    condition: str | None = None
    temperature: float | None = None
    visibility: Literal["good", "moderate", "poor"] | None = None


class DelayIn(_Input):
    reason: str = Field(..., min_length=1)
    duration: float = Field(..., ge=0, description="Minutes")


class DelayOut(BaseModel):
    reason: str
    duration: float
    timestamp: datetime


class _ScheduleFields(_Input):
    @field_validator(
        "departure_time", "arrival_time", "actual_departure_time", "actual_arrival_time",
        check_fields=False,
    )
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class ScheduleCreate(_ScheduleFields):
    route: str = Field(..., min_length=1, description="Route id or route label")
    bus: str = Field(..., min_length=1, description="Bus id or bus label")
    driver: ObjectIdStr | None = None
    departure_time: datetime
    arrival_time: datetime
    actual_departure_time: datetime | None = None
    actual_arrival_time: datetime | None = None
    status: ScheduleStatus = "scheduled"
    passengers: Passengers = Field(default_factory=Passengers)
    notes: str | None = Field(None, max_length=500)
    weather: Weather | None = None
    fuel_consumption: float | None = Field(None, ge=0)


class ScheduleUpdate(_ScheduleFields):
    route: str | None = None
    bus: str | None = None
    driver: ObjectIdStr | Literal[""] | None = None
    departure_time: datetime | None = None
    arrival_time: datetime | None = None
    actual_departure_time: datetime | None = None
    actual_arrival_time: datetime | None = None
    status: ScheduleStatus | None = None
    passengers: PassengersUpdate | None = None
    notes: str | None = Field(None, max_length=500)
    weather: Weather | None = None
    fuel_consumption: float | None = Field(None, ge=0)


class ScheduleOut(BaseModel):
    id: str
    route: str
    bus: str
    driver: str | None
    departure_time: datetime
    arrival_time: datetime
    actual_departure_time: datetime | None
    actual_arrival_time: datetime | None
    status: str
    passengers: Passengers
    delays: list[DelayOut]
    notes: str | None
    weather: Weather | None
    fuel_consumption: float | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_record(cls, schedule) -> ScheduleOut:
        weather = None
        if schedule.weather_condition or schedule.weather_temperature is not None or schedule.weather_visibility:
            weather = Weather(
                condition=schedule.weather_condition,
                temperature=schedule.weather_temperature,
                visibility=schedule.weather_visibility,
            )
        return cls(
            id=schedule.id,
            route=schedule.route,
            bus=schedule.bus,
            driver=schedule.driver,
            departure_time=schedule.departure_time,
            arrival_time=schedule.arrival_time,
            actual_departure_time=schedule.actual_departure_time,
            actual_arrival_time=schedule.actual_arrival_time,
            status=schedule.status,
            passengers=Passengers(
                current=schedule.passengers_current,
                boarded=schedule.passengers_boarded,
                alighted=schedule.passengers_alighted,
            ),
            delays=schedule.delays or [],
            notes=schedule.notes,
            weather=weather,
            fuel_consumption=schedule.fuel_consumption,
            created_at=schedule.created_at,
            updated_at=schedule.updated_at,
        )


class ScheduleListResponse(BaseModel):
    schedules: list[ScheduleOut]
    total: int
    page: int
    pages: int


# ---------------------------------------------------------------------------
# /api/contacts and /api/support
# ---------------------------------------------------------------------------

class ContactCreate(_Input):
    """Staff-entered contact; subject and message are filled in when omitted."""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Phone | None = None
    subject: str | None = Field(None, min_length=2, max_length=200)
    message: str | None = Field(None, min_length=10, max_length=1000)
    category: Category | None = None
    priority: Priority | None = None
    related_route: ObjectIdStr | None = None
    related_bus: ObjectIdStr | None = None
    department: str | None = Field(None, max_length=100)
    position: str | None = Field(None, max_length=100)
    role: str | None = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list)


class InquiryCreate(_Input):
    """Public inquiry form; subject and message are mandatory."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Phone | None = None
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=1000)
    category: Category = "inquiry"
    related_route: ObjectIdStr | None = None
    related_bus: ObjectIdStr | None = None


class ContactUpdate(_Input):
    name: str | None = Field(None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: Phone | None = None
    subject: str | None = Field(None, min_length=2, max_length=200)
    message: str | None = Field(None, min_length=10, max_length=1000)
    category: Category | None = None
    priority: Priority | None = None
    status: ContactStatus | None = None
    assigned_to: ObjectIdStr | None = None
    related_route: ObjectIdStr | None = None
    related_bus: ObjectIdStr | None = None
    department: str | None = Field(None, max_length=100)
    position: str | None = Field(None, max_length=100)
    role: str | None = Field(None, max_length=100)
    tags: list[str] | None = None


class InquiryUpdate(_Input):
    status: ContactStatus | None = None
    priority: Priority | None = None
    assigned_to: ObjectIdStr | None = None
    tags: list[str] | None = None


class RespondRequest(_Input):
    message: str = Field(..., min_length=10, max_length=2000)


class ContactResponseOut(BaseModel):
    message: str
    responded_by: str | None
    responded_at: datetime | None


class ContactOut(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None
    subject: str
    message: str
    category: str
    priority: str
    status: str
    assigned_to: str | None
    related_route: str | None
    related_bus: str | None
    department: str | None
    position: str | None
    role: str | None
    tags: list[str]
    response: ContactResponseOut | None
    is_read: bool
    read_at: datetime | None
    read_by: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_record(cls, contact) -> ContactOut:
        response = None
        if contact.response_message:
            response = ContactResponseOut(
                message=contact.response_message,
                responded_by=contact.responded_by,
                responded_at=contact.responded_at,
            )
        return cls(
            id=contact.id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            subject=contact.subject,
            message=contact.message,
            category=contact.category,
            priority=contact.priority,
            status=contact.status,
            assigned_to=contact.assigned_to,
            related_route=contact.related_route,
            related_bus=contact.related_bus,
            department=contact.department,
            position=contact.position,
            role=contact.role,
            tags=contact.tags or [],
            response=response,
            is_read=contact.is_read,
            read_at=contact.read_at,
            read_by=contact.read_by,
            created_at=contact.created_at,
            updated_at=contact.updated_at,
        )


class ContactListResponse(BaseModel):
    contacts: list[ContactOut]
    total: int


class CategoryContactsResponse(ContactListResponse):
    category: str


class UrgentContactsResponse(BaseModel):
    urgent_contacts: list[ContactOut]
    total: int


class ContactUpdatedResponse(BaseModel):
    message: str
    contact: ContactOut


class CategoryCount(BaseModel):
    category: str
    count: int


class PriorityCount(BaseModel):
    priority: str
    count: int


class StatusBreakdown(BaseModel):
    new: int
    in_progress: int
    resolved: int
    closed: int


class ContactStatsResponse(BaseModel):
    total_contacts: int
    status_breakdown: StatusBreakdown
    category_breakdown: list[CategoryCount]
    priority_breakdown: list[PriorityCount]


class InquirySubmittedResponse(BaseModel):
    message: str
    inquiry_id: str


class InquiryListResponse(BaseModel):
    inquiries: list[ContactOut]
    total: int
    page: int
    pages: int


class InquiryUpdatedResponse(BaseModel):
    message: str
    inquiry: ContactOut


class InquiryStatsResponse(BaseModel):
    total_inquiries: int
    new_inquiries: int
    in_progress_inquiries: int
    resolved_inquiries: int
    inquiries_by_category: dict[str, int]
    inquiries_by_priority: dict[str, int]


# ---------------------------------------------------------------------------
# /api/staff
# ---------------------------------------------------------------------------

class StaffContactCreate(_Input):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Phone
    department: str = Field(..., min_length=1, max_length=100)
    position: str | None = Field(None, max_length=100)
    role: str | None = Field(None, max_length=100)
    shift: Shift = "Day (8:00 AM - 4:00 PM)"
    status: StaffStatus = "active"
    emergency_contact: str | None = Field(None, max_length=200)
    address: str | None = Field(None, max_length=500)
    hire_date: datetime | None = None

    @field_validator("hire_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class StaffContactUpdate(_Input):
    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: Phone | None = None
    department: str | None = Field(None, min_length=1, max_length=100)
    position: str | None = Field(None, max_length=100)
    role: str | None = Field(None, max_length=100)
    shift: Shift | None = None
    status: StaffStatus | None = None
    emergency_contact: str | None = Field(None, max_length=200)
    address: str | None = Field(None, max_length=500)


class StaffContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str
    department: str
    position: str | None
    role: str | None
    shift: str
    status: str
    emergency_contact: str | None
    address: str | None
    hire_date: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


class StaffContactListResponse(BaseModel):
    staff: list[StaffContactOut]
    total: int


# ---------------------------------------------------------------------------
# /api/dashboard
# ---------------------------------------------------------------------------

class Revenue(BaseModel):
    today: float
    this_month: float
    currency: str


class Overview(BaseModel):
    total_fleet: int
    active_vehicles: int
    total_routes: int
    total_schedules: int
    total_contacts: int
    daily_passengers: int
    revenue: Revenue
    efficiency: int


class FleetStatus(BaseModel):
    active: int
    maintenance: int
    out_of_service: int
    idle: int


class MaintenanceCosts(BaseModel):
    this_month: float
    last_month: float
    trend: Literal["up", "down", "stable"]


class PerformanceMetrics(BaseModel):
    on_time_performance: float
    customer_satisfaction: float
    fuel_efficiency: float
    average_speed: float
    maintenance_costs: MaintenanceCosts


class WeeklyTrends(BaseModel):
    passengers: list[float]
    revenue: list[float]
    efficiency: list[float]
    labels: list[str]


class DashboardStats(BaseModel):
    overview: Overview
    fleet_status: FleetStatus
    recent_alerts: list[dict[str, Any]]
    performance_metrics: PerformanceMetrics
    route_performance: list[dict[str, Any]]
    weekly_trends: WeeklyTrends


class CallerInfo(BaseModel):
    id: str
    role: str


class DashboardComplete(DashboardStats):
    timestamp: str
    user: CallerInfo


class AlertListResponse(BaseModel):
    alerts: list[dict[str, Any]]
    total: int


class RoutePerformanceResponse(BaseModel):
    routes: list[dict[str, Any]]
    total: int


class AlertStatusUpdate(_Input):
    status: Literal["read", "acknowledged", "resolved"]


class AlertStatusResponse(BaseModel):
    message: str
    alert_id: int
    status: str
    updated_at: str


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

class RecordCounts(BaseModel):
    buses: int
    routes: int
    schedules: int
    contacts: int


class HealthResponse(BaseModel):
    status: Literal["ok"]
    timestamp: str
    environment: str
    records: RecordCounts
