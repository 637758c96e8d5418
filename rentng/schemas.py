from pydantic import BaseModel, Field
from typing import List, Optional
import datetime

from .models import BookingStatus, PropertyStatus


class BookingBase(BaseModel):
    unit_id: int
    check_in_date: datetime.datetime
    check_out_date: datetime.datetime
    notes: Optional[str] = None


class BookingCreate(BookingBase):
    # tenant_id will come from the JWT token
    pass


class BookingRead(BookingBase):
    id: int
    tenant_id: int
    property_id: int
    status: BookingStatus
    cancellation_reason: Optional[str] = None
    rejection_reason: Optional[str] = None

    # Derived at read time, see rentng.pricing
    nights: int
    total_price: int

    created_at: datetime.datetime
    updated_at: datetime.datetime

    class Config:
        from_attributes = True


class BookingReason(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class BookingPage(BaseModel):
    bookings: List[BookingRead]
    pagination: Pagination


class Availability(BaseModel):
    unit_id: int
    check_in_date: str
    check_out_date: str
    available: bool


class UnitBase(BaseModel):
    unit_number: str = Field(min_length=1, max_length=50)
    bedroom_count: int = Field(ge=1, le=10)
    bathroom_count: int = Field(ge=1, le=10)
    size: int = Field(ge=1)
    price_per_month: int = Field(gt=0)
    is_available: bool = True


class UnitCreate(UnitBase):
    pass


class UnitRead(UnitBase):
    id: int
    property_id: int
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class PropertyBase(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    description: str = Field(min_length=10)
    address: str = Field(min_length=5, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    state: str = Field(min_length=2, max_length=100)


class PropertyCreate(PropertyBase):
    # landlord_id will come from the JWT token
    pass


class PropertyRead(PropertyBase):
    id: int
    landlord_id: int
    status: PropertyStatus
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class PropertyDetail(PropertyRead):
    units: List[UnitRead] = []
