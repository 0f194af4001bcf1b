"""Cleaner domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import CLEANER_STATUSES, SERVICE_AREAS, WEEKDAYS
from ...shared.validators import validate_choice, validate_choices, validate_email, validate_us_phone


class CleanerBase(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v) if v else v

    @field_validator("phone", check_fields=False)
    @classmethod
    def validate_phone(cls, v):
        return validate_us_phone(v) if v else v

    @field_validator("status", check_fields=False)
    @classmethod
    def validate_status(cls, v):
        return validate_choice(v, CLEANER_STATUSES, "status")

    @field_validator("available_days", check_fields=False)
    @classmethod
    def validate_days(cls, v):
        return validate_choices(v, WEEKDAYS, "available_days")

    @field_validator("service_areas", check_fields=False)
    @classmethod
    def validate_areas(cls, v):
        return validate_choices(v, SERVICE_AREAS, "service_areas")


class CleanerCreate(CleanerBase):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = "active"
    available_days: list[str] = ["monday", "tuesday", "wednesday", "thursday", "friday"]
    service_areas: list[str] = list(SERVICE_AREAS)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class CleanerUpdate(CleanerBase):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    available_days: Optional[list[str]] = None
    service_areas: Optional[list[str]] = None
    notes: Optional[str] = None


class CleanerResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    available_days: list[str] = []
    service_areas: list[str] = []
    notes: Optional[str] = None
    total_assignments: int = 0
    last_assigned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CleanerSummary(BaseModel):
    total: int
    active: int
    inactive: int
    on_leave: int
