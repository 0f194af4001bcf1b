import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

BOOKING_STATUSES = ("lead", "payment_initiated", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "deposit_paid", "fully_paid", "charge_failed")
FREQUENCIES = ("weekly", "biweekly", "monthly", "onetime")
CLEANER_STATUSES = ("active", "inactive", "on_leave")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
SERVICE_AREAS = ("st-charles", "geneva", "batavia", "wayne", "campton-hills", "elburn")
EXPENSE_CATEGORIES = (
    "supplies",
    "equipment",
    "vehicle",
    "labor",
    "insurance",
    "marketing",
    "software",
    "other",
)
INVENTORY_CATEGORIES = ("supplies", "equipment", "consumables", "other")


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


def default_available_days():
    return ["monday", "tuesday", "wednesday", "thursday", "friday"]


def default_service_areas():
    return list(SERVICE_AREAS)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), default="owner", nullable=False)  # owner, manager
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Cleaner(Base):
    __tablename__ = "cleaners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    status = Column(String(50), default="active", nullable=False)  # active, inactive, on_leave
    available_days = Column(JSON, default=default_available_days)
    service_areas = Column(JSON, default=default_service_areas)
    notes = Column(Text, nullable=True)

    # Round-robin assignment tracking
    total_assignments = Column(Integer, default=0, nullable=False)
    last_assigned_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="cleaner")


class Booking(Base):
    """A funnel lead or a booked cleaning; `status` moves it through the pipeline."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    # Public UUID used by the booking funnel (prevents enumeration)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)

    # Contact
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    service_area = Column(String(100), nullable=True)

    # Home
    sqft = Column(Integer, nullable=False)
    bedrooms = Column(Integer, nullable=False)
    bathrooms = Column(Float, nullable=False)
    frequency = Column(String(20), nullable=False)  # weekly, biweekly, monthly, onetime

    # Prices (whole dollars)
    first_clean_price = Column(Float, nullable=True)
    recurring_price = Column(Float, nullable=True)
    deposit_amount = Column(Float, nullable=True)
    remaining_amount = Column(Float, nullable=True)

    status = Column(String(50), default="lead", nullable=False, index=True)
    payment_status = Column(String(50), default="pending", nullable=False)
    source = Column(String(100), default="website_calculator")

    # Scheduling (Cal.com)
    scheduled_date = Column(Date, nullable=True, index=True)
    scheduled_time = Column(String(50), nullable=True)
    cal_booking_id = Column(String(255), nullable=True)
    cal_booking_url = Column(String(500), nullable=True)

    # Assignment
    cleaner_id = Column(Integer, ForeignKey("cleaners.id", ondelete="SET NULL"), nullable=True)
    cleaner_notified_at = Column(DateTime, nullable=True)
    cleaning_instructions = Column(Text, nullable=True)

    # Stripe
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_checkout_session_id = Column(String(255), nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    deposit_paid_at = Column(DateTime, nullable=True)
    final_charge_date = Column(DateTime, nullable=True)
    charge_error = Column(String(1000), nullable=True)

    cancellation_fee = Column(Float, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    reminder_sent_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    cleaner = relationship("Cleaner", back_populates="bookings")

    @property
    def cleaner_name(self):
        return self.cleaner.name if self.cleaner else None


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(500), nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String(50), default="other", nullable=False)
    date = Column(Date, nullable=False, index=True)
    vendor = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class InventoryItem(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(50), default="supplies", nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    unit = Column(String(50), default="units")
    reorder_threshold = Column(Integer, default=5, nullable=False)
    reorder_quantity = Column(Integer, default=10, nullable=False)
    purchase_url = Column(String(500), nullable=True)
    cost_per_unit = Column(Float, nullable=True)
    status = Column(String(20), default="in_stock", nullable=False)  # in_stock, low_stock, out_of_stock
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class PricingSetting(Base):
    """Overrides for the pricing engine defaults, one row per setting key."""

    __tablename__ = "pricing_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
