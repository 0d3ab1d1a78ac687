import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Integer,
    Float,
    JSON,
    UniqueConstraint,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


def owner_fk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class Admin(TimestampMixin, Base):
    """Tenant owner; every business row carries its id."""
    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)


class Client(TimestampMixin, Base):
    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    company: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    gst_number: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_client_admin_created", "admin_id", "created_at"),
    )


class Crew(TimestampMixin, Base):
    """Field crew member. The password is kept hashed for reference only; crews never log in here."""
    __tablename__ = "crews"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    __table_args__ = (
        UniqueConstraint("admin_id", "username", name="uq_crew_admin_username"),
    )


class Vehicle(TimestampMixin, Base):
    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # car|truck|van|bike|other
    registration_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    model: Mapped[Optional[str]] = mapped_column(String(100))
    year: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)  # active|maintenance|inactive
    insurance_expiry: Mapped[Optional[date]] = mapped_column(Date, index=True)
    pollution_expiry: Mapped[Optional[date]] = mapped_column(Date, index=True)
    service_due_date: Mapped[Optional[date]] = mapped_column(Date, index=True)

    __table_args__ = (
        Index("idx_vehicle_admin_status", "admin_id", "status"),
    )


class Instrument(TimestampMixin, Base):
    """Survey instrument; status moves only through site membership changes."""
    __tablename__ = "instruments"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(100))
    serial_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="available", index=True)  # available|in-use|repair|lost
    last_serviced_on: Mapped[Optional[date]] = mapped_column(Date, index=True)

    __table_args__ = (
        Index("idx_instrument_admin_status", "admin_id", "status"),
    )


class Site(TimestampMixin, Base):
    __tablename__ = "sites"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("clients.id", ondelete="SET NULL"), index=True)
    bill_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("bills.id", ondelete="SET NULL"), index=True)
    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("vehicles.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    location_url: Mapped[Optional[str]] = mapped_column(Text)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(50), default="PENDING", index=True)
    crew_ids: Mapped[list] = mapped_column(JSON, default=list)  # Array of crew ids (str)
    instrument_ids: Mapped[list] = mapped_column(JSON, default=list)  # Array of instrument ids (str)

    __table_args__ = (
        Index("idx_site_admin_status", "admin_id", "status"),
        Index("idx_site_admin_start", "admin_id", "start_date"),
    )


class Bill(TimestampMixin, Base):
    __tablename__ = "bills"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True)
    site_ids: Mapped[list] = mapped_column(JSON, default=list)  # Derived from items, first-seen order
    bill_number: Mapped[str] = mapped_column(String(50), nullable=False)
    bill_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    # Line items: [{id, site_id, site_name, description, rate, amount}]
    items: Mapped[list] = mapped_column(JSON, default=list)
    subtotal: Mapped[float] = mapped_column(Float, default=0.0)
    is_gst_bill: Mapped[bool] = mapped_column(Boolean, default=False)
    state_gst: Mapped[float] = mapped_column(Float, default=0.0)
    central_gst: Mapped[float] = mapped_column(Float, default=0.0)
    total_tax_amount: Mapped[float] = mapped_column(Float, default=0.0)
    total_amount: Mapped[float] = mapped_column(Float, default=0.0)
    payment_status: Mapped[str] = mapped_column(String(20), default="UNPAID", index=True)  # UNPAID|PARTIAL|PAID
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("admin_id", "bill_number", name="uq_bill_admin_number"),
        Index("idx_bill_admin_date", "admin_id", "bill_date"),
    )


class Expense(TimestampMixin, Base):
    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # FUEL|FOOD|SALARY|OTHERS
    site_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("sites.id", ondelete="SET NULL"), index=True)
    crew_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("crews.id", ondelete="SET NULL"), index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    __table_args__ = (
        Index("idx_expense_admin_date", "admin_id", "expense_date"),
    )


class Enquiry(TimestampMixin, Base):
    __tablename__ = "enquiries"

    id: Mapped[uuid.UUID] = uuid_pk()
    admin_id: Mapped[uuid.UUID] = owner_fk()
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="new", index=True)  # new|in-progress|completed|closed
    follow_up_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    response_notes: Mapped[Optional[str]] = mapped_column(Text)
