"""HR models.

Supports:
- Employee master with generated employee codes
- Daily attendance (one record per employee per date)
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Date, DateTime, ForeignKey, Numeric, Text
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.database import Base
from erp.db_types import UUIDType
from erp.core.enum_utils import enum_comment


# ==================== Enums ====================

class EmployeeStatus(str, Enum):
    """Employee status in organization."""
    ACTIVE = "active"
    PROBATION = "probation"
    INACTIVE = "inactive"


class AttendanceStatus(str, Enum):
    """Daily attendance status."""
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"


# ==================== Employee ====================

class Employee(Base):
    """
    Employee of an organization.
    """
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    # Identification
    employee_code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="EMP-0001"
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role_title: Mapped[str] = mapped_column(String(100), nullable=False)

    # Contact
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Employment
    salary: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    joining_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EmployeeStatus.ACTIVE.value,
        comment=enum_comment(EmployeeStatus)
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    attendance_records: Mapped[List["Attendance"]] = relationship(
        "Attendance",
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint('organization_id', 'employee_code', name='uq_employee_org_code'),
    )

    def __repr__(self) -> str:
        return f"<Employee(code='{self.employee_code}', name='{self.full_name}')>"


# ==================== Attendance ====================

class Attendance(Base):
    """
    Daily attendance record for employees.
    """
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    # Employee & Date
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment=enum_comment(AttendanceStatus)
    )

    # Time tracking (wall-clock HH:MM as entered)
    check_in: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    check_out: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    employee: Mapped["Employee"] = relationship(
        "Employee",
        back_populates="attendance_records"
    )

    __table_args__ = (
        UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
        Index('idx_attendance_org_date', 'organization_id', 'attendance_date'),
    )

    def __repr__(self) -> str:
        return f"<Attendance(employee_id='{self.employee_id}', date='{self.attendance_date}', status='{self.status}')>"
