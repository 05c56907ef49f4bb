"""ORM entities for the portfolio store schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from portfolio.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class MilestoneStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    SENT = "Sent"
    PAID = "Paid"


class LookupMixin:
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Country(LookupMixin, Base):
    __tablename__ = "countries"


class Category(LookupMixin, Base):
    __tablename__ = "categories"


class Team(LookupMixin, Base):
    __tablename__ = "teams"


class Product(LookupMixin, Base):
    __tablename__ = "products"


class ProjectStatusLookup(LookupMixin, Base):
    __tablename__ = "project_statuses"


class Customer(LookupMixin, Base):
    __tablename__ = "customers"


class User(LookupMixin, Base):
    __tablename__ = "users"

    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_project_manager_id", "project_manager_id"),
        Index("ix_projects_customer_id", "customer_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    project_code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    country_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("countries.id"), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("categories.id"), nullable=True)
    team_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("teams.id"), nullable=True)
    product_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("products.id"), nullable=True)
    status_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("project_statuses.id"), nullable=True)
    project_manager_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("users.id"), nullable=True)
    customer_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("customers.id"), nullable=True)
    launch_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expected_closure_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue_impact: Mapped[int | None] = mapped_column(Integer, nullable=True)
    strategic_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    delivery_risk: Mapped[int | None] = mapped_column(Integer, nullable=True)
    customer_pressure: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resource_load: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Milestone(Base):
    __tablename__ = "milestones"
    __table_args__ = (Index("ix_milestones_project_id", "project_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Nullable: the editor tolerates an unassigned project while a row is being edited.
    project_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("projects.id"), nullable=True)
    team_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("teams.id"), nullable=True)
    due_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[MilestoneStatus] = mapped_column(
        SQLEnum(
            MilestoneStatus,
            name="milestone_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=MilestoneStatus.PENDING,
    )
    has_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payment_status: Mapped[PaymentStatus | None] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="payment_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=True,
    )


class MilestoneUpdate(Base):
    __tablename__ = "milestone_updates"
    __table_args__ = (Index("ix_milestone_updates_milestone_id", "milestone_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    milestone_id: Mapped[str] = mapped_column(String(64), ForeignKey("milestones.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    update_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
