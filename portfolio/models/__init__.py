"""ORM model package."""

from portfolio.models.entities import (
    Category,
    Country,
    Customer,
    Milestone,
    MilestoneStatus,
    MilestoneUpdate,
    PaymentStatus,
    Product,
    Project,
    ProjectStatusLookup,
    Team,
    User,
)

__all__ = [
    "Category",
    "Country",
    "Customer",
    "Milestone",
    "MilestoneStatus",
    "MilestoneUpdate",
    "PaymentStatus",
    "Product",
    "Project",
    "ProjectStatusLookup",
    "Team",
    "User",
]
