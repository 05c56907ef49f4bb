"""Read-only query helpers over the portfolio tables."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio.models.entities import (
    Category,
    Country,
    Customer,
    Milestone,
    MilestoneUpdate,
    Product,
    Project,
    ProjectStatusLookup,
    Team,
    User,
)


class PortfolioRepository:
    """Queries used by the portfolio data loader."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Projects and milestones ----------
    def list_projects(self) -> list[Project]:
        return self.db.scalars(select(Project).order_by(Project.name.asc(), Project.id.asc())).all()

    def list_milestones(self) -> list[Milestone]:
        return self.db.scalars(select(Milestone).order_by(Milestone.id.asc())).all()

    def list_milestone_updates(self) -> list[MilestoneUpdate]:
        return self.db.scalars(
            select(MilestoneUpdate).order_by(MilestoneUpdate.created_at.desc(), MilestoneUpdate.id.asc())
        ).all()

    # ---------- Lookups ----------
    def list_users(self) -> list[User]:
        return self.db.scalars(select(User).order_by(User.name.asc())).all()

    def list_countries(self) -> list[Country]:
        return self.db.scalars(select(Country).order_by(Country.name.asc())).all()

    def list_categories(self) -> list[Category]:
        return self.db.scalars(select(Category).order_by(Category.name.asc())).all()

    def list_teams(self) -> list[Team]:
        return self.db.scalars(select(Team).order_by(Team.name.asc())).all()

    def list_products(self) -> list[Product]:
        return self.db.scalars(select(Product).order_by(Product.name.asc())).all()

    def list_project_statuses(self) -> list[ProjectStatusLookup]:
        return self.db.scalars(select(ProjectStatusLookup).order_by(ProjectStatusLookup.name.asc())).all()

    def list_customers(self) -> list[Customer]:
        return self.db.scalars(select(Customer).order_by(Customer.name.asc())).all()
