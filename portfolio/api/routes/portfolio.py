"""Snapshot reload endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portfolio.db.dependencies import get_data_loader, get_db_session
from portfolio.services.data_loader import PortfolioDataLoader

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.post("/reload")
def reload_portfolio(
    db: Session = Depends(get_db_session),
    loader: PortfolioDataLoader = Depends(get_data_loader),
) -> dict[str, object]:
    snapshot = loader.reload(db)
    return {
        "version": snapshot.version,
        "loaded_at": snapshot.loaded_at.isoformat() if snapshot.loaded_at else None,
        "projects": len(snapshot.projects),
        "milestones": len(snapshot.milestones),
    }
