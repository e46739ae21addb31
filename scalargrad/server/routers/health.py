"""Health and stats endpoints."""

import logging

from fastapi import APIRouter, Depends

from scalargrad.server.routers.networks import require_auth

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Health check: DB accessible."""
    from scalargrad.core.db import _db

    try:
        with _db() as db:
            db.execute("SELECT 1").fetchone()
        return {"status": "healthy"}
    except Exception:
        logger.exception("Health check failed")
        return {"status": "unhealthy"}


@router.get("/stats", dependencies=[Depends(require_auth)])
def stats():
    """Counts of stored networks and recorded training runs."""
    from scalargrad.core.db import _db

    with _db() as db:
        total_networks = db.execute("SELECT COUNT(*) FROM networks").fetchone()[0]
        trained_networks = db.execute(
            "SELECT COUNT(*) FROM networks WHERE trained_epochs > 0"
        ).fetchone()[0]
        run_row = db.execute(
            "SELECT COUNT(*) AS runs, COALESCE(SUM(epochs), 0) AS epochs FROM training_runs"
        ).fetchone()

    return {
        "networks": {
            "total": total_networks,
            "trained": trained_networks,
        },
        "training_runs": {
            "total": run_row["runs"],
            "epochs": run_row["epochs"],
        },
    }
