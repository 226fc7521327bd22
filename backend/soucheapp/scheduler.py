"""
Planificateur APScheduler pour le rafraîchissement du snapshot des demandes.

Le job relit périodiquement toutes les demandes et remplace le snapshot,
afin de prendre en compte les écritures faites par d'autres processus.
Les écritures de ce processus rafraîchissent déjà le snapshot immédiatement.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError

from soucheapp.config import settings
from soucheapp.database import SessionLocal
from soucheapp.services.feed import feed

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _refresh_snapshot() -> None:
    """Tâche planifiée : relit les demandes et publie le nouveau snapshot."""
    db = SessionLocal()
    try:
        feed.refresh(db)
    except SQLAlchemyError as exc:
        logger.error("Erreur lors du rafraîchissement du snapshot : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler désactivé par configuration.")
        return
    scheduler.add_job(
        _refresh_snapshot,
        trigger="interval",
        seconds=settings.SNAPSHOT_REFRESH_SECONDS,
        id="demandes_snapshot_refresh",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré — rafraîchissement du snapshot toutes les %d s.",
        settings.SNAPSHOT_REFRESH_SECONDS,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
