"""
Initialisation de la base : création des tables, document de configuration
par défaut et premier compte administrateur.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

import soucheapp.models  # noqa: F401
from soucheapp.database import Base, commit_or_raise
from soucheapp.models.app_config import SETTINGS_KEY, AppConfig
from soucheapp.models.credential import Admin
from soucheapp.services import auth_service, config_service

logger = logging.getLogger(__name__)


def create_tables(engine) -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Tables créées : %s", ", ".join(sorted(Base.metadata.tables)))


def seed(db: Session, admin_nom: str, admin_code: Optional[str]) -> None:
    """
    Crée le document de configuration s'il manque, puis l'administrateur
    `admin_nom` si un code est fourni et qu'aucun admin de ce nom n'existe.
    Idempotent.
    """
    if db.get(AppConfig, SETTINGS_KEY) is None:
        db.add(AppConfig(
            key=SETTINGS_KEY,
            classes=list(config_service.DEFAULT_CLASSES),
            annee_scolaire=config_service.default_school_year(),
        ))
        logger.info("Configuration par défaut créée.")

    if admin_code:
        existing = db.execute(select(Admin).where(Admin.nom == admin_nom)).scalars().first()
        if existing is None:
            db.add(Admin(id=uuid.uuid4(), nom=admin_nom, code_hash=auth_service.hash_code(admin_code)))
            logger.info("Administrateur créé : %s", admin_nom)
    else:
        logger.warning("ADMIN_CODE non défini : aucun administrateur créé.")

    commit_or_raise(db, "Erreur lors de l'initialisation de la base.")
