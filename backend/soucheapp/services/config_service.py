"""
Service pour le document de configuration unique (`config/settings`).
Fournit la liste des classes valides et le libellé de l'année scolaire.
Le prix et le plafond mensuel restent des constantes de `quota`.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from soucheapp.database import commit_or_raise
from soucheapp.models.app_config import SETTINGS_KEY, AppConfig
from soucheapp.schemas.app_config import AppConfigResponse, AppConfigUpdate

logger = logging.getLogger(__name__)

DEFAULT_CLASSES = ["ISE1", "ISE2", "ISE3", "AS1", "AS2", "AS3"]


def default_school_year(today: Optional[date] = None) -> str:
    """L'année scolaire commence en septembre."""
    today = today or date.today()
    start = today.year if today.month >= 9 else today.year - 1
    return f"{start}-{start + 1}"


def get_config(db: Session) -> AppConfigResponse:
    """Retourne la configuration, ou les valeurs par défaut si le document n'existe pas."""
    config = db.get(AppConfig, SETTINGS_KEY)
    if config is None:
        return AppConfigResponse(classes=list(DEFAULT_CLASSES), annee_scolaire=default_school_year())
    return AppConfigResponse(
        classes=list(config.classes or DEFAULT_CLASSES),
        annee_scolaire=config.annee_scolaire or default_school_year(),
    )


def get_valid_classes(db: Session) -> list[str]:
    return get_config(db).classes


def update_config(db: Session, data: AppConfigUpdate) -> AppConfigResponse:
    """Met à jour les champs fournis ; crée le document s'il n'existe pas encore."""
    config = db.get(AppConfig, SETTINGS_KEY)
    if config is None:
        config = AppConfig(
            key=SETTINGS_KEY,
            classes=list(DEFAULT_CLASSES),
            annee_scolaire=default_school_year(),
        )
        db.add(config)

    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(config, field, value)

    commit_or_raise(db, "Erreur lors de l'enregistrement de la configuration.")

    logger.info("Configuration mise à jour : %s", ", ".join(update_data) or "aucun champ")
    return AppConfigResponse(classes=list(config.classes), annee_scolaire=config.annee_scolaire)
