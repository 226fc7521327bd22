"""
Router pour la configuration : classes valides et année scolaire.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from soucheapp.database import get_db
from soucheapp.dependencies import require_admin
from soucheapp.schemas.app_config import AppConfigResponse, AppConfigUpdate
from soucheapp.schemas.auth import Capability
from soucheapp.services import config_service

router = APIRouter(prefix="/api/v1/config", tags=["Configuration"])


@router.get("", response_model=AppConfigResponse, summary="Lire la configuration")
def get_config(db: Session = Depends(get_db)):
    """Classes proposées à la connexion et année scolaire en cours."""
    return config_service.get_config(db)


@router.put("", response_model=AppConfigResponse, summary="Modifier la configuration")
def update_config(data: AppConfigUpdate, db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    return config_service.update_config(db, data)
