"""
Modèle SQLAlchemy pour le document de configuration unique (`config/settings`).
"""

from sqlalchemy import JSON, Column, DateTime, String, func

from soucheapp.database import Base

SETTINGS_KEY = "settings"


class AppConfig(Base):
    __tablename__ = "config"

    key = Column(String(50), primary_key=True, default=SETTINGS_KEY)
    classes = Column(JSON, nullable=False, default=list)  # Ex: ["ISE1", "ISE2", ...]
    annee_scolaire = Column(String(20), nullable=True)    # Ex: "2025-2026"
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
