"""
Modèle SQLAlchemy pour la liste des étudiants inscrits (collection `etudiants`).
Alimente la liste déroulante de connexion, classe par classe.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from soucheapp.database import Base


class Etudiant(Base):
    __tablename__ = "etudiants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    nom_complet = Column(String(200), nullable=False)
    classe = Column(String(50), nullable=False, index=True)
    actif = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())  # Date d'inscription
