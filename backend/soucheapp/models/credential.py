"""
Modèles SQLAlchemy pour les codes d'accès (collections `delegues` et `admins`).
Seule l'empreinte SHA-256 du code est stockée.
"""

import uuid
from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from soucheapp.database import Base


class Delegue(Base):
    """Délégué de classe : droits limités à sa propre classe."""
    __tablename__ = "delegues"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    nom = Column(String(150), nullable=False)
    classe = Column(String(50), nullable=False)
    code_hash = Column(String(64), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Admin(Base):
    __tablename__ = "admins"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    nom = Column(String(150), nullable=False)
    code_hash = Column(String(64), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
