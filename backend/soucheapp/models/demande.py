"""
Modèle SQLAlchemy pour les demandes de souches (collection `demandes`).

Une demande porte sur un mois donné (clé `YYYY-MM`). Un étudiant peut en
créer plusieurs dans le mois tant que le cumul reste sous le plafond mensuel.
Les liens vers l'étudiant et la classe sont faits par valeur (nom, classe),
pas par clé étrangère.
"""

import uuid
from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from soucheapp.database import Base


class Demande(Base):
    __tablename__ = "demandes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    nom = Column(String(150), nullable=False)            # Nom affiché, en majuscules
    classe = Column(String(50), nullable=False)
    nb_souches = Column(Integer, nullable=False)         # 1 à 3
    mois = Column(String(7), nullable=False, index=True)  # Ex: "2025-02"
    montant_paye = Column(Integer, nullable=False, default=0)
    statut = Column(String(20), nullable=False, default="active")  # active, archived
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
