"""
Service pour la liste des étudiants inscrits, utilisée par l'écran de connexion.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from soucheapp.database import commit_or_raise
from soucheapp.models.etudiant import Etudiant
from soucheapp.schemas.etudiant import EtudiantCreate, EtudiantResponse
from soucheapp.services import config_service

logger = logging.getLogger(__name__)


def list_etudiants(db: Session, classe: Optional[str] = None) -> list[EtudiantResponse]:
    """Étudiants actifs, d'une classe ou de toutes, triés par nom complet."""
    query = select(Etudiant).where(Etudiant.actif.is_(True))
    if classe:
        query = query.where(Etudiant.classe == classe.strip().upper())
    etudiants = db.execute(query.order_by(Etudiant.nom_complet)).scalars().all()
    return [EtudiantResponse.model_validate(e) for e in etudiants]


def create_etudiant(db: Session, data: EtudiantCreate) -> EtudiantResponse:
    """
    Inscrit un étudiant.
    Lève une ValueError si la classe est inconnue ou si l'étudiant existe déjà dans la classe.
    """
    if data.classe not in config_service.get_valid_classes(db):
        raise ValueError(f"Classe inconnue : {data.classe}")

    existing = db.execute(
        select(Etudiant.id).where(
            func.lower(Etudiant.nom_complet) == data.nom_complet.lower(),
            Etudiant.classe == data.classe,
        )
    ).scalar()
    if existing:
        raise ValueError(f"L'étudiant '{data.nom_complet}' est déjà inscrit en {data.classe}.")

    etudiant = Etudiant(id=uuid.uuid4(), nom_complet=data.nom_complet, classe=data.classe, actif=True)
    db.add(etudiant)
    commit_or_raise(db, "Erreur lors de l'inscription de l'étudiant.")
    db.refresh(etudiant)

    logger.info("Étudiant inscrit : %s (%s)", etudiant.nom_complet, etudiant.classe)
    return EtudiantResponse.model_validate(etudiant)


def set_actif(db: Session, etudiant_id: uuid.UUID, actif: bool) -> Optional[EtudiantResponse]:
    """Active ou désactive un étudiant (un inactif disparaît de l'écran de connexion)."""
    etudiant = db.get(Etudiant, etudiant_id)
    if etudiant is None:
        return None
    etudiant.actif = actif
    commit_or_raise(db, "Erreur lors de la mise à jour de l'étudiant.")
    db.refresh(etudiant)
    return EtudiantResponse.model_validate(etudiant)


def delete_etudiant(db: Session, etudiant_id: uuid.UUID) -> bool:
    """Supprime définitivement un étudiant. Ses demandes passées sont conservées."""
    etudiant = db.get(Etudiant, etudiant_id)
    if etudiant is None:
        return False
    db.delete(etudiant)
    commit_or_raise(db, "Erreur lors de la suppression de l'étudiant.")
    logger.info("Étudiant supprimé : %s (%s)", etudiant.nom_complet, etudiant.classe)
    return True
