"""
Vérification des codes d'accès et gestion des délégués / administrateurs.

Pas de session ni de jeton : chaque requête privilégiée présente son code,
dont l'empreinte SHA-256 est comparée à celles stockées. Le résultat est une
capacité, globale (admin) ou limitée à une classe (délégué).
"""

import hashlib
import hmac
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from soucheapp.database import commit_or_raise
from soucheapp.models.credential import Admin, Delegue
from soucheapp.schemas.auth import AdminCodeUpdate, Capability, DelegueCreate, DelegueResponse

logger = logging.getLogger(__name__)


def hash_code(code: str) -> str:
    """Empreinte SHA-256 hexadécimale d'un code."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def verify_code(code: str, stored_hash: str) -> bool:
    return hmac.compare_digest(hash_code(code), stored_hash or "")


def verify(db: Session, code: str) -> Optional[Capability]:
    """
    Retourne la capacité associée au code, ou None si aucun compte ne correspond.
    Les administrateurs sont vérifiés avant les délégués.
    """
    code_hash = hash_code(code)

    admin = db.execute(
        select(Admin).where(Admin.code_hash == code_hash)
    ).scalars().first()
    if admin is not None:
        return Capability(role="admin", nom=admin.nom)

    delegue = db.execute(
        select(Delegue).where(Delegue.code_hash == code_hash)
    ).scalars().first()
    if delegue is not None:
        return Capability(role="delegue", nom=delegue.nom, classe=delegue.classe)

    logger.warning("Code d'accès refusé")
    return None


def list_delegues(db: Session) -> list[DelegueResponse]:
    """Retourne les délégués triés par classe."""
    delegues = db.execute(
        select(Delegue).order_by(Delegue.classe, Delegue.nom)
    ).scalars().all()
    return [DelegueResponse.model_validate(d) for d in delegues]


def create_delegue(db: Session, data: DelegueCreate) -> DelegueResponse:
    """
    Enregistre un délégué pour une classe.
    Lève une ValueError si le code est déjà attribué à un autre compte.
    """
    code_hash = hash_code(data.code)
    if _code_in_use(db, code_hash):
        raise ValueError("Ce code est déjà attribué à un autre compte.")

    delegue = Delegue(id=uuid.uuid4(), nom=data.nom, classe=data.classe, code_hash=code_hash)
    db.add(delegue)
    commit_or_raise(db, "Erreur lors de l'enregistrement du délégué.")
    db.refresh(delegue)

    logger.info("Délégué créé : %s (%s)", delegue.nom, delegue.classe)
    return DelegueResponse.model_validate(delegue)


def delete_delegue(db: Session, delegue_id: uuid.UUID) -> bool:
    """Supprime un délégué. Retourne False s'il est introuvable."""
    delegue = db.get(Delegue, delegue_id)
    if delegue is None:
        return False
    db.delete(delegue)
    commit_or_raise(db, "Erreur lors de la suppression du délégué.")
    logger.info("Délégué supprimé : %s (%s)", delegue.nom, delegue.classe)
    return True


def update_admin_code(db: Session, nom: str, data: AdminCodeUpdate) -> bool:
    """Change le code de l'administrateur `nom`. Retourne False s'il est introuvable."""
    admin = db.execute(
        select(Admin).where(Admin.nom == nom)
    ).scalars().first()
    if admin is None:
        return False

    code_hash = hash_code(data.code)
    if code_hash != admin.code_hash and _code_in_use(db, code_hash):
        raise ValueError("Ce code est déjà attribué à un autre compte.")

    admin.code_hash = code_hash
    commit_or_raise(db, "Erreur lors de la mise à jour du code.")
    logger.info("Code administrateur mis à jour : %s", nom)
    return True


def _code_in_use(db: Session, code_hash: str) -> bool:
    for model in (Admin, Delegue):
        found = db.execute(
            select(model.id).where(model.code_hash == code_hash)
        ).scalar()
        if found:
            return True
    return False
