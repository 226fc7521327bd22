"""
Dépendances FastAPI partagées par les routers : vérification du code d'accès.

Le code est transmis à chaque requête dans l'en-tête `X-Code`. Il n'y a ni
session ni jeton : la vérification produit une capacité (admin ou délégué
d'une classe) valable pour la seule requête en cours.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from soucheapp.database import get_db
from soucheapp.schemas.auth import Capability
from soucheapp.services import auth_service


def get_capability(
    x_code: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Capability:
    """Délégué ou administrateur ; 401 si le code est absent ou inconnu."""
    if not x_code or not x_code.strip():
        raise HTTPException(status_code=401, detail="Code d'accès requis.")
    capability = auth_service.verify(db, x_code)
    if capability is None:
        raise HTTPException(status_code=401, detail="Code d'accès invalide.")
    return capability


def require_admin(capability: Capability = Depends(get_capability)) -> Capability:
    if not capability.is_admin:
        raise HTTPException(status_code=403, detail="Action réservée à l'administration.")
    return capability


def scope_classe(capability: Capability, classe: Optional[str]) -> Optional[str]:
    """
    Classe effective d'une lecture : un délégué est ramené à sa classe,
    un admin garde le filtre demandé (None = toutes les classes).
    """
    if capability.is_admin:
        return classe
    if classe and classe.strip().upper() != capability.classe:
        raise HTTPException(status_code=403, detail="Cette classe ne relève pas de votre délégation.")
    return capability.classe
