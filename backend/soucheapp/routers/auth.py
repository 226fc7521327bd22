"""
Router pour les codes d'accès : vérification, délégués, code administrateur.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from soucheapp.database import get_db
from soucheapp.dependencies import require_admin
from soucheapp.schemas.auth import AdminCodeUpdate, Capability, CodeVerify, DelegueCreate, DelegueResponse
from soucheapp.services import auth_service

router = APIRouter(prefix="/api/v1", tags=["Accès"])


@router.post("/auth/verify", response_model=Capability, summary="Vérifier un code d'accès")
def verify_code(data: CodeVerify, db: Session = Depends(get_db)):
    """
    Vérifie un code délégué ou administrateur.
    Retourne le rôle obtenu et, pour un délégué, sa classe.
    """
    capability = auth_service.verify(db, data.code)
    if capability is None:
        raise HTTPException(status_code=401, detail="Code incorrect.")
    return capability


@router.get("/delegues", response_model=List[DelegueResponse], summary="Lister les délégués")
def list_delegues(db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    return auth_service.list_delegues(db)


@router.post("/delegues", response_model=DelegueResponse, status_code=201, summary="Créer un délégué")
def create_delegue(data: DelegueCreate, db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    """Enregistre un délégué de classe avec son code (seule l'empreinte est stockée)."""
    try:
        return auth_service.create_delegue(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/delegues/{delegue_id}", status_code=204, summary="Supprimer un délégué")
def delete_delegue(delegue_id: uuid.UUID, db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    if not auth_service.delete_delegue(db, delegue_id):
        raise HTTPException(status_code=404, detail="Délégué introuvable.")


@router.put("/admins/code", status_code=204, summary="Changer le code administrateur")
def update_admin_code(
    data: AdminCodeUpdate,
    db: Session = Depends(get_db),
    capability: Capability = Depends(require_admin),
):
    """Change le code de l'administrateur connecté. Le code doit être confirmé."""
    try:
        success = auth_service.update_admin_code(db, capability.nom, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not success:
        raise HTTPException(status_code=404, detail="Administrateur introuvable.")
