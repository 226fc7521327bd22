"""
Router pour les demandes de souches.

Étudiant  : commande, suivi du mois en cours, annulation.
Délégué   : liste, tableau de bord, encaissement, archivage, export (sa classe).
Admin     : idem toutes classes, suppression définitive, réinitialisation du mois.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from soucheapp.database import get_db
from soucheapp.dependencies import get_capability, require_admin, scope_classe
from soucheapp.schemas.auth import Capability
from soucheapp.schemas.demande import (
    BatchResult,
    DemandeCreate,
    DemandeIds,
    DemandeResponse,
    DemandeStats,
    PaiementUpdate,
    ResetRequest,
    StudentSummary,
)
from soucheapp.services import demande_service, export_service, quota
from soucheapp.services.demande_service import QuotaExceededError

router = APIRouter(prefix="/api/v1/demandes", tags=["Demandes"])


# --- Étudiant ---

@router.post("", response_model=DemandeResponse, status_code=201, summary="Commander des souches")
def submit_demande(data: DemandeCreate, db: Session = Depends(get_db)):
    """
    Enregistre une commande de 1 à 3 souches pour le mois en cours.

    Plusieurs commandes dans le mois sont possibles tant que le cumul
    ne dépasse pas 3 souches (409 sinon). Classe inconnue : 400.
    """
    try:
        return demande_service.submit_demande(db, data)
    except QuotaExceededError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/etudiant", response_model=StudentSummary, summary="Suivi du mois pour un étudiant")
def get_student_summary(
    nom: str = Query(..., min_length=1),
    classe: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Souches commandées et restantes ce mois-ci, avec le détail des demandes."""
    return demande_service.get_student_summary(db, nom, classe)


@router.delete("/{demande_id}", status_code=204, summary="Annuler sa demande")
def cancel_demande(
    demande_id: uuid.UUID,
    nom: str = Query(..., min_length=1),
    classe: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Annule (supprime) une demande de l'étudiant. Libère immédiatement le quota."""
    try:
        success = demande_service.cancel_demande(db, demande_id, nom, classe)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not success:
        raise HTTPException(status_code=404, detail="Demande introuvable.")


# --- Délégué / admin : lectures ---

@router.get("", response_model=List[DemandeResponse], summary="Demandes actives du mois")
def list_demandes(
    mois: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    classe: Optional[str] = None,
    recherche: Optional[str] = None,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """Demandes non archivées du mois (en cours par défaut), dans l'ordre de création."""
    return demande_service.list_demandes(db, mois, scope_classe(capability, classe), recherche)


@router.get("/historique", response_model=List[DemandeResponse], summary="Historique complet")
def list_historique(
    classe: Optional[str] = None,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """Toutes les demandes, archivées comprises."""
    return demande_service.list_historique(db, scope_classe(capability, classe))


@router.get("/stats", response_model=DemandeStats, summary="Tableau de bord du mois")
def get_stats(
    mois: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    classe: Optional[str] = None,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """Nombre de demandes, souches, montants dus et encaissés par classe."""
    return demande_service.get_stats(db, mois, scope_classe(capability, classe))


@router.get("/export", summary="Exporter les demandes en CSV")
def export_demandes(
    mois: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    classe: Optional[str] = None,
    historique: bool = False,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """
    Exporte les demandes actives du mois, ou tout l'historique si `historique=true`.
    CSV UTF-8 BOM, séparateur `;`, compatible Excel.
    """
    classe = scope_classe(capability, classe)
    mois = mois or quota.month_key()
    if historique:
        demandes = demande_service.list_historique(db, classe)
    else:
        demandes = demande_service.list_demandes(db, mois, classe)

    csv_content = export_service.export_demandes_csv(demandes)
    filename = export_service.export_filename(mois, historique)
    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# --- Délégué / admin : écritures ---

@router.put("/{demande_id}/paiement", response_model=DemandeResponse, summary="Enregistrer un paiement")
def record_payment(
    demande_id: uuid.UUID,
    data: PaiementUpdate,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """Enregistre le montant payé ; la réponse indique la monnaie à rendre ou le reste dû."""
    try:
        result = demande_service.record_payment(db, demande_id, data, capability)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Demande introuvable.")
    return result


@router.post("/archive", response_model=BatchResult, summary="Archiver plusieurs demandes")
def archive_demandes(
    data: DemandeIds,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """
    Archive un lot de demandes. Chaque demande est traitée séparément :
    la réponse liste les réussites et les échecs, sans annulation globale.
    """
    return demande_service.archive_demandes(db, data.ids, capability)


@router.post("/reset", response_model=BatchResult, summary="Réinitialiser le mois en cours")
def reset_month(
    data: ResetRequest,
    db: Session = Depends(get_db),
    _: Capability = Depends(require_admin),
):
    """
    Supprime toutes les demandes du mois en cours.
    La confirmation doit reprendre la clé du mois (ex: 2025-02).
    """
    try:
        return demande_service.reset_month(db, data.confirmation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{demande_id}/archive", response_model=DemandeResponse, summary="Archiver une demande")
def archive_demande(
    demande_id: uuid.UUID,
    db: Session = Depends(get_db),
    capability: Capability = Depends(get_capability),
):
    """La demande sort des totaux actifs mais reste dans l'historique et les exports."""
    try:
        result = demande_service.archive_demande(db, demande_id, capability)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Demande introuvable.")
    return result


@router.delete("/{demande_id}/definitif", status_code=204, summary="Supprimer définitivement")
def delete_demande(
    demande_id: uuid.UUID,
    db: Session = Depends(get_db),
    capability: Capability = Depends(require_admin),
):
    """Suppression sans passage par l'historique."""
    if not demande_service.delete_demande(db, demande_id, capability):
        raise HTTPException(status_code=404, detail="Demande introuvable.")
