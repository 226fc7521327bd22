"""
Router pour la liste des étudiants.
Lecture publique (écran de connexion) ; écritures et import CSV réservés à l'administration.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from soucheapp.database import get_db
from soucheapp.dependencies import require_admin
from soucheapp.schemas.auth import Capability
from soucheapp.schemas.etudiant import EtudiantCreate, EtudiantResponse, EtudiantUpdate, RosterImportReport
from soucheapp.services import etudiant_service
from soucheapp.services.roster_import import parse_and_import_csv

router = APIRouter(prefix="/api/v1/etudiants", tags=["Étudiants"])

ALLOWED_CONTENT_TYPES = {"text/csv", "text/plain", "application/vnd.ms-excel"}
MAX_FILE_SIZE_MB = 5


@router.get("", response_model=List[EtudiantResponse], summary="Lister les étudiants actifs")
def list_etudiants(classe: Optional[str] = None, db: Session = Depends(get_db)):
    """Étudiants actifs triés par nom, filtrés par classe si demandé."""
    return etudiant_service.list_etudiants(db, classe)


@router.post("", response_model=EtudiantResponse, status_code=201, summary="Inscrire un étudiant")
def create_etudiant(data: EtudiantCreate, db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    try:
        return etudiant_service.create_etudiant(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/{etudiant_id}", response_model=EtudiantResponse, summary="Activer / désactiver un étudiant")
def update_etudiant(
    etudiant_id: uuid.UUID,
    data: EtudiantUpdate,
    db: Session = Depends(get_db),
    _: Capability = Depends(require_admin),
):
    result = etudiant_service.set_actif(db, etudiant_id, data.actif)
    if result is None:
        raise HTTPException(status_code=404, detail="Étudiant introuvable.")
    return result


@router.delete("/{etudiant_id}", status_code=204, summary="Supprimer un étudiant")
def delete_etudiant(etudiant_id: uuid.UUID, db: Session = Depends(get_db), _: Capability = Depends(require_admin)):
    if not etudiant_service.delete_etudiant(db, etudiant_id):
        raise HTTPException(status_code=404, detail="Étudiant introuvable.")


@router.post("/upload", response_model=RosterImportReport, summary="Importer des étudiants via CSV")
async def upload_etudiants(
    file: UploadFile = File(...),
    remplacer: bool = False,
    db: Session = Depends(get_db),
    _: Capability = Depends(require_admin),
):
    """
    Importe la liste des étudiants depuis un fichier CSV.

    Format attendu du CSV :
    - Colonnes obligatoires : `nom`, `prenom`, `classe`
    - Séparateur : virgule (`,`) ou point-virgule (`;`)
    - Encodage : UTF-8 (avec ou sans BOM)

    Avec `remplacer=true`, la liste existante est entièrement supprimée avant l'import.
    Retourne un rapport détaillant les insertions et les rejets.
    """
    if file.content_type not in ALLOWED_CONTENT_TYPES and not (file.filename or "").endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail="Format invalide. Seuls les fichiers CSV sont acceptés."
        )

    content = await file.read()

    if len(content) > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"Fichier trop volumineux. Taille maximale : {MAX_FILE_SIZE_MB} Mo."
        )

    if not content:
        raise HTTPException(status_code=400, detail="Le fichier CSV est vide.")

    try:
        return parse_and_import_csv(content, db, remplacer=remplacer)
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Encodage invalide : le fichier doit être en UTF-8.")
