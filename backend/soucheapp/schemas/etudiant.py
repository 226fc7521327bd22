"""
Schémas Pydantic pour la liste des étudiants (roster).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class EtudiantCreate(BaseModel):
    """Inscription manuelle d'un étudiant (hors import CSV)."""
    nom_complet: str
    classe: str

    @field_validator("nom_complet")
    @classmethod
    def nom_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom ne peut pas être vide.")
        return " ".join(v.split())

    @field_validator("classe")
    @classmethod
    def classe_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("La classe ne peut pas être vide.")
        return v.strip().upper()


class EtudiantUpdate(BaseModel):
    actif: bool


class EtudiantResponse(BaseModel):
    id: uuid.UUID
    nom_complet: str
    classe: str
    actif: bool
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class RosterImportRow(BaseModel):
    """Ligne valide du CSV après parsing."""
    nom_complet: str
    classe: str


class ImportRowError(BaseModel):
    """Détail d'une ligne rejetée lors de l'import."""
    row: int
    content: str
    reason: str


class RosterImportReport(BaseModel):
    """Rapport retourné après un import CSV du roster."""
    total_rows: int
    inserted: int
    rejected: int
    duplicates_in_file: int
    duplicates_in_db: int
    replaced: int           # étudiants supprimés avant réécriture (mode remplacement)
    errors: List[ImportRowError]
