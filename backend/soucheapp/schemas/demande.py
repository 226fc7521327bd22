"""
Schémas Pydantic pour les demandes de souches.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from soucheapp.services.quota import MAX_SOUCHES_PAR_MOIS


class DemandeRecord(BaseModel):
    """Copie immuable d'une demande, telle que conservée dans le snapshot."""
    id: uuid.UUID
    nom: str
    classe: str
    nb_souches: int
    mois: str
    montant_paye: int = 0
    statut: str = "active"
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}

    # Les défauts de colonne ne sont appliqués qu'à l'INSERT
    @field_validator("montant_paye", mode="before")
    @classmethod
    def montant_default(cls, v):
        return 0 if v is None else v

    @field_validator("statut", mode="before")
    @classmethod
    def statut_default(cls, v):
        return "active" if v is None else v


class DemandeCreate(BaseModel):
    """Corps de requête d'un étudiant qui commande des souches."""
    nom: str
    classe: str
    nb_souches: int

    @field_validator("nom")
    @classmethod
    def nom_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom ne peut pas être vide.")
        return " ".join(v.split()).upper()

    @field_validator("classe")
    @classmethod
    def classe_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("La classe doit être sélectionnée.")
        return v.strip().upper()

    @field_validator("nb_souches")
    @classmethod
    def nb_souches_range(cls, v: int) -> int:
        if not 1 <= v <= MAX_SOUCHES_PAR_MOIS:
            raise ValueError(f"Le nombre de souches doit être compris entre 1 et {MAX_SOUCHES_PAR_MOIS}.")
        return v


class DemandeResponse(BaseModel):
    """Demande enrichie des montants dus et de l'écart de paiement."""
    id: uuid.UUID
    nom: str
    classe: str
    nb_souches: int
    nb_tickets: int
    mois: str
    montant_du: int
    montant_paye: int
    ecart: int             # > 0 : monnaie à rendre, < 0 : reste à payer
    statut_paiement: str   # solde, a_rembourser, impaye
    statut: str
    created_at: Optional[datetime]


class PaiementUpdate(BaseModel):
    """Montant encaissé par le délégué pour une demande."""
    montant_paye: int

    @field_validator("montant_paye")
    @classmethod
    def not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Le montant payé ne peut pas être négatif.")
        return v


class DemandeIds(BaseModel):
    """Corps de requête des opérations groupées."""
    ids: List[uuid.UUID]

    @field_validator("ids")
    @classmethod
    def not_empty(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("La liste de demandes ne peut pas être vide.")
        return v


class ResetRequest(BaseModel):
    """Confirmation de la réinitialisation : doit reprendre la clé du mois en cours."""
    confirmation: str


class BatchResult(BaseModel):
    """Résultat d'une opération groupée, élément par élément (pas de rollback global)."""
    succeeded: List[str]
    failed: List[str]
    total: int


class StudentSummary(BaseModel):
    """Vue étudiant du mois en cours : consommation et souches restantes."""
    nom: str
    classe: str
    mois: str
    plafond: int
    consommees: int
    restantes: int
    montant_du: int
    demandes: List[DemandeResponse]


class ClasseStats(BaseModel):
    classe: str
    nb_demandes: int
    nb_souches: int
    nb_tickets: int
    montant_du: int
    montant_paye: int
    ecart: int


class DemandeStats(BaseModel):
    """Tableau de bord : agrégats par classe et totaux du mois."""
    mois: str
    classes: List[ClasseStats]
    total: ClasseStats
    nb_archivees: int
