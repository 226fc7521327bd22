"""
Schémas Pydantic pour le document de configuration (classes valides, année scolaire).
"""

import re
from typing import List, Optional

from pydantic import BaseModel, field_validator

ANNEE_SCOLAIRE_REGEX = re.compile(r"^\d{4}-\d{4}$")


class AppConfigResponse(BaseModel):
    classes: List[str]
    annee_scolaire: Optional[str]


class AppConfigUpdate(BaseModel):
    classes: Optional[List[str]] = None
    annee_scolaire: Optional[str] = None

    @field_validator("classes")
    @classmethod
    def classes_valides(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = []
        for c in v:
            c = c.strip().upper()
            if c and c not in cleaned:
                cleaned.append(c)
        if not cleaned:
            raise ValueError("La liste des classes ne peut pas être vide.")
        return cleaned

    @field_validator("annee_scolaire")
    @classmethod
    def annee_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not ANNEE_SCOLAIRE_REGEX.match(v):
            raise ValueError("Format d'année scolaire invalide (attendu : 2025-2026).")
        debut, fin = (int(x) for x in v.split("-"))
        if fin != debut + 1:
            raise ValueError("L'année scolaire doit couvrir deux années consécutives.")
        return v
