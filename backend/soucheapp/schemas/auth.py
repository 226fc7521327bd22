"""
Schémas Pydantic pour les codes d'accès (délégués et administrateurs).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

MIN_CODE_LENGTH = 4


class CodeVerify(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def code_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le code ne peut pas être vide.")
        return v


class Capability(BaseModel):
    """Droit obtenu par vérification d'un code : admin (global) ou délégué (une classe)."""
    role: str                     # admin, delegue
    nom: str
    classe: Optional[str] = None  # None pour un admin

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_access(self, classe: str) -> bool:
        return self.is_admin or self.classe == classe


class DelegueCreate(BaseModel):
    nom: str
    classe: str
    code: str

    @field_validator("nom", "classe")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()

    @field_validator("classe")
    @classmethod
    def classe_upper(cls, v: str) -> str:
        return v.upper()

    @field_validator("code")
    @classmethod
    def code_length(cls, v: str) -> str:
        if len(v.strip()) < MIN_CODE_LENGTH:
            raise ValueError(f"Le code doit contenir au moins {MIN_CODE_LENGTH} caractères.")
        return v.strip()


class DelegueResponse(BaseModel):
    id: uuid.UUID
    nom: str
    classe: str
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AdminCodeUpdate(BaseModel):
    """Changement du code administrateur : le code doit être saisi deux fois."""
    code: str
    confirmation: str

    @field_validator("code")
    @classmethod
    def code_length(cls, v: str) -> str:
        if len(v.strip()) < MIN_CODE_LENGTH:
            raise ValueError(f"Le code doit contenir au moins {MIN_CODE_LENGTH} caractères.")
        return v.strip()

    @model_validator(mode="after")
    def codes_identiques(self) -> "AdminCodeUpdate":
        if self.code != self.confirmation.strip():
            raise ValueError("Le code et sa confirmation ne correspondent pas.")
        return self
