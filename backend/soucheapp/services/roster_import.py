"""
Service d'import CSV de la liste des étudiants.
Gère le parsing, la validation, la détection de doublons et l'insertion bulk.

Format : colonnes `nom`, `prenom`, `classe` (insensibles à la casse et aux accents).
Le nom complet stocké est "NOM Prénom".

Mode remplacement : tous les étudiants existants sont supprimés avant
l'insertion des nouvelles lignes (suppression puis réécriture, dans l'ordre).
"""

import csv
import io
import logging
import unicodedata
from typing import Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from soucheapp.database import commit_or_raise
from soucheapp.models.etudiant import Etudiant
from soucheapp.schemas.etudiant import ImportRowError, RosterImportReport, RosterImportRow
from soucheapp.services import config_service

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"nom", "prenom", "classe"}


def _normalize_header(raw: str) -> str:
    """Normalise un nom de colonne : minuscules, sans espaces ni accents."""
    decomposed = unicodedata.normalize("NFKD", raw.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _detect_separator(sample: str) -> str:
    """Détecte le séparateur CSV (virgule ou point-virgule)."""
    if sample.count(";") >= sample.count(","):
        return ";"
    return ","


def _empty_report(errors: list[ImportRowError], total_rows: int = 0, duplicates_in_file: int = 0) -> RosterImportReport:
    return RosterImportReport(
        total_rows=total_rows, inserted=0, rejected=len(errors),
        duplicates_in_file=duplicates_in_file, duplicates_in_db=0, replaced=0,
        errors=errors,
    )


def parse_and_import_csv(content: bytes, db: Session, remplacer: bool = False) -> RosterImportReport:
    """
    Parse le CSV, valide chaque ligne, détecte les doublons et insère en bulk.

    Règles :
    - Colonnes requises : nom, prenom, classe
    - La classe doit faire partie des classes configurées
    - Doublon intra-fichier : même nom complet + classe (insensible à la casse)
    - Doublon BDD : idem contre les étudiants existants (ignoré en mode remplacement)
    - Aucune ligne valide : rien n'est supprimé ni inséré
    """
    text = content.decode("utf-8-sig")  # utf-8-sig gère le BOM Excel
    lines = text.splitlines()
    separator = _detect_separator(lines[0] if lines else "")

    reader = csv.DictReader(io.StringIO(text), delimiter=separator)

    if reader.fieldnames is None:
        return _empty_report([ImportRowError(row=0, content="", reason="Fichier CSV vide ou illisible")])

    field_map = {_normalize_header(f): f for f in reader.fieldnames}
    missing = REQUIRED_COLUMNS - set(field_map)
    if missing:
        return _empty_report([ImportRowError(
            row=0, content=str(reader.fieldnames),
            reason=f"Colonnes manquantes : {', '.join(sorted(missing))}",
        )])

    valid_classes = set(config_service.get_valid_classes(db))

    valid_rows: list[RosterImportRow] = []
    errors: list[ImportRowError] = []
    seen_in_file: set[Tuple[str, str]] = set()  # (nom_complet_lower, classe)
    duplicates_in_file = 0
    row_num = 1

    for row_num, row in enumerate(reader, start=2):  # ligne 1 = header
        raw_nom = (row.get(field_map["nom"]) or "").strip()
        raw_prenom = (row.get(field_map["prenom"]) or "").strip()
        raw_classe = (row.get(field_map["classe"]) or "").strip().upper()

        # Ligne vide
        if not raw_nom and not raw_prenom and not raw_classe:
            continue

        if not raw_nom or not raw_prenom:
            errors.append(ImportRowError(
                row=row_num, content=f"{raw_nom}, {raw_prenom}, {raw_classe}",
                reason="Nom ou prénom manquant",
            ))
            continue

        if raw_classe not in valid_classes:
            errors.append(ImportRowError(
                row=row_num, content=f"{raw_nom}, {raw_prenom}, {raw_classe}",
                reason=f"Classe inconnue : {raw_classe or '(vide)'}",
            ))
            continue

        nom_complet = " ".join(f"{raw_nom.upper()} {raw_prenom}".split())
        key = (nom_complet.lower(), raw_classe)
        if key in seen_in_file:
            duplicates_in_file += 1
            errors.append(ImportRowError(
                row=row_num, content=f"{raw_nom}, {raw_prenom}, {raw_classe}",
                reason="Doublon dans le fichier CSV",
            ))
            continue
        seen_in_file.add(key)

        valid_rows.append(RosterImportRow(nom_complet=nom_complet, classe=raw_classe))

    total_rows = row_num - 1 if valid_rows or errors else 0

    if not valid_rows:
        return _empty_report(errors, total_rows=total_rows, duplicates_in_file=duplicates_in_file)

    replaced = 0
    duplicates_in_db = 0
    to_insert: list[RosterImportRow] = []

    if remplacer:
        # Suppression complète avant réécriture
        replaced = db.execute(delete(Etudiant)).rowcount or 0
        to_insert = valid_rows
    else:
        existing = db.execute(
            select(func.lower(Etudiant.nom_complet), Etudiant.classe)
            .where(func.lower(Etudiant.nom_complet).in_([r.nom_complet.lower() for r in valid_rows]))
        ).fetchall()
        existing_set = {(row[0], row[1]) for row in existing}

        for etudiant in valid_rows:
            if (etudiant.nom_complet.lower(), etudiant.classe) in existing_set:
                duplicates_in_db += 1
                errors.append(ImportRowError(
                    row=0, content=f"{etudiant.nom_complet}, {etudiant.classe}",
                    reason="Étudiant déjà présent en base de données",
                ))
            else:
                to_insert.append(etudiant)

    if to_insert:
        db.bulk_insert_mappings(Etudiant, [
            {"nom_complet": e.nom_complet, "classe": e.classe, "actif": True}
            for e in to_insert
        ])

    if to_insert or replaced:
        commit_or_raise(db, "Erreur lors de l'import des étudiants.")

    logger.info(
        "Import roster : %d inséré(s), %d rejeté(s), %d remplacé(s)",
        len(to_insert), len(errors), replaced,
    )
    return RosterImportReport(
        total_rows=total_rows,
        inserted=len(to_insert),
        rejected=len(errors),
        duplicates_in_file=duplicates_in_file,
        duplicates_in_db=duplicates_in_db,
        replaced=replaced,
        errors=errors,
    )
