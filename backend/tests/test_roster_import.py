"""
Tests unitaires pour le service d'import CSV de la liste des étudiants.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from soucheapp.database import StoreError
from soucheapp.services.roster_import import parse_and_import_csv


def make_db_mock(existing_students=None, deleted=0):
    """Crée un mock de session SQLAlchemy sans BDD réelle (classes par défaut)."""
    db = MagicMock()
    db.get.return_value = None
    db.execute.return_value.fetchall.return_value = existing_students or []
    db.execute.return_value.rowcount = deleted
    return db


# --- Cas nominaux ---

def test_import_csv_basique():
    csv_content = b"nom,prenom,classe\nKonan,Jean,ISE1\nTraore,Awa,AS2\n"
    db = make_db_mock()

    report = parse_and_import_csv(csv_content, db)

    assert report.inserted == 2
    assert report.rejected == 0
    assert report.replaced == 0
    mappings = db.bulk_insert_mappings.call_args[0][1]
    assert mappings[0] == {"nom_complet": "KONAN Jean", "classe": "ISE1", "actif": True}
    db.commit.assert_called_once()


def test_import_csv_separateur_point_virgule():
    """Le séparateur point-virgule (export Excel FR) doit être détecté."""
    report = parse_and_import_csv(b"nom;prenom;classe\nKonan;Jean;ise1\n", make_db_mock())
    assert report.inserted == 1


def test_import_csv_avec_bom_et_entetes_accentues():
    csv_content = "Nom,Prénom,Classe\nKonan,Jean,ISE1\n".encode("utf-8-sig")
    report = parse_and_import_csv(csv_content, make_db_mock())
    assert report.inserted == 1
    assert report.rejected == 0


def test_import_csv_lignes_vides_ignorees():
    csv_content = b"nom,prenom,classe\nKonan,Jean,ISE1\n,,\nTraore,Awa,AS2\n"
    report = parse_and_import_csv(csv_content, make_db_mock())
    assert report.inserted == 2
    assert report.rejected == 0


# --- Erreurs de validation ---

def test_import_csv_colonnes_manquantes():
    db = make_db_mock()
    report = parse_and_import_csv(b"nom,prenom\nKonan,Jean\n", db)
    assert report.inserted == 0
    assert "classe" in report.errors[0].reason
    db.bulk_insert_mappings.assert_not_called()


def test_import_csv_classe_inconnue():
    csv_content = b"nom,prenom,classe\nKonan,Jean,MASTER9\nTraore,Awa,AS2\n"
    report = parse_and_import_csv(csv_content, make_db_mock())
    assert report.inserted == 1
    assert report.rejected == 1
    assert report.errors[0].row == 2
    assert "Classe inconnue" in report.errors[0].reason


def test_import_csv_prenom_manquant():
    report = parse_and_import_csv(b"nom,prenom,classe\nKonan,,ISE1\n", make_db_mock())
    assert report.inserted == 0
    assert report.errors[0].reason == "Nom ou prénom manquant"


def test_import_csv_doublon_dans_fichier():
    csv_content = b"nom,prenom,classe\nKonan,Jean,ISE1\nKONAN,jean,ise1\nKonan,Jean,ISE2\n"
    report = parse_and_import_csv(csv_content, make_db_mock())
    assert report.inserted == 2
    assert report.duplicates_in_file == 1


def test_import_csv_doublon_en_base():
    db = make_db_mock(existing_students=[("konan jean", "ISE1")])
    report = parse_and_import_csv(b"nom,prenom,classe\nKonan,Jean,ISE1\nTraore,Awa,AS2\n", db)
    assert report.inserted == 1
    assert report.duplicates_in_db == 1


def test_import_csv_vide():
    db = make_db_mock()
    report = parse_and_import_csv(b"", db)
    assert report.inserted == 0
    assert report.rejected == 1
    db.commit.assert_not_called()


def test_import_csv_encodage_invalide():
    with pytest.raises(UnicodeDecodeError):
        parse_and_import_csv("nom,prenom,classe\nKonan,Zoé,ISE1\n".encode("latin-1"), make_db_mock())


# --- Mode remplacement ---

def test_import_remplacement_supprime_puis_insere():
    db = make_db_mock(existing_students=[("konan jean", "ISE1")], deleted=42)
    report = parse_and_import_csv(b"nom,prenom,classe\nKonan,Jean,ISE1\n", db, remplacer=True)

    assert report.replaced == 42
    assert report.inserted == 1
    assert report.duplicates_in_db == 0
    db.bulk_insert_mappings.assert_called_once()
    db.commit.assert_called_once()


def test_import_remplacement_sans_ligne_valide_ne_supprime_rien():
    db = make_db_mock(deleted=42)
    report = parse_and_import_csv(b"nom,prenom,classe\nKonan,Jean,MASTER9\n", db, remplacer=True)
    assert report.replaced == 0
    db.execute.assert_not_called()
    db.commit.assert_not_called()


def test_import_echec_commit():
    db = make_db_mock()
    db.commit.side_effect = OperationalError("INSERT", None, Exception("disque plein"))
    with pytest.raises(StoreError):
        parse_and_import_csv(b"nom,prenom,classe\nKonan,Jean,ISE1\n", db)
    db.rollback.assert_called_once()
