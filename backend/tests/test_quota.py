"""
Tests unitaires du moteur de quotas et de rapprochement des paiements.
"""

import random
from datetime import datetime
from types import SimpleNamespace

from soucheapp.services.quota import (
    MAX_SOUCHES_PAR_MOIS,
    PRIX_SOUCHE,
    active_requests_for,
    aggregate,
    amount_due,
    can_submit,
    change_owed,
    classify,
    consumed_units,
    latest_month,
    month_key,
    payment_status,
    remaining_units,
)


# --- Helpers ---

def demande(nom="KONAN JEAN", classe="ISE1", nb_souches=1, mois="2025-02", montant_paye=0, statut="active"):
    return SimpleNamespace(
        nom=nom, classe=classe, nb_souches=nb_souches, mois=mois,
        montant_paye=montant_paye, statut=statut,
    )


# --- month_key ---

def test_month_key_zero_padding():
    assert month_key(datetime(2025, 2, 28, 23, 59)) == "2025-02"
    assert month_key(datetime(2025, 11, 1)) == "2025-11"


def test_month_key_stable_dans_le_mois():
    assert month_key(datetime(2025, 3, 1)) == month_key(datetime(2025, 3, 31, 23, 59))


def test_month_key_ordre_lexicographique():
    keys = [month_key(datetime(2024, 12, 1)), month_key(datetime(2025, 1, 1)), month_key(datetime(2025, 10, 1))]
    assert keys == sorted(keys)
    assert max(keys) == "2025-10"


# --- active_requests_for ---

def test_active_requests_filtre_mois_et_archivees():
    a = demande(mois="2025-02")
    b = demande(mois="2025-02", statut="archived")
    c = demande(mois="2025-01")
    d = demande(mois="2025-02", nom="TRAORE AWA")
    assert active_requests_for([a, b, c, d], "2025-02") == [a, d]  # ordre conservé


# --- consumed_units ---

def test_consumed_units_somme_plusieurs_demandes():
    records = [demande(nb_souches=2), demande(nb_souches=1), demande(nom="TRAORE AWA", nb_souches=3)]
    assert consumed_units(records, "KONAN JEAN", "ISE1", "2025-02") == 3


def test_consumed_units_ignore_archivees_autre_classe_autre_mois():
    records = [
        demande(nb_souches=1),
        demande(nb_souches=2, statut="archived"),
        demande(nb_souches=2, classe="ISE2"),
        demande(nb_souches=2, mois="2025-01"),
    ]
    assert consumed_units(records, "KONAN JEAN", "ISE1", "2025-02") == 1


def test_consumed_units_nom_compare_sans_casse_ni_espaces():
    records = [demande(nom="KONAN JEAN", nb_souches=2)]
    assert consumed_units(records, "  konan   jean ", "ISE1", "2025-02") == 2


def test_consumed_units_independant_de_l_ordre():
    records = [demande(nb_souches=n, statut=s) for n, s in [(1, "active"), (2, "archived"), (1, "active"), (3, "active")]]
    expected = consumed_units(records, "KONAN JEAN", "ISE1", "2025-02")
    for _ in range(5):
        shuffled = records[:]
        random.shuffle(shuffled)
        assert consumed_units(shuffled, "KONAN JEAN", "ISE1", "2025-02") == expected == 5


def test_consumed_units_aucune_demande():
    assert consumed_units([], "KONAN JEAN", "ISE1", "2025-02") == 0


# --- can_submit / remaining_units ---

def test_can_submit_limite_atteinte_exactement():
    assert can_submit(2, 1, 3) is True


def test_can_submit_depassement():
    assert can_submit(3, 1, 3) is False


def test_can_submit_plafond_par_defaut():
    assert MAX_SOUCHES_PAR_MOIS == 3
    assert can_submit(0, 3) is True
    assert can_submit(1, 3) is False


def test_remaining_units_jamais_negatif():
    assert remaining_units(1) == 2
    assert remaining_units(3) == 0
    assert remaining_units(5) == 0


# --- Montants ---

def test_amount_due():
    assert amount_due(2, 2000) == 4000
    assert amount_due(3) == 3 * PRIX_SOUCHE


def test_change_owed_solde():
    assert change_owed(2000, 2000) == 0


def test_change_owed_monnaie_a_rendre():
    assert change_owed(5000, 4000) == 1000


def test_change_owed_reste_a_payer():
    assert change_owed(1000, 4000) == -3000


def test_payment_status():
    assert payment_status(0) == "solde"
    assert payment_status(1000) == "a_rembourser"
    assert payment_status(-3000) == "impaye"


# --- aggregate ---

def test_aggregate_par_classe():
    records = [
        demande(classe="ISE1", nb_souches=2, montant_paye=4000),
        demande(classe="ISE1", nb_souches=1, nom="TRAORE AWA"),
        demande(classe="AS2", nb_souches=3, montant_paye=7000),
    ]
    stats = aggregate(records)
    assert stats["ISE1"] == {
        "nb_demandes": 2, "nb_souches": 3, "montant_du": 6000, "montant_paye": 4000, "ecart": -2000,
    }
    assert stats["AS2"]["montant_du"] == 6000
    assert stats["AS2"]["ecart"] == 1000


def test_aggregate_sans_regroupement():
    records = [demande(classe="ISE1", nb_souches=2), demande(classe="AS2", nb_souches=1)]
    stats = aggregate(records, group_by_class=False)
    assert list(stats) == ["TOUTES"]
    assert stats["TOUTES"]["nb_souches"] == 3


def test_aggregate_exclut_archivees_mais_historique_les_garde():
    active = demande(nb_souches=1)
    archived = demande(nb_souches=2, statut="archived")
    records = [active, archived]

    stats = aggregate(records)
    assert stats["ISE1"]["nb_souches"] == 1
    assert stats["ISE1"]["nb_demandes"] == 1
    assert archived in records  # la liste non filtrée conserve la demande archivée


def test_aggregate_idempotent():
    records = [demande(nb_souches=2, montant_paye=1000), demande(classe="AS1", nb_souches=1)]
    assert aggregate(records) == aggregate(records)


def test_aggregate_montant_paye_absent():
    stats = aggregate([demande(nb_souches=1, montant_paye=None)])
    assert stats["ISE1"]["montant_paye"] == 0
    assert stats["ISE1"]["ecart"] == -PRIX_SOUCHE


# --- classify / latest_month ---

def test_classify():
    a, b, c = demande(), demande(statut="archived"), demande(mois="2025-01")
    active, archived = classify([a, b, c])
    assert active == [a, c]
    assert archived == [b]


def test_latest_month():
    assert latest_month([demande(mois="2024-12"), demande(mois="2025-02"), demande(mois="2025-01")]) == "2025-02"
    assert latest_month([]) is None


# --- Scénarios ---

def test_changement_de_mois_sans_reinitialisation():
    """Une demande de janvier ne compte pas pour un contrôle fait en février."""
    records = [demande(mois="2025-01", nb_souches=3)]
    mois = month_key(datetime(2025, 2, 1))
    consumed = consumed_units(records, "KONAN JEAN", "ISE1", mois)
    assert consumed == 0
    assert can_submit(consumed, 3) is True


def test_scenario_deux_puis_une_souche_puis_refus():
    records = [demande(nb_souches=2)]
    records.append(demande(nb_souches=1))
    consumed = consumed_units(records, "KONAN JEAN", "ISE1", "2025-02")
    assert consumed == 3
    assert can_submit(consumed, 1) is False
