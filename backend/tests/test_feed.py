"""
Tests unitaires du snapshot des demandes (publication / abonnement).
"""

import threading
import uuid
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from soucheapp.models.demande import Demande
from soucheapp.services.feed import DemandeFeed


def make_demande(**kwargs) -> Demande:
    return Demande(
        id=kwargs.get("id", uuid.uuid4()),
        nom=kwargs.get("nom", "KONAN JEAN"),
        classe=kwargs.get("classe", "ISE1"),
        nb_souches=kwargs.get("nb_souches", 1),
        mois=kwargs.get("mois", "2025-02"),
        montant_paye=kwargs.get("montant_paye", 0),
        statut=kwargs.get("statut", "active"),
        created_at=kwargs.get("created_at", datetime(2025, 2, 3, 12, 0)),
    )


def test_snapshot_vide_avant_chargement():
    feed = DemandeFeed()
    assert feed.loaded is False
    assert feed.snapshot() == ()


def test_publish_remplace_le_snapshot():
    feed = DemandeFeed()
    first = feed.publish([make_demande(), make_demande()])
    second = feed.publish([make_demande(nb_souches=3)])

    assert len(first) == 2
    assert feed.snapshot() == second
    assert feed.snapshot()[0].nb_souches == 3


def test_snapshot_immuable():
    feed = DemandeFeed()
    snapshot = feed.publish([make_demande()])
    assert isinstance(snapshot, tuple)
    with pytest.raises(ValidationError):
        snapshot[0].nb_souches = 2


def test_publish_defauts_non_appliques():
    """montant_paye et statut à None (objet jamais inséré) prennent leur valeur par défaut."""
    d = Demande(id=uuid.uuid4(), nom="KONAN JEAN", classe="ISE1", nb_souches=1, mois="2025-02")
    record = DemandeFeed().publish([d])[0]
    assert record.montant_paye == 0
    assert record.statut == "active"


def test_subscribe_recoit_chaque_publication():
    feed = DemandeFeed()
    received = []
    feed.subscribe(received.append)

    feed.publish([make_demande()])
    feed.publish([])

    assert len(received) == 2
    assert received[1] == ()


def test_subscribe_recoit_le_snapshot_courant():
    feed = DemandeFeed()
    feed.publish([make_demande()])
    received = []
    feed.subscribe(received.append)
    assert len(received) == 1
    assert len(received[0]) == 1


def test_unsubscribe():
    feed = DemandeFeed()
    received = []
    unsubscribe = feed.subscribe(received.append)
    unsubscribe()
    feed.publish([make_demande()])
    assert received == []


def test_abonne_en_erreur_n_empeche_pas_les_autres():
    feed = DemandeFeed()
    received = []

    def broken(_):
        raise RuntimeError("boom")

    feed.subscribe(broken)
    feed.subscribe(received.append)
    feed.publish([make_demande()])
    assert len(received) == 1


def test_refresh_lit_la_base():
    feed = DemandeFeed()
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = [make_demande(), make_demande()]

    snapshot = feed.refresh(db)

    assert len(snapshot) == 2
    assert feed.loaded is True
    db.execute.assert_called_once()


def test_ensure_loaded_ne_relit_pas():
    feed = DemandeFeed()
    feed.publish([make_demande()])
    db = MagicMock()
    assert len(feed.ensure_loaded(db)) == 1
    db.execute.assert_not_called()


def test_refresh_lent_ne_remplace_pas_un_snapshot_plus_recent():
    """
    Un rafraîchissement lent (lecture avant une annulation) suivi d'un rafraîchissement
    rapide (lecture après) : le snapshot final est celui de la lecture la plus récente.
    """
    feed = DemandeFeed()
    a = make_demande(nom="KONE ALI", nb_souches=2)
    b = make_demande(nom="KONE ALI", nb_souches=1)

    lecture_commencee = threading.Event()
    liberer = threading.Event()

    def lecture_lente(*args, **kwargs):
        lecture_commencee.set()
        liberer.wait(timeout=5)
        result = MagicMock()
        result.scalars.return_value.all.return_value = [a, b]
        return result

    db_lent = MagicMock()
    db_lent.execute.side_effect = lecture_lente
    db_rapide = MagicMock()
    db_rapide.execute.return_value.scalars.return_value.all.return_value = [a]  # b annulée

    lent = threading.Thread(target=feed.refresh, args=(db_lent,))
    lent.start()
    assert lecture_commencee.wait(timeout=5)

    rapide = threading.Thread(target=feed.refresh, args=(db_rapide,))
    rapide.start()
    rapide.join(timeout=0.2)
    assert rapide.is_alive()  # attend la fin du rafraîchissement en cours
    db_rapide.execute.assert_not_called()

    liberer.set()
    lent.join(timeout=5)
    rapide.join(timeout=5)

    snapshot = feed.snapshot()
    assert [r.id for r in snapshot] == [a.id]
    assert sum(r.nb_souches for r in snapshot) == 2
