"""
Moteur de quotas et de rapprochement des paiements.

Fonctions pures sur un ensemble de demandes : consommation mensuelle d'un
étudiant face au plafond, agrégats par classe, écart de paiement (monnaie à
rendre) et tri actif / archivé.

Aucun état interne : tout est recalculé à partir de l'ensemble courant des
demandes et de la clé de mois. Il n'y a pas de remise à zéro explicite en
début de mois, le filtrage par clé de mois suffit.

Les demandes peuvent être des modèles SQLAlchemy, des schémas Pydantic ou
tout objet exposant `nom`, `classe`, `nb_souches`, `mois`, `montant_paye`
et `statut`.
"""

from datetime import datetime
from typing import Iterable, Optional

MAX_SOUCHES_PAR_MOIS = 3
PRIX_SOUCHE = 2000
TICKETS_PAR_SOUCHE = 10

STATUT_ACTIVE = "active"
STATUT_ARCHIVED = "archived"

TOUTES_CLASSES = "TOUTES"


def month_key(now: Optional[datetime] = None) -> str:
    """Clé de mois canonique `YYYY-MM`, comparable lexicographiquement."""
    now = now or datetime.now()
    return f"{now.year}-{now.month:02d}"


def normalize_name(nom: str) -> str:
    """Forme de comparaison d'un nom d'étudiant (espaces retirés, majuscules)."""
    return " ".join(nom.split()).upper()


def is_archived(demande) -> bool:
    return demande.statut == STATUT_ARCHIVED


def active_requests_for(records: Iterable, mois: str) -> list:
    """Demandes non archivées du mois donné, dans l'ordre reçu (ordre de création)."""
    return [d for d in records if d.mois == mois and not is_archived(d)]


def consumed_units(records: Iterable, nom: str, classe: str, mois: str) -> int:
    """Somme des souches non archivées d'un étudiant pour une classe et un mois."""
    cible = normalize_name(nom)
    return sum(
        d.nb_souches
        for d in active_requests_for(records, mois)
        if d.classe == classe and normalize_name(d.nom) == cible
    )


def remaining_units(consumed: int, cap: int = MAX_SOUCHES_PAR_MOIS) -> int:
    return max(cap - consumed, 0)


def can_submit(consumed: int, requested: int, cap: int = MAX_SOUCHES_PAR_MOIS) -> bool:
    return consumed + requested <= cap


def amount_due(units: int, unit_price: int = PRIX_SOUCHE) -> int:
    return units * unit_price


def change_owed(amount_paid: int, amount_due: int) -> int:
    """
    Écart entre le montant payé et le montant dû.
    Positif : monnaie à rendre à l'étudiant. Négatif : reste à payer. Zéro : soldé.
    """
    return amount_paid - amount_due


def payment_status(change: int) -> str:
    if change == 0:
        return "solde"
    if change > 0:
        return "a_rembourser"
    return "impaye"


def aggregate(records: Iterable, group_by_class: bool = True) -> dict:
    """
    Agrège les demandes actives (les archivées sont ignorées).

    Retourne un dict clé → compteurs, la clé étant la classe, ou `TOUTES`
    si group_by_class est faux. Les classes apparaissent dans l'ordre de
    leur première demande.
    """
    stats: dict = {}
    for d in records:
        if is_archived(d):
            continue
        key = d.classe if group_by_class else TOUTES_CLASSES
        bucket = stats.setdefault(key, {
            "nb_demandes": 0,
            "nb_souches": 0,
            "montant_du": 0,
            "montant_paye": 0,
            "ecart": 0,
        })
        du = amount_due(d.nb_souches)
        paye = d.montant_paye or 0
        bucket["nb_demandes"] += 1
        bucket["nb_souches"] += d.nb_souches
        bucket["montant_du"] += du
        bucket["montant_paye"] += paye
        bucket["ecart"] += change_owed(paye, du)
    return stats


def classify(records: Iterable) -> tuple[list, list]:
    """Sépare les demandes en (actives, archivées)."""
    active, archived = [], []
    for d in records:
        (archived if is_archived(d) else active).append(d)
    return active, archived


def latest_month(records: Iterable) -> Optional[str]:
    return max((d.mois for d in records), default=None)
