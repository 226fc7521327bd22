"""
Service métier pour les demandes de souches.

Écritures : commande (avec contrôle du plafond mensuel), annulation par
l'étudiant, encaissement, archivage (unitaire et groupé), suppression
définitive et réinitialisation du mois.
Lectures : vue étudiant, liste du mois, historique et tableau de bord,
calculées par `quota` à partir du snapshot de `feed`.

Après chaque écriture le snapshot est relu depuis la base. En cas d'échec
d'écriture, la session est annulée et le snapshot reste inchangé.

Limite connue : le contrôle du plafond est une lecture suivie d'une
écriture, sans transaction. Deux commandes simultanées du même étudiant
peuvent toutes deux passer le contrôle et dépasser ensemble le plafond.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from soucheapp.database import commit_or_raise
from soucheapp.models.demande import Demande
from soucheapp.schemas.auth import Capability
from soucheapp.schemas.demande import (
    BatchResult,
    ClasseStats,
    DemandeCreate,
    DemandeResponse,
    DemandeStats,
    PaiementUpdate,
    StudentSummary,
)
from soucheapp.services import config_service, quota
from soucheapp.services.feed import feed

logger = logging.getLogger(__name__)


class QuotaExceededError(ValueError):
    """La commande ferait dépasser le plafond mensuel de l'étudiant."""


def to_response(demande) -> DemandeResponse:
    """Construit la réponse avec montant dû, écart et statut de paiement."""
    du = quota.amount_due(demande.nb_souches)
    paye = demande.montant_paye or 0
    ecart = quota.change_owed(paye, du)
    return DemandeResponse(
        id=demande.id,
        nom=demande.nom,
        classe=demande.classe,
        nb_souches=demande.nb_souches,
        nb_tickets=demande.nb_souches * quota.TICKETS_PAR_SOUCHE,
        mois=demande.mois,
        montant_du=du,
        montant_paye=paye,
        ecart=ecart,
        statut_paiement=quota.payment_status(ecart),
        statut=demande.statut or quota.STATUT_ACTIVE,
        created_at=demande.created_at,
    )


# --- Écritures ---

def submit_demande(db: Session, data: DemandeCreate, now: Optional[datetime] = None) -> DemandeResponse:
    """
    Enregistre une commande de souches pour le mois en cours.

    Validations, avant toute écriture :
    1. La classe fait partie des classes configurées (ValueError sinon)
    2. Le cumul du mois, relu depuis la base, plus la commande ne dépasse pas
       le plafond (QuotaExceededError sinon)
    """
    if data.classe not in config_service.get_valid_classes(db):
        raise ValueError(f"Classe inconnue : {data.classe}")

    mois = quota.month_key(now)

    # Lecture fraîche : une annulation récente doit être prise en compte
    existing = db.execute(
        select(Demande).where(
            Demande.mois == mois,
            Demande.classe == data.classe,
            Demande.statut != quota.STATUT_ARCHIVED,
        )
    ).scalars().all()

    consumed = quota.consumed_units(existing, data.nom, data.classe, mois)
    if not quota.can_submit(consumed, data.nb_souches):
        restantes = quota.remaining_units(consumed)
        logger.warning(
            "Plafond atteint pour %s (%s, %s) : %d consommée(s), %d demandée(s)",
            data.nom, data.classe, mois, consumed, data.nb_souches,
        )
        raise QuotaExceededError(
            f"Plafond de {quota.MAX_SOUCHES_PAR_MOIS} souches par mois dépassé : "
            f"{consumed} déjà commandée(s), il en reste {restantes}."
        )

    demande = Demande(
        id=uuid.uuid4(),
        nom=data.nom,
        classe=data.classe,
        nb_souches=data.nb_souches,
        mois=mois,
        montant_paye=0,
        statut=quota.STATUT_ACTIVE,
    )
    db.add(demande)
    commit_or_raise(db, "Erreur lors de l'enregistrement.")
    db.refresh(demande)
    _refresh_feed(db)

    logger.info(
        "Demande enregistrée : %s (%s) — %d souche(s) pour %s",
        demande.nom, demande.classe, demande.nb_souches, mois,
    )
    return to_response(demande)


def cancel_demande(db: Session, demande_id: uuid.UUID, nom: str, classe: str) -> bool:
    """
    Annulation d'une demande par l'étudiant qui l'a passée (suppression).
    Retourne False si la demande est introuvable.
    Lève PermissionError si elle appartient à un autre étudiant,
    ValueError si elle est archivée.
    """
    demande = db.get(Demande, demande_id)
    if demande is None:
        return False

    if demande.classe != classe.strip().upper() or quota.normalize_name(demande.nom) != quota.normalize_name(nom):
        raise PermissionError("Cette demande n'appartient pas à cet étudiant.")
    if demande.statut == quota.STATUT_ARCHIVED:
        raise ValueError("Une demande archivée ne peut plus être annulée.")

    db.delete(demande)
    commit_or_raise(db, "Erreur lors de l'annulation.")
    _refresh_feed(db)
    logger.info("Demande annulée : %s (%s, %s)", demande.nom, demande.classe, demande.mois)
    return True


def record_payment(
    db: Session,
    demande_id: uuid.UUID,
    data: PaiementUpdate,
    capability: Optional[Capability] = None,
) -> Optional[DemandeResponse]:
    """Enregistre le montant payé pour une demande active. None si introuvable."""
    demande = _get_for(db, demande_id, capability)
    if demande is None:
        return None
    if demande.statut == quota.STATUT_ARCHIVED:
        raise ValueError("Impossible d'encaisser une demande archivée.")

    demande.montant_paye = data.montant_paye
    commit_or_raise(db, "Erreur lors de l'enregistrement du paiement.")
    db.refresh(demande)
    _refresh_feed(db)

    response = to_response(demande)
    logger.info(
        "Paiement enregistré : %s (%s) — payé %d, dû %d, écart %d",
        demande.nom, demande.classe, response.montant_paye, response.montant_du, response.ecart,
    )
    return response


def archive_demande(
    db: Session,
    demande_id: uuid.UUID,
    capability: Optional[Capability] = None,
) -> Optional[DemandeResponse]:
    """
    Archive une demande : elle sort des agrégats actifs mais reste dans l'historique.
    Transition à sens unique ; archiver une demande déjà archivée ne change rien.
    """
    demande = _get_for(db, demande_id, capability)
    if demande is None:
        return None

    if demande.statut != quota.STATUT_ARCHIVED:
        demande.statut = quota.STATUT_ARCHIVED
        commit_or_raise(db, "Erreur lors de l'archivage.")
        db.refresh(demande)
        _refresh_feed(db)
        logger.info("Demande archivée : %s (%s, %s)", demande.nom, demande.classe, demande.mois)

    return to_response(demande)


def archive_demandes(
    db: Session,
    ids: list[uuid.UUID],
    capability: Optional[Capability] = None,
) -> BatchResult:
    """
    Archivage groupé. Chaque demande est traitée et commitée séparément :
    une erreur sur l'une n'annule pas les autres.
    """
    demandes, failed = _load_batch(db, ids, capability)

    def archive(demande: Demande) -> None:
        demande.statut = quota.STATUT_ARCHIVED

    result = _apply_each(db, demandes, archive, failed)
    logger.info("Archivage groupé : %d réussi(s), %d échec(s)", len(result.succeeded), len(result.failed))
    return result


def delete_demande(
    db: Session,
    demande_id: uuid.UUID,
    capability: Optional[Capability] = None,
) -> bool:
    """Suppression définitive, sans passage par l'historique. False si introuvable."""
    demande = _get_for(db, demande_id, capability)
    if demande is None:
        return False

    db.delete(demande)
    commit_or_raise(db, "Erreur lors de la suppression.")
    _refresh_feed(db)
    logger.info("Demande supprimée définitivement : %s (%s, %s)", demande.nom, demande.classe, demande.mois)
    return True


def reset_month(db: Session, confirmation: str, now: Optional[datetime] = None) -> BatchResult:
    """
    Réinitialisation du mois en cours : supprime ses demandes actives.
    Les demandes archivées restent dans l'historique.

    Ce n'est qu'un raccourci administratif : les compteurs repartent de zéro
    chaque mois du seul fait du filtrage par clé de mois.
    La confirmation doit reprendre la clé du mois (ex: "2025-02").
    """
    mois = quota.month_key(now)
    if confirmation.strip() != mois:
        raise ValueError(f"Confirmation invalide : saisir « {mois} » pour réinitialiser.")

    demandes = db.execute(
        select(Demande).where(
            Demande.mois == mois,
            Demande.statut != quota.STATUT_ARCHIVED,
        )
    ).scalars().all()

    result = _apply_each(db, demandes, db.delete, [])
    logger.info(
        "Réinitialisation %s : %d supprimée(s), %d échec(s)",
        mois, len(result.succeeded), len(result.failed),
    )
    return result


# --- Lectures (snapshot) ---

def get_student_summary(db: Session, nom: str, classe: str, now: Optional[datetime] = None) -> StudentSummary:
    """Consommation du mois en cours et souches restantes pour un étudiant."""
    snapshot = feed.ensure_loaded(db)
    mois = quota.month_key(now)
    nom = quota.normalize_name(nom)
    classe = classe.strip().upper()

    own = [
        d for d in quota.active_requests_for(snapshot, mois)
        if d.classe == classe and quota.normalize_name(d.nom) == nom
    ]
    consumed = quota.consumed_units(snapshot, nom, classe, mois)
    return StudentSummary(
        nom=nom,
        classe=classe,
        mois=mois,
        plafond=quota.MAX_SOUCHES_PAR_MOIS,
        consommees=consumed,
        restantes=quota.remaining_units(consumed),
        montant_du=quota.amount_due(consumed),
        demandes=[to_response(d) for d in own],
    )


def list_demandes(
    db: Session,
    mois: Optional[str] = None,
    classe: Optional[str] = None,
    recherche: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[DemandeResponse]:
    """Demandes actives d'un mois (mois en cours par défaut), dans l'ordre de création."""
    snapshot = feed.ensure_loaded(db)
    demandes = quota.active_requests_for(snapshot, mois or quota.month_key(now))
    return [to_response(d) for d in _filter(demandes, classe, recherche)]


def list_historique(db: Session, classe: Optional[str] = None) -> list[DemandeResponse]:
    """Toutes les demandes, archivées comprises, du mois le plus récent au plus ancien."""
    snapshot = feed.ensure_loaded(db)
    demandes = sorted(_filter(snapshot, classe), key=lambda d: d.mois, reverse=True)
    return [to_response(d) for d in demandes]


def get_stats(
    db: Session,
    mois: Optional[str] = None,
    classe: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DemandeStats:
    """Tableau de bord d'un mois : agrégats par classe et totaux (demandes actives)."""
    snapshot = feed.ensure_loaded(db)
    mois = mois or quota.month_key(now)
    demandes = [d for d in _filter(snapshot, classe) if d.mois == mois]

    _, archived = quota.classify(demandes)
    per_class = quota.aggregate(demandes, group_by_class=True)
    totals = quota.aggregate(demandes, group_by_class=False).get(quota.TOUTES_CLASSES)

    return DemandeStats(
        mois=mois,
        classes=[_to_stats(name, values) for name, values in sorted(per_class.items())],
        total=_to_stats(quota.TOUTES_CLASSES, totals or {}),
        nb_archivees=len(archived),
    )


# --- Helpers ---

def _to_stats(classe: str, values: dict) -> ClasseStats:
    nb_souches = values.get("nb_souches", 0)
    return ClasseStats(
        classe=classe,
        nb_demandes=values.get("nb_demandes", 0),
        nb_souches=nb_souches,
        nb_tickets=nb_souches * quota.TICKETS_PAR_SOUCHE,
        montant_du=values.get("montant_du", 0),
        montant_paye=values.get("montant_paye", 0),
        ecart=values.get("ecart", 0),
    )


def _filter(demandes: Iterable, classe: Optional[str] = None, recherche: Optional[str] = None) -> list:
    result = list(demandes)
    if classe:
        result = [d for d in result if d.classe == classe.strip().upper()]
    if recherche and recherche.strip():
        terme = recherche.strip().lower()
        result = [d for d in result if terme in d.nom.lower()]
    return result


def _get_for(db: Session, demande_id: uuid.UUID, capability: Optional[Capability]) -> Optional[Demande]:
    """Charge une demande en vérifiant qu'un délégué ne sort pas de sa classe."""
    demande = db.get(Demande, demande_id)
    if demande is None:
        return None
    if capability is not None and not capability.can_access(demande.classe):
        raise PermissionError("Cette demande ne relève pas de votre classe.")
    return demande


def _load_batch(
    db: Session,
    ids: list[uuid.UUID],
    capability: Optional[Capability],
) -> tuple[list[Demande], list[str]]:
    """Charge les demandes d'un lot ; les introuvables et hors classe vont dans les échecs."""
    demandes: list[Demande] = []
    failed: list[str] = []
    for demande_id in dict.fromkeys(ids):
        demande = db.get(Demande, demande_id)
        if demande is None or (capability is not None and not capability.can_access(demande.classe)):
            failed.append(str(demande_id))
            continue
        demandes.append(demande)
    return demandes, failed


def _apply_each(
    db: Session,
    demandes: Iterable[Demande],
    action: Callable[[Demande], None],
    failed: list[str],
) -> BatchResult:
    succeeded: list[str] = []
    for demande in demandes:
        try:
            action(demande)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Échec sur la demande %s : %s", demande.id, exc)
            failed.append(str(demande.id))
            continue
        succeeded.append(str(demande.id))

    _refresh_feed(db)
    return BatchResult(succeeded=succeeded, failed=failed, total=len(succeeded) + len(failed))


def _refresh_feed(db: Session) -> None:
    """Relit le snapshot ; un échec de lecture le laisse tel quel jusqu'au prochain rafraîchissement."""
    try:
        feed.refresh(db)
    except SQLAlchemyError as exc:
        logger.warning("Rafraîchissement du snapshot impossible : %s", exc)
