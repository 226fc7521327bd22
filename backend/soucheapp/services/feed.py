"""
Snapshot des demandes poussé aux abonnés.

Le snapshot est un tuple immuable de DemandeRecord, remplacé en bloc à chaque
changement : après chaque écriture (refresh explicite par les services) et
périodiquement par le scheduler pour les écritures d'autres processus.
Les chiffres dérivés sont recalculés à partir du snapshot par les fonctions
pures de `quota`, jamais mis à jour de manière incrémentale.
"""

import logging
import threading
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from soucheapp.models.demande import Demande
from soucheapp.schemas.demande import DemandeRecord

logger = logging.getLogger(__name__)

Snapshot = tuple[DemandeRecord, ...]
Subscriber = Callable[[Snapshot], None]


class DemandeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Sérialise lecture + publication : un snapshot lu avant un autre ne peut pas le remplacer
        self._refresh_lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._subscribers: list[Subscriber] = []

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def snapshot(self) -> Snapshot:
        return self._snapshot or ()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Abonne un callback aux remplacements du snapshot.
        Le callback reçoit immédiatement le snapshot courant s'il est chargé.
        Retourne la fonction de désabonnement.
        """
        with self._lock:
            self._subscribers.append(callback)
            current = self._snapshot
        if current is not None:
            callback(current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, records) -> Snapshot:
        """Remplace le snapshot puis notifie les abonnés."""
        snapshot = tuple(DemandeRecord.model_validate(r) for r in records)
        with self._lock:
            self._snapshot = snapshot
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as exc:
                logger.error("Abonné au snapshot en erreur : %s", exc, exc_info=True)
        return snapshot

    def refresh(self, db: Session) -> Snapshot:
        """Relit toutes les demandes (ordre de création) et publie le nouveau snapshot."""
        with self._refresh_lock:
            records = db.execute(
                select(Demande).order_by(Demande.created_at)
            ).scalars().all()
            snapshot = self.publish(records)
        logger.debug("Snapshot des demandes rafraîchi : %d demande(s)", len(snapshot))
        return snapshot

    def ensure_loaded(self, db: Session) -> Snapshot:
        if self._snapshot is None:
            return self.refresh(db)
        return self._snapshot

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
            self._subscribers.clear()


feed = DemandeFeed()
