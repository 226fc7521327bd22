"""
Export CSV des demandes (mois en cours, filtrées ou historique complet).
UTF-8 avec BOM et séparateur `;`, compatible Excel.
"""

import csv
import io
from typing import Iterable

from soucheapp.schemas.demande import DemandeResponse
from soucheapp.services import quota

HEADER = [
    "Nom", "Classe", "Mois", "Souches", "Tickets",
    "Montant dû", "Montant payé", "Écart", "Paiement", "Statut", "Date",
]


def export_demandes_csv(demandes: Iterable[DemandeResponse]) -> str:
    """Génère le CSV des demandes fournies, une ligne par demande, plus une ligne de total."""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";")
    writer.writerow(HEADER)

    total_souches = total_du = total_paye = 0
    for d in demandes:
        writer.writerow([
            d.nom,
            d.classe,
            d.mois,
            d.nb_souches,
            d.nb_tickets,
            d.montant_du,
            d.montant_paye,
            d.ecart,
            d.statut_paiement,
            d.statut,
            d.created_at.strftime("%Y-%m-%d %H:%M:%S") if d.created_at else "",
        ])
        total_souches += d.nb_souches
        total_du += d.montant_du
        total_paye += d.montant_paye

    writer.writerow([
        "TOTAL", "", "", total_souches, total_souches * quota.TICKETS_PAR_SOUCHE,
        total_du, total_paye, quota.change_owed(total_paye, total_du), "", "", "",
    ])
    return "\ufeff" + output.getvalue()  # BOM pour compatibilité Excel


def export_filename(mois: str = "", historique: bool = False) -> str:
    if historique:
        return "historique_souches.csv"
    return f"souches_{mois}.csv"
