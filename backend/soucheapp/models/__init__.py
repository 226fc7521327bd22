# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant la création des tables et le chargement des routers.

from soucheapp.models.demande import Demande  # noqa: F401
from soucheapp.models.etudiant import Etudiant  # noqa: F401
from soucheapp.models.credential import Admin, Delegue  # noqa: F401
from soucheapp.models.app_config import AppConfig  # noqa: F401
