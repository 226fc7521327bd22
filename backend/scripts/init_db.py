"""Initialise la base de données : tables, configuration par défaut, administrateur."""

import logging
import sys

from soucheapp.bootstrap import create_tables, seed
from soucheapp.config import settings
from soucheapp.database import SessionLocal, StoreError, engine


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s — %(message)s")
    create_tables(engine)
    db = SessionLocal()
    try:
        seed(db, settings.ADMIN_NOM, settings.ADMIN_CODE)
    except StoreError as exc:
        logging.getLogger(__name__).error("Initialisation impossible : %s", exc)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
