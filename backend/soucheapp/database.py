"""
Configuration de la connexion à la base de données PostgreSQL.
Les collections de l'application (demandes, etudiants, delegues, admins, config)
sont des tables SQLAlchemy.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from soucheapp.config import settings

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class StoreError(RuntimeError):
    """Échec d'une écriture en base (réseau, base indisponible). Jamais retentée."""


def get_db():
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, message: str) -> None:
    """
    Commit la session. En cas d'échec : rollback, log, puis StoreError portant
    le message destiné à l'utilisateur.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s %s", message, exc)
        raise StoreError(message) from exc
