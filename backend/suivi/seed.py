"""Bootstrap seeding: default accounts and two demonstration records.

Idempotent: existing logins and references are left untouched.

Usage:
    python -m suivi.seed
"""
import argparse
import logging

from sqlalchemy.orm import Session

from suivi.database import Base, SessionLocal, engine
from suivi.log_config import setup_logging
from suivi.models.record import ChangeRecord
from suivi.models.user import Role, User
from suivi.security import hash_password

# Imported for Base.metadata
from suivi.models.attachment import Attachment       # noqa: F401
from suivi.models.purchase import PurchaseEntry      # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    {"login": "admin", "password": "admin123", "display_name": "Administrateur",
     "email": "admin@safir.local", "role": Role.admin},
    {"login": "editeur", "password": "editeur123", "display_name": "Éditeur Test",
     "email": "editeur@safir.local", "role": Role.editor},
    {"login": "lecteur", "password": "lecteur123", "display_name": "Lecteur Test",
     "email": "lecteur@safir.local", "role": Role.reader},
]

DEMO_RECORDS = [
    {
        "reference": "COU.001",
        "product_line": "COUPE-FEU",
        "model": "CF30",
        "title": "Modification joint intumescent",
        "description": "Remplacement du joint intumescent par un modèle plus performant "
                       "pour améliorer la résistance au feu.",
        "affected_serials": "CF30-2024-001 à CF30-2024-150",
    },
    {
        "reference": "LINT.001",
        "product_line": "LINTEAU",
        "model": "L200",
        "title": "Renforcement structure métallique",
        "description": "Ajout de renforts sur la structure métallique suite aux retours "
                       "du service qualité.",
        "affected_serials": "L200-2024-050 à L200-2024-200",
    },
]


def upsert_user(db: Session, login: str, password: str, display_name: str,
                email: str | None, role: Role) -> User:
    """Create the user if the login is free; return the stored user either way."""
    user = db.query(User).filter(User.login == login).first()
    if user:
        return user
    user = User(
        login=login,
        password_hash=hash_password(password),
        display_name=display_name,
        email=email,
        role=role,
        active=True,
    )
    db.add(user)
    db.flush()
    logger.info("Seeded user %s (%s)", login, role.value)
    return user


def seed(db: Session, with_demo_records: bool = True) -> None:
    users = {spec["login"]: upsert_user(db, **spec) for spec in DEFAULT_USERS}
    if with_demo_records:
        admin = users["admin"]
        for data in DEMO_RECORDS:
            if db.query(ChangeRecord.id).filter(ChangeRecord.reference == data["reference"]).first():
                continue
            db.add(ChangeRecord(**data, creator_id=admin.id))
            logger.info("Seeded demo record %s", data["reference"])
    db.commit()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed default accounts and demo records.")
    parser.add_argument("--no-demo", action="store_true", help="skip the demonstration records")
    args = parser.parse_args(argv)

    setup_logging()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db, with_demo_records=not args.no_demo)
    finally:
        db.close()
    logger.info("Database initialised")


if __name__ == "__main__":
    main()
