"""Schema creation and seed data applied when the API starts."""
import logging
import threading
from typing import Optional

from sqlalchemy.orm import Session

from ecopeta import models  # noqa: F401
from ecopeta.core import config
from ecopeta.core.security import get_password_hash
from ecopeta.database.base import Base
from ecopeta.database.session import SessionLocal, engine
from ecopeta.models.user import User
from ecopeta.models.waste_category import WasteCategory

logger = logging.getLogger("uvicorn.error")

DEFAULT_WASTE_CATEGORIES = [
    {"name": "Plastik", "description": "Botol, gelas dan kemasan plastik", "points_per_kg": 3},
    {"name": "Kertas", "description": "Kertas, kardus dan karton", "points_per_kg": 2},
    {"name": "Logam", "description": "Kaleng dan besi bekas", "points_per_kg": 5},
    {"name": "Kaca", "description": "Botol dan pecahan kaca", "points_per_kg": 1},
    {"name": "Elektronik", "description": "Perangkat elektronik bekas", "points_per_kg": 8},
    {"name": "Organik", "description": "Sisa makanan dan daun", "points_per_kg": 1},
]


def seed_admin(db: Session, email: Optional[str], password: Optional[str], name: Optional[str]) -> Optional[User]:
    """Create the configured admin, or promote and rename an existing account."""
    if not email or not password:
        return None
    email = email.strip().lower()
    admin = db.query(User).filter(User.email == email).first()
    if admin is None:
        admin = User(
            name=name or "Administrator",
            email=email,
            password=get_password_hash(password),
            role="admin",
            is_verified=True,
        )
        db.add(admin)
        logger.info("Created admin account %s", email)
    else:
        admin.role = "admin"
        if name:
            admin.name = name
    db.commit()
    return admin


def seed_waste_categories(db: Session) -> int:
    if db.query(WasteCategory).count():
        return 0
    db.add_all(WasteCategory(**item, is_active=True) for item in DEFAULT_WASTE_CATEGORIES)
    db.commit()
    return len(DEFAULT_WASTE_CATEGORIES)


def run_bootstrap() -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Could not create database schema")
        return

    db = SessionLocal()
    try:
        for label, seed in (
            ("admin", lambda: seed_admin(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD, config.ADMIN_NAME)),
            ("waste categories", lambda: seed_waste_categories(db)),
        ):
            try:
                seed()
            except Exception:
                db.rollback()
                logger.exception("Seeding %s failed", label)
    finally:
        db.close()


_started = threading.Event()


def start_bootstrap(mode: Optional[str] = None) -> None:
    """Run the bootstrap at most once per process."""
    if _started.is_set():
        return
    _started.set()

    mode = mode or config.DB_BOOTSTRAP_MODE
    if mode not in config.BOOTSTRAP_MODES:
        logger.warning("Unknown DB_BOOTSTRAP_MODE %r, falling back to background.", mode)
        mode = "background"
    logger.info("DB bootstrap mode: %s", mode)
    if mode == "sync":
        run_bootstrap()
    elif mode == "background":
        threading.Thread(target=run_bootstrap, daemon=True, name="ecopeta-bootstrap").start()
