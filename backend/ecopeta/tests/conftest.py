import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from uuid import uuid4

import pytest

TEST_DB_FILE = Path(tempfile.gettempdir()) / f"ecopeta_tests_{uuid4().hex}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_FILE.as_posix()}"
os.environ["UPLOADS_DIR"] = str(Path(tempfile.gettempdir()) / f"ecopeta_uploads_{uuid4().hex}")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("DB_BOOTSTRAP_MODE", "off")

from ecopeta import models  # noqa: E402,F401
from ecopeta.core.security import get_password_hash  # noqa: E402
from ecopeta.database.base import Base  # noqa: E402
from ecopeta.database.session import SessionLocal, engine  # noqa: E402
from ecopeta.models.location import Location  # noqa: E402
from ecopeta.models.user import User  # noqa: E402
from ecopeta.models.waste_category import WasteCategory  # noqa: E402
from ecopeta.routes.pickups import create_pickup  # noqa: E402
from ecopeta.schemas.pickup import PickupAddressIn, PickupCreate, WasteItemIn  # noqa: E402

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def reset_database():
    engine.dispose()
    if TEST_DB_FILE.exists():
        TEST_DB_FILE.unlink()
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        if TEST_DB_FILE.exists():
            TEST_DB_FILE.unlink()


@pytest.fixture
def db_session(reset_database):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    def _make(role: str = "public", name: str | None = None, password: str = DEFAULT_PASSWORD, **fields) -> User:
        suffix = uuid4().hex[:8]
        user = User(
            name=name or f"{role.title()} {suffix}",
            email=fields.pop("email", f"{role}.{suffix}@test.local"),
            password=get_password_hash(password),
            role=role,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_location(db_session):
    def _make(owner: User, status: str = "approved", pickup_service: bool = True, **fields) -> Location:
        location = Location(
            owner_id=owner.id,
            name=fields.pop("name", f"Bank Sampah {uuid4().hex[:6]}"),
            type=fields.pop("type", "bank_sampah"),
            status=status,
            street=fields.pop("street", "Jl. Asia Afrika 8"),
            city=fields.pop("city", "Bandung"),
            province=fields.pop("province", "Jawa Barat"),
            latitude=fields.pop("latitude", -6.9218),
            longitude=fields.pop("longitude", 107.6071),
            pickup_service=pickup_service,
            verified=status == "approved",
            **fields,
        )
        db_session.add(location)
        db_session.commit()
        db_session.refresh(location)
        return location

    return _make


@pytest.fixture
def make_category(db_session):
    def _make(name: str | None = None, points_per_kg: int = 3, is_active: bool = True) -> WasteCategory:
        category = WasteCategory(
            name=name or f"Kategori {uuid4().hex[:6]}",
            points_per_kg=points_per_kg,
            is_active=is_active,
        )
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_pickup(db_session):
    def _make(requester: User, location: Location, items: list[tuple[WasteCategory, float]], **fields):
        payload = PickupCreate(
            location_id=location.id,
            scheduled_date=fields.pop("scheduled_date", date.today() + timedelta(days=1)),
            time_slot=fields.pop("time_slot", "morning"),
            pickup_address=PickupAddressIn(street="Jl. Braga 12", city="Bandung"),
            waste_items=[
                WasteItemIn(category_id=category.id, estimated_weight=weight)
                for category, weight in items
            ],
            **fields,
        )
        result = create_pickup(payload=payload, db=db_session, current_user=requester)
        return result["data"]

    return _make


class FakeHttpResponse:
    def __init__(self, status_code: int = 200, payload=None, reason: str = "OK"):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHttpSession:
    """Stands in for ``requests.Session``: replays queued responses and records calls."""

    def __init__(self):
        self.calls: list[dict] = []
        self.responses: list = []

    def queue(self, status_code: int = 200, payload=None, reason: str = "OK") -> None:
        self.responses.append(FakeHttpResponse(status_code, payload, reason))

    def queue_error(self, exc: Exception) -> None:
        self.responses.append(exc)

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "headers": headers or {}})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_http():
    return FakeHttpSession()
