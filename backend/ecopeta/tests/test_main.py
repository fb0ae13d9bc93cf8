import asyncio
import json

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecopeta import main
from ecopeta.core import config
from ecopeta.database import bootstrap
from ecopeta.models.user import User
from ecopeta.models.waste_category import WasteCategory


def test_http_errors_use_failure_envelope():
    response = asyncio.run(main.http_error_envelope(None, StarletteHTTPException(status_code=404, detail="Location not found")))
    assert response.status_code == 404
    assert json.loads(response.body) == {"success": False, "error": "Location not found"}


def test_validation_errors_become_bad_request():
    exc = RequestValidationError([
        {"loc": ("body", "email"), "msg": "Field required", "type": "missing"},
        {"loc": ("query", "page"), "msg": "Input should be greater than or equal to 1", "type": "greater_than_equal"},
    ])
    response = asyncio.run(main.validation_error_envelope(None, exc))
    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["success"] is False
    assert body["error"] == "email: Field required; query.page: Input should be greater than or equal to 1"


def test_bootstrap_seeds_admin_and_categories_once(db_session, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_EMAIL", "Admin@EcoPeta.id")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "admin123")
    monkeypatch.setattr(config, "ADMIN_NAME", "Admin Eco-Peta")

    bootstrap.run_bootstrap()
    bootstrap.run_bootstrap()

    admins = db_session.query(User).filter(User.email == "admin@ecopeta.id").all()
    assert len(admins) == 1
    assert admins[0].role == "admin"
    assert db_session.query(WasteCategory).count() == len(bootstrap.DEFAULT_WASTE_CATEGORIES)


def test_seed_admin_promotes_existing_account(db_session, make_user):
    user = make_user("mitra", name="Budi", email="budi@ecopeta.id")
    admin = bootstrap.seed_admin(db_session, " BUDI@ecopeta.id ", "admin123", "Budi Admin")
    assert admin.id == user.id
    assert admin.role == "admin"
    assert admin.name == "Budi Admin"
    assert db_session.query(User).count() == 1


def test_seed_admin_skipped_without_credentials(db_session):
    assert bootstrap.seed_admin(db_session, "", "admin123", "Admin") is None
    assert bootstrap.seed_admin(db_session, "admin@ecopeta.id", None, "Admin") is None
    assert db_session.query(User).count() == 0


def test_health_endpoints():
    assert main.root()["success"] is True
    assert main.healthcheck() == {"status": "ok"}
