import io
import os

import pytest
import requests
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from ecopeta.core.config import UPLOADS_DIR
from ecopeta.models.notification import Notification
from ecopeta.routes.auth import upload_avatar
from ecopeta.routes.notifications import list_notifications, mark_read
from ecopeta.routes.regions import cities, provinces
from ecopeta.services import regions
from ecopeta.services.notifications import send_notification
from ecopeta.services.uploads import MAX_AVATAR_BYTES, relative_from_url, safe_stem


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def test_regions_proxy_passes_payload_through(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse([{"id": "32", "name": "JAWA BARAT"}])

    monkeypatch.setattr(regions.requests, "get", fake_get)
    assert provinces() == [{"id": "32", "name": "JAWA BARAT"}]
    cities("32")
    assert calls[0].endswith("/provinces.json")
    assert calls[1].endswith("/regencies/32.json")


def test_regions_proxy_reports_upstream_failure(monkeypatch):
    def broken_get(url, timeout):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(regions.requests, "get", broken_get)
    response = provinces()
    assert response.status_code == 500
    assert b"Failed to fetch provinces" in response.body

    monkeypatch.setattr(regions.requests, "get", lambda url, timeout: FakeResponse({}, status_code=404))
    with pytest.raises(regions.RegionsUpstreamError):
        regions.fetch_cities("99")


def test_notifications_list_and_mark_read(db_session, make_user):
    user = make_user("public")
    other = make_user("public")
    assert send_notification(user.id, "Halo", "Pesan pertama")
    assert send_notification(user.id, "Halo", "Pesan kedua", type="system")

    result = list_notifications(unread_only=False, limit=50, db=db_session, current_user=user)
    assert result["count"] == 2
    assert result["unread"] == 2

    first = result["data"][0]
    read = mark_read(notification_id=first.id, db=db_session, current_user=user)["data"]
    assert read.is_read is True

    unread = list_notifications(unread_only=True, limit=50, db=db_session, current_user=user)
    assert unread["count"] == 1

    with pytest.raises(HTTPException) as exc_info:
        mark_read(notification_id=first.id, db=db_session, current_user=other)
    assert exc_info.value.status_code == 404
    assert db_session.query(Notification).count() == 2


def test_upload_avatar_stores_file_and_replaces_previous(db_session, make_user):
    user = make_user("public")

    def upload(name):
        return UploadFile(
            file=io.BytesIO(b"\x89PNG fake"),
            filename=name,
            headers=Headers({"content-type": "image/png"}),
        )

    first = upload_avatar(avatar=upload("foto saya.png"), db=db_session, current_user=user)["data"]
    assert first.avatar_url.startswith("/uploads/avatars/user_")
    first_path = f"{UPLOADS_DIR}/{relative_from_url(first.avatar_url)}"

    second = upload_avatar(avatar=upload("baru.png"), db=db_session, current_user=user)["data"]
    assert second.avatar_url != first.avatar_url
    second_path = f"{UPLOADS_DIR}/{relative_from_url(second.avatar_url)}"

    assert not os.path.exists(first_path)
    assert os.path.exists(second_path)

    with pytest.raises(HTTPException) as exc_info:
        upload_avatar(avatar=upload("script.exe"), db=db_session, current_user=user)
    assert exc_info.value.status_code == 400


def test_oversized_avatar_is_rejected_and_not_kept(db_session, make_user):
    user = make_user("public")
    big = UploadFile(
        file=io.BytesIO(b"0" * (MAX_AVATAR_BYTES + 1)),
        filename="besar.jpg",
        headers=Headers({"content-type": "image/jpeg"}),
    )
    with pytest.raises(HTTPException) as exc_info:
        upload_avatar(avatar=big, db=db_session, current_user=user)
    assert exc_info.value.status_code == 400
    assert not any(name.endswith("_besar.jpg") for name in os.listdir(f"{UPLOADS_DIR}/avatars"))


def test_safe_stem():
    assert safe_stem("foto saya!!") == "foto_saya"
    assert safe_stem("") == "avatar"
