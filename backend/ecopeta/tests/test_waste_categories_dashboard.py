import pytest
from fastapi import HTTPException

from ecopeta.models.waste_category import WasteCategory
from ecopeta.routes.dashboard import mitra_overview, weighted_average_rating
from ecopeta.routes.pickups import update_pickup_status
from ecopeta.routes.users import dashboard_stats
from ecopeta.routes.waste_categories import (
    create_category,
    delete_category,
    get_category,
    list_categories,
    update_category,
)
from ecopeta.schemas.pickup import ActualWeightItem, PickupStatusUpdate
from ecopeta.schemas.waste_category import WasteCategoryCreate, WasteCategoryUpdate


def test_category_crud_with_soft_delete(db_session, make_user):
    admin = make_user("admin")
    created = create_category(
        payload=WasteCategoryCreate(name=" Minyak Jelantah ", points_per_kg=4),
        db=db_session,
        current_user=admin,
    )["data"]
    assert created.name == "Minyak Jelantah"

    with pytest.raises(HTTPException) as exc_info:
        create_category(payload=WasteCategoryCreate(name="minyak jelantah", points_per_kg=2), db=db_session, current_user=admin)
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        create_category(payload=WasteCategoryCreate(name="Tanpa Poin"), db=db_session, current_user=admin)
    assert exc_info.value.detail == "Please provide name and points_per_kg"

    updated = update_category(
        category_id=created.id,
        payload=WasteCategoryUpdate(points_per_kg=6),
        db=db_session,
        current_user=admin,
    )["data"]
    assert updated.points_per_kg == 6

    delete_category(category_id=created.id, db=db_session, current_user=admin)
    assert list_categories(db=db_session)["data"] == []
    with pytest.raises(HTTPException) as exc_info:
        get_category(category_id=created.id, db=db_session)
    assert exc_info.value.status_code == 404
    assert db_session.query(WasteCategory).count() == 1


def test_weighted_average_rating_ignores_unrated(make_user, make_location):
    partner = make_user("mitra")
    rated = make_location(partner, rating=4.0, total_reviews=3)
    other = make_location(partner, rating=2.0, total_reviews=1)
    unrated = make_location(partner)
    assert weighted_average_rating([rated, other, unrated]) == 3.5
    assert weighted_average_rating([unrated]) == 0.0


def test_mitra_overview_counts(db_session, make_user, make_location, make_category, make_pickup):
    partner = make_user("mitra")
    requester = make_user("public")
    location = make_location(partner, rating=4.5, total_reviews=2)
    make_location(partner, status="pending")
    plastic = make_category("Plastik", points_per_kg=3)

    done = make_pickup(requester, location, [(plastic, 2)])
    make_pickup(requester, location, [(plastic, 1)])
    for value in ("accepted", "scheduled", "in_progress"):
        update_pickup_status(pickup_id=done.id, payload=PickupStatusUpdate(status=value), db=db_session, current_user=partner)
    update_pickup_status(
        pickup_id=done.id,
        payload=PickupStatusUpdate(
            status="completed",
            actual_weight_items=[ActualWeightItem(category_id=plastic.id, actual_weight=2.5)],
        ),
        db=db_session,
        current_user=partner,
    )

    overview = mitra_overview(db=db_session, current_user=partner)["data"]
    assert overview.locations.total == 2
    assert overview.locations.active == 1
    assert overview.locations.pending == 1
    assert overview.pickups.total == 2
    assert overview.pickups.pending == 1
    assert overview.pickups.completed == 1
    assert overview.performance.totalWasteCollected == 2.5
    assert overview.performance.averageRating == 4.5
    assert overview.performance.totalTransactions == 1

    admin = make_user("admin")
    stats = dashboard_stats(db=db_session, current_user=admin)["data"]
    assert stats.totalUsers == 3
    assert stats.totalMitra == 1
    assert stats.totalPickupsThisMonth == 1


def test_mitra_overview_without_locations(db_session, make_user):
    overview = mitra_overview(db=db_session, current_user=make_user("mitra"))["data"]
    assert overview.locations.total == 0
    assert overview.pickups.today == 0
    assert overview.performance.averageRating == 0
