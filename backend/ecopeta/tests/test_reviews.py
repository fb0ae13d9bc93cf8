import pytest
from fastapi import HTTPException

from ecopeta.core.review_moderation import (
    is_publicly_visible,
    needs_moderation,
    status_after_flag,
    validate_comment,
    validate_rating,
)
from ecopeta.models.location import Location
from ecopeta.models.review import Review
from ecopeta.routes.reviews import (
    create_review,
    delete_review,
    flag_review,
    list_location_reviews,
    list_reviews,
    moderate_review,
    pending_moderation,
    respond_to_review,
    toggle_helpful,
)
from ecopeta.schemas.review import ReviewCreate, ReviewModerate, ReviewResponseIn

GOOD_COMMENT = "Pelayanan cepat dan ramah sekali"


@pytest.fixture
def reviewed_location(make_user, make_location):
    partner = make_user("mitra")
    return partner, make_location(partner)


def _review(db, user, location, rating=5, comment=GOOD_COMMENT):
    payload = ReviewCreate(rating=rating, comment=comment)
    return create_review(location_id=location.id, payload=payload, db=db, current_user=user)["data"]


def _public_ids(db, location):
    result = list_location_reviews(
        location_id=location.id,
        sort="-created_at",
        status_filter=None,
        page=1,
        limit=10,
        db=db,
        current_user=None,
    )
    return [row.id for row in result["data"]]


def test_rules():
    assert status_after_flag(2) == "active"
    assert status_after_flag(3) == "flagged"
    assert needs_moderation("active", 3)
    assert needs_moderation("flagged", 0)
    assert not needs_moderation("hidden", 5)
    assert is_publicly_visible("active", 2)
    assert not is_publicly_visible("active", 3)
    with pytest.raises(ValueError):
        validate_rating(6)
    with pytest.raises(ValueError):
        validate_comment("bagus")


def test_create_review_updates_location_rating(db_session, make_user, reviewed_location):
    partner, location = reviewed_location
    _review(db_session, make_user("public"), location, rating=5)
    _review(db_session, make_user("public"), location, rating=2)

    db_session.expire_all()
    refreshed = db_session.get(Location, location.id)
    assert refreshed.rating == 3.5
    assert refreshed.total_reviews == 2

    with pytest.raises(HTTPException) as exc_info:
        _review(db_session, partner, location)
    assert exc_info.value.status_code == 403

    with pytest.raises(HTTPException) as exc_info:
        _review(db_session, make_user("public"), location, comment="jelek")
    assert exc_info.value.status_code == 400


def test_three_flags_move_review_to_moderation(db_session, make_user, reviewed_location):
    _, location = reviewed_location
    author = make_user("public")
    review = _review(db_session, author, location)

    with pytest.raises(HTTPException):
        flag_review(review_id=review.id, db=db_session, current_user=author)

    for _ in range(2):
        result = flag_review(review_id=review.id, db=db_session, current_user=make_user("public"))
        assert result["data"].status == "active"
    result = flag_review(review_id=review.id, db=db_session, current_user=make_user("public"))
    assert result["data"].status == "flagged"
    assert result["data"].flagged_count == 3

    assert _public_ids(db_session, location) == []
    admin = make_user("admin")
    pending = pending_moderation(db=db_session, current_user=admin)["data"]
    assert [row.id for row in pending] == [review.id]


def test_active_review_with_three_flags_is_hidden_from_public(db_session, make_user, reviewed_location):
    _, location = reviewed_location
    author = make_user("public")
    visible = _review(db_session, author, location)
    stale = Review(
        location_id=location.id,
        user_id=make_user("public").id,
        rating=1,
        comment=GOOD_COMMENT,
        status="active",
        flagged_count=3,
    )
    db_session.add(stale)
    db_session.commit()

    assert _public_ids(db_session, location) == [visible.id]
    pending = pending_moderation(db=db_session, current_user=make_user("admin"))["data"]
    assert [row.id for row in pending] == [stale.id]


def test_moderation_resets_flags_and_rating(db_session, make_user, reviewed_location):
    _, location = reviewed_location
    admin = make_user("admin")
    keep = _review(db_session, make_user("public"), location, rating=4)
    spam = _review(db_session, make_user("public"), location, rating=1)

    with pytest.raises(HTTPException) as exc_info:
        moderate_review(review_id=spam.id, payload=ReviewModerate(status="flagged"), db=db_session, current_user=admin)
    assert exc_info.value.status_code == 400

    hidden = moderate_review(
        review_id=spam.id,
        payload=ReviewModerate(status="hidden", moderation_note="Spam"),
        db=db_session,
        current_user=admin,
    )["data"]
    assert hidden.status == "hidden"
    assert hidden.flagged_count == 0
    assert hidden.moderated_by == admin.id

    db_session.expire_all()
    refreshed = db_session.get(Location, location.id)
    assert refreshed.rating == 4
    assert refreshed.total_reviews == 1
    assert _public_ids(db_session, location) == [keep.id]


def test_helpful_toggle_and_response(db_session, make_user, reviewed_location):
    partner, location = reviewed_location
    author = make_user("public")
    reader = make_user("public")
    review = _review(db_session, author, location)

    marked = toggle_helpful(review_id=review.id, db=db_session, current_user=reader)["data"]
    assert marked.helpful_count == 1
    assert marked.is_helpful_by_me is True
    unmarked = toggle_helpful(review_id=review.id, db=db_session, current_user=reader)["data"]
    assert unmarked.helpful_count == 0
    assert unmarked.is_helpful_by_me is False

    with pytest.raises(HTTPException) as exc_info:
        respond_to_review(
            review_id=review.id,
            payload=ReviewResponseIn(response="Terima kasih atas ulasannya"),
            db=db_session,
            current_user=make_user("mitra"),
        )
    assert exc_info.value.status_code == 403

    answered = respond_to_review(
        review_id=review.id,
        payload=ReviewResponseIn(response="Terima kasih atas ulasannya"),
        db=db_session,
        current_user=partner,
    )["data"]
    assert answered.response == "Terima kasih atas ulasannya"
    assert answered.response_date is not None


def test_dashboard_list_is_scoped_by_role(db_session, make_user, make_location, reviewed_location):
    partner, location = reviewed_location
    other_location = make_location(make_user("mitra"))
    author = make_user("public")
    mine = _review(db_session, author, location)
    elsewhere = _review(db_session, make_user("public"), other_location)

    def ids(user):
        result = list_reviews(
            sort="-created_at",
            status_filter=None,
            location_id=None,
            page=1,
            limit=10,
            db=db_session,
            current_user=user,
        )
        return {row.id for row in result["data"]}

    assert ids(author) == {mine.id}
    assert ids(partner) == {mine.id}
    assert ids(make_user("admin")) == {mine.id, elsewhere.id}


def test_delete_review_recomputes_rating(db_session, make_user, reviewed_location):
    _, location = reviewed_location
    author = make_user("public")
    review = _review(db_session, author, location, rating=3)

    with pytest.raises(HTTPException) as exc_info:
        delete_review(review_id=review.id, db=db_session, current_user=make_user("public"))
    assert exc_info.value.status_code == 403

    delete_review(review_id=review.id, db=db_session, current_user=author)
    db_session.expire_all()
    refreshed = db_session.get(Location, location.id)
    assert refreshed.rating == 0
    assert refreshed.total_reviews == 0


def test_route_filters_match_review_rules(db_session, make_user, reviewed_location):
    _, location = reviewed_location
    cases = [(status, count) for status in ("active", "flagged", "hidden") for count in (0, 2, 3, 5)]
    reviews = []
    for status, count in cases:
        review = Review(
            location_id=location.id,
            user_id=make_user("public").id,
            rating=4,
            comment=GOOD_COMMENT,
            status=status,
            flagged_count=count,
        )
        db_session.add(review)
        reviews.append(review)
    db_session.commit()

    expected_public = sorted(r.id for r in reviews if is_publicly_visible(r.status, r.flagged_count))
    expected_pending = sorted(r.id for r in reviews if needs_moderation(r.status, r.flagged_count))
    pending = pending_moderation(db=db_session, current_user=make_user("admin"))["data"]

    assert sorted(_public_ids(db_session, location)) == expected_public
    assert sorted(row.id for row in pending) == expected_pending
    assert len(expected_public) == 2
    assert len(expected_pending) == 6
