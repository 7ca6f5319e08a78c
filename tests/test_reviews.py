from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.core.errors import Conflict, Forbidden, Internal, InvalidInput, NotFound, PreconditionFailed
from app.core.security import ClientPrincipal, ProviderPrincipal
from app.db.models.review import Review
from app.schemas.review import ReviewFilters
from app.services.reservations import create_reservation, transition_reservation
from app.services.reviews import (
    list_provider_reviews,
    remove_review,
    search_reviews,
    submit_review,
    update_review,
)

SERVICE_DATE = date(2024, 1, 10)
COMMENT = "Great service, very punctual"


class TestSubmitReview:
    def test_booking_to_review_scenario(self, db, make_client, make_provider):
        client = make_client()
        provider = make_provider(hourly_rate=20.0)
        me = ClientPrincipal(id=client.id)

        reservation = create_reservation(db, client.id, provider.id, SERVICE_DATE, 3)
        assert reservation.price == 60.0
        assert reservation.status == "pending"

        # not done yet
        with pytest.raises(PreconditionFailed):
            submit_review(db, me, provider.id, 4, COMMENT, SERVICE_DATE)

        transition_reservation(db, reservation.id, ProviderPrincipal(id=provider.id), "confirmed")
        with pytest.raises(PreconditionFailed):
            submit_review(db, me, provider.id, 4, COMMENT, SERVICE_DATE)

        transition_reservation(db, reservation.id, ProviderPrincipal(id=provider.id), "done")
        review = submit_review(db, me, provider.id, 4, COMMENT, SERVICE_DATE)

        db.refresh(provider)
        assert review.id is not None
        assert provider.aggregate_rating == 4.0

        with pytest.raises(Conflict):
            submit_review(db, me, provider.id, 5, "Second opinion on the same day", SERVICE_DATE)

    def test_two_reviews_average(self, db, make_client, make_provider, completed_service):
        provider = make_provider()
        alice, bob = make_client(), make_client()
        completed_service(alice, provider)
        completed_service(bob, provider)

        submit_review(db, ClientPrincipal(id=alice.id), provider.id, 5, COMMENT, SERVICE_DATE)
        submit_review(db, ClientPrincipal(id=bob.id), provider.id, 3, COMMENT, SERVICE_DATE)

        db.refresh(provider)
        assert provider.aggregate_rating == 4.0

    def test_same_client_different_dates(self, db, make_client, make_provider, completed_service):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider, date(2024, 1, 10))
        completed_service(client, provider, date(2024, 2, 10))
        me = ClientPrincipal(id=client.id)

        submit_review(db, me, provider.id, 5, COMMENT, date(2024, 1, 10))
        submit_review(db, me, provider.id, 2, COMMENT, date(2024, 2, 10))

        db.refresh(provider)
        assert provider.aggregate_rating == 3.5

    def test_date_must_match_reservation(self, db, make_client, make_provider, completed_service):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider, SERVICE_DATE)

        with pytest.raises(PreconditionFailed):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, COMMENT, date(2024, 1, 11))

    def test_other_clients_reservation_does_not_count(self, db, make_client, make_provider, completed_service):
        alice, bob = make_client(), make_client()
        provider = make_provider()
        completed_service(alice, provider)

        with pytest.raises(PreconditionFailed):
            submit_review(db, ClientPrincipal(id=bob.id), provider.id, 4, COMMENT, SERVICE_DATE)

    def test_cancelled_reservation_does_not_count(self, db, make_client, make_provider):
        client = make_client()
        provider = make_provider()
        reservation = create_reservation(db, client.id, provider.id, SERVICE_DATE, 3)
        transition_reservation(db, reservation.id, ClientPrincipal(id=client.id), "cancelled")

        with pytest.raises(PreconditionFailed):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, COMMENT, SERVICE_DATE)

    def test_provider_cannot_review(self, db, make_provider):
        provider = make_provider()

        with pytest.raises(Forbidden):
            submit_review(db, ProviderPrincipal(id=provider.id), provider.id, 5, COMMENT, SERVICE_DATE)

    @pytest.mark.parametrize("rating", [0, 6, -1, 4.5, True])
    def test_rating_out_of_range(self, db, make_client, make_provider, rating):
        # no reservation at all: input validation still wins
        client = make_client()
        provider = make_provider()

        with pytest.raises(InvalidInput):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, rating, COMMENT, SERVICE_DATE)

    @pytest.mark.parametrize("comment", ["too short", "", "x" * 501])
    def test_comment_length(self, db, make_client, make_provider, completed_service, comment):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider)

        with pytest.raises(InvalidInput):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, comment, SERVICE_DATE)

        assert db.query(Review).count() == 0

    @pytest.mark.parametrize("comment", ["x" * 10, "x" * 500])
    def test_comment_length_bounds_accepted(self, db, make_client, make_provider, completed_service, comment):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider)

        review = submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, comment, SERVICE_DATE)

        assert review.comment == comment

    def test_failed_submission_leaves_aggregate_untouched(self, db, make_client, make_provider, completed_service):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider)
        me = ClientPrincipal(id=client.id)
        submit_review(db, me, provider.id, 2, COMMENT, SERVICE_DATE)

        with pytest.raises(Conflict):
            submit_review(db, me, provider.id, 5, COMMENT, SERVICE_DATE)

        db.refresh(provider)
        assert provider.aggregate_rating == 2.0
        assert db.query(Review).count() == 1


@pytest.fixture()
def reviewed(db, make_client, make_provider, completed_service):
    """A provider with one review from `client`."""
    client = make_client()
    provider = make_provider()
    completed_service(client, provider)
    review = submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, COMMENT, SERVICE_DATE)
    return client, provider, review


class TestUpdateReview:
    def test_partial_update_rating(self, db, reviewed):
        client, provider, review = reviewed

        updated = update_review(db, review.id, ClientPrincipal(id=client.id), rating=2)

        db.refresh(provider)
        assert updated.rating == 2
        assert updated.comment == COMMENT
        assert provider.aggregate_rating == 2.0

    def test_partial_update_comment(self, db, reviewed):
        client, provider, review = reviewed

        updated = update_review(db, review.id, ClientPrincipal(id=client.id), comment="Changed my mind, it was fine")

        db.refresh(provider)
        assert updated.rating == 4
        assert updated.comment == "Changed my mind, it was fine"
        assert provider.aggregate_rating == 4.0

    def test_invalid_values(self, db, reviewed):
        client, _, review = reviewed

        with pytest.raises(InvalidInput):
            update_review(db, review.id, ClientPrincipal(id=client.id), rating=9)
        with pytest.raises(InvalidInput):
            update_review(db, review.id, ClientPrincipal(id=client.id), comment="short")

    def test_not_found(self, db, reviewed):
        client, _, _ = reviewed

        with pytest.raises(NotFound):
            update_review(db, 999, ClientPrincipal(id=client.id), rating=3)

    def test_only_author(self, db, reviewed, make_client):
        _, provider, review = reviewed
        stranger = make_client()

        with pytest.raises(Forbidden):
            update_review(db, review.id, ClientPrincipal(id=stranger.id), rating=1)
        with pytest.raises(Forbidden):
            update_review(db, review.id, ProviderPrincipal(id=provider.id), rating=1)


class TestRemoveReview:
    def test_removing_only_review_resets_aggregate(self, db, reviewed):
        client, provider, review = reviewed

        remove_review(db, review.id, ClientPrincipal(id=client.id))

        db.refresh(provider)
        assert provider.aggregate_rating == 0
        assert db.query(Review).count() == 0

    def test_removing_one_of_two(self, db, reviewed, make_client, completed_service):
        client, provider, review = reviewed
        other = make_client()
        completed_service(other, provider)
        submit_review(db, ClientPrincipal(id=other.id), provider.id, 1, COMMENT, SERVICE_DATE)
        db.refresh(provider)
        assert provider.aggregate_rating == 2.5

        remove_review(db, review.id, ClientPrincipal(id=client.id))

        db.refresh(provider)
        assert provider.aggregate_rating == 1.0

    def test_only_author(self, db, reviewed, make_client):
        _, _, review = reviewed
        stranger = make_client()

        with pytest.raises(Forbidden):
            remove_review(db, review.id, ClientPrincipal(id=stranger.id))

    def test_not_found(self, db, reviewed):
        client, _, _ = reviewed

        with pytest.raises(NotFound):
            remove_review(db, 999, ClientPrincipal(id=client.id))

    def test_can_review_again_after_removal(self, db, reviewed):
        client, provider, review = reviewed
        me = ClientPrincipal(id=client.id)
        remove_review(db, review.id, me)

        again = submit_review(db, me, provider.id, 5, COMMENT, SERVICE_DATE)

        db.refresh(provider)
        assert again.rating == 5
        assert provider.aggregate_rating == 5.0


@pytest.fixture()
def provider_with_reviews(db, make_client, make_provider, completed_service):
    provider = make_provider()
    ratings = [(date(2024, 1, 1), 5), (date(2024, 2, 1), 2), (date(2024, 3, 1), 4), (date(2024, 4, 1), 1)]
    for service_date, rating in ratings:
        client = make_client()
        completed_service(client, provider, service_date)
        submit_review(db, ClientPrincipal(id=client.id), provider.id, rating, COMMENT, service_date)
    db.refresh(provider)
    return provider


class TestListProviderReviews:
    def test_defaults_newest_first(self, db, provider_with_reviews):
        page = list_provider_reviews(db, provider_with_reviews.id)

        assert page.total == 4
        assert [r.service_date for r in page.items] == [
            date(2024, 4, 1), date(2024, 3, 1), date(2024, 2, 1), date(2024, 1, 1)
        ]
        assert page.items[0].client.first_name == "Alice"
        assert page.average_rating == 3.0

    def test_filtered_mean_differs_from_stored_aggregate(self, db, provider_with_reviews):
        page = list_provider_reviews(db, provider_with_reviews.id, ReviewFilters(min_rating=4))

        assert page.total == 2
        assert page.average_rating == 4.5
        assert provider_with_reviews.aggregate_rating == 3.0

    def test_rating_range_and_sort(self, db, provider_with_reviews):
        filters = ReviewFilters(min_rating=2, max_rating=4, sort_by="rating", order="asc")

        page = list_provider_reviews(db, provider_with_reviews.id, filters)

        assert [r.rating for r in page.items] == [2, 4]

    def test_date_range(self, db, provider_with_reviews):
        filters = ReviewFilters(date_from=date(2024, 2, 1), date_to=date(2024, 3, 31), order="asc")

        page = list_provider_reviews(db, provider_with_reviews.id, filters)

        assert [r.service_date for r in page.items] == [date(2024, 2, 1), date(2024, 3, 1)]
        assert page.average_rating == 3.0

    def test_empty_result_mean_is_zero(self, db, provider_with_reviews):
        page = list_provider_reviews(db, provider_with_reviews.id, ReviewFilters(date_from=date(2030, 1, 1)))

        assert page.total == 0
        assert page.items == []
        assert page.average_rating == 0.0

    def test_pagination_keeps_totals(self, db, provider_with_reviews):
        page = list_provider_reviews(db, provider_with_reviews.id, ReviewFilters(page=2, per_page=3))

        assert page.total == 4
        assert len(page.items) == 1
        assert page.average_rating == 3.0

    def test_unknown_provider(self, db):
        with pytest.raises(NotFound):
            list_provider_reviews(db, 4242)


class TestSearchReviews:
    def test_unscoped_search(self, db, provider_with_reviews, make_client, make_provider, completed_service):
        other = make_provider(first_name="Olga")
        client = make_client()
        completed_service(client, other)
        submit_review(db, ClientPrincipal(id=client.id), other.id, 5, COMMENT, SERVICE_DATE)

        page = search_reviews(db, ReviewFilters(min_rating=5))

        assert page.total == 2
        assert {r.provider_id for r in page.items} == {provider_with_reviews.id, other.id}
        assert all(r.provider.first_name and r.client.first_name for r in page.items)

    def test_scoped_by_provider_id(self, db, provider_with_reviews, make_client, make_provider, completed_service):
        other = make_provider()
        client = make_client()
        completed_service(client, other)
        submit_review(db, ClientPrincipal(id=client.id), other.id, 3, COMMENT, SERVICE_DATE)

        page = search_reviews(db, ReviewFilters(provider_id=other.id))

        assert page.total == 1
        assert page.items[0].rating == 3


class TestPersistenceFailures:
    def test_aggregate_write_failure_rolls_back_review(self, db, make_client, make_provider, completed_service):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider)
        db.execute(text(
            "CREATE TRIGGER providers_read_only BEFORE UPDATE ON providers "
            "BEGIN SELECT RAISE(ABORT, 'disk gone'); END"
        ))
        db.commit()

        with pytest.raises(Internal):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, 4, COMMENT, SERVICE_DATE)

        assert db.query(Review).count() == 0
        db.refresh(provider)
        assert provider.aggregate_rating == 0.0

    def test_commit_failure_leaves_nothing_behind(self, db, make_client, make_provider, completed_service, monkeypatch):
        client = make_client()
        provider = make_provider()
        completed_service(client, provider)

        def broken_commit():
            raise OperationalError("COMMIT", {}, Exception("disk gone"))

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(Internal):
            submit_review(db, ClientPrincipal(id=client.id), provider.id, 5, COMMENT, SERVICE_DATE)
        monkeypatch.undo()

        assert db.query(Review).count() == 0
        db.refresh(provider)
        assert provider.aggregate_rating == 0.0

    def test_failed_delete_keeps_review_and_aggregate(self, db, reviewed, monkeypatch):
        client, provider, review = reviewed

        def broken_commit():
            raise OperationalError("COMMIT", {}, Exception("disk gone"))

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(Internal):
            remove_review(db, review.id, ClientPrincipal(id=client.id))
        monkeypatch.undo()

        assert db.query(Review).count() == 1
        db.refresh(provider)
        assert provider.aggregate_rating == 4.0
