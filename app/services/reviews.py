# app/services/reviews.py
import logging
from datetime import date
from typing import List, NamedTuple, Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound, PreconditionFailed
from app.core.security import ClientPrincipal, Principal
from app.db.base import atomic
from app.db.models.provider import Provider
from app.db.models.reservation import Reservation
from app.db.models.review import Review
from app.schemas.review import ReviewFilters
from app.services.rating import mean_rating, recalculate_provider_rating
from app.services.reservations import DONE

logger = logging.getLogger(__name__)

MIN_RATING, MAX_RATING = 1, 5
MIN_COMMENT, MAX_COMMENT = 10, 500


class ReviewPage(NamedTuple):
    items: List[Review]
    total: int
    average_rating: Optional[float] = None


def _validate_rating(rating) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidInput(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")


def _validate_comment(comment) -> None:
    if not isinstance(comment, str) or not MIN_COMMENT <= len(comment) <= MAX_COMMENT:
        raise InvalidInput(f"comment must be between {MIN_COMMENT} and {MAX_COMMENT} characters")


def _get_provider(db: Session, provider_id: int) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if not provider:
        raise NotFound("Provider not found")
    return provider


def submit_review(
    db: Session,
    principal: Principal,
    provider_id: int,
    rating: int,
    comment: str,
    service_date: date,
) -> Review:
    # only clients can review
    if not isinstance(principal, ClientPrincipal):
        raise Forbidden("Only clients can submit reviews")

    _validate_rating(rating)
    _validate_comment(comment)

    # a completed reservation must exist for this exact client/provider/date
    completed = (
        db.query(Reservation.id)
        .filter(
            Reservation.client_id == principal.id,
            Reservation.provider_id == provider_id,
            Reservation.service_date == service_date,
            Reservation.status == DONE,
        )
        .first()
    )
    if not completed:
        logger.warning(
            f"Review refused, no completed reservation: client={principal.id} provider={provider_id} date={service_date}"
        )
        raise PreconditionFailed("No completed reservation with this provider on that date")

    existing = (
        db.query(Review.id)
        .filter(
            Review.client_id == principal.id,
            Review.provider_id == provider_id,
            Review.service_date == service_date,
        )
        .first()
    )
    if existing:
        raise Conflict("A review already exists for this service")

    provider = _get_provider(db, provider_id)

    review = Review(
        client_id=principal.id,
        provider_id=provider.id,
        rating=rating,
        comment=comment,
        service_date=service_date,
    )
    # review insert and aggregate update commit together
    with atomic(db, "submit review"):
        db.add(review)
        try:
            db.flush()
        except IntegrityError:
            # lost a race with an identical submission
            db.rollback()
            raise Conflict("A review already exists for this service")
        recalculate_provider_rating(db, provider)
    db.refresh(review)

    logger.info(f"Review {review.id} submitted: client={principal.id} provider={provider.id} rating={rating}")
    return review


def _get_own_review(db: Session, review_id: int, principal: Principal) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise NotFound("Review not found")

    if not isinstance(principal, ClientPrincipal) or review.client_id != principal.id:
        raise Forbidden("Not your review")

    return review


def update_review(
    db: Session,
    review_id: int,
    principal: Principal,
    rating: Optional[int] = None,
    comment: Optional[str] = None,
) -> Review:
    review = _get_own_review(db, review_id, principal)

    if rating is not None:
        _validate_rating(rating)
    if comment is not None:
        _validate_comment(comment)

    provider = _get_provider(db, review.provider_id)

    with atomic(db, "update review"):
        if rating is not None:
            review.rating = rating
        if comment is not None:
            review.comment = comment
        db.flush()
        recalculate_provider_rating(db, provider)
    db.refresh(review)

    logger.info(f"Review {review.id} updated by client {principal.id}")
    return review


def remove_review(db: Session, review_id: int, principal: Principal) -> None:
    review = _get_own_review(db, review_id, principal)
    provider = _get_provider(db, review.provider_id)

    with atomic(db, "delete review"):
        db.delete(review)
        db.flush()
        recalculate_provider_rating(db, provider)

    logger.info(f"Review {review_id} deleted by client {principal.id}")


def _apply_filters(query: Query, filters: ReviewFilters) -> Query:
    if filters.min_rating is not None:
        query = query.filter(Review.rating >= filters.min_rating)
    if filters.max_rating is not None:
        query = query.filter(Review.rating <= filters.max_rating)
    if filters.date_from is not None:
        query = query.filter(Review.service_date >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Review.service_date <= filters.date_to)
    return query


def _apply_sort(query: Query, filters: ReviewFilters) -> Query:
    direction = asc if filters.order == "asc" else desc
    if filters.sort_by == "rating":
        return query.order_by(direction(Review.rating), direction(Review.service_date), direction(Review.id))
    return query.order_by(direction(Review.service_date), direction(Review.created_at), direction(Review.id))


def _page(query: Query, filters: ReviewFilters) -> List[Review]:
    offset = (filters.page - 1) * filters.per_page
    return query.offset(offset).limit(filters.per_page).all()


def list_provider_reviews(db: Session, provider_id: int, filters: Optional[ReviewFilters] = None) -> ReviewPage:
    """
    Reviews of one provider with client names attached.

    average_rating is the mean of the *filtered* reviews (all pages), which is
    not necessarily the provider's stored aggregate_rating.
    """
    filters = filters or ReviewFilters()
    _get_provider(db, provider_id)

    base = _apply_filters(db.query(Review).filter(Review.provider_id == provider_id), filters)

    count, total = (
        _apply_filters(
            db.query(func.count(Review.id), func.coalesce(func.sum(Review.rating), 0)).filter(
                Review.provider_id == provider_id
            ),
            filters,
        ).one()
    )

    items = _page(_apply_sort(base.options(joinedload(Review.client)), filters), filters)
    return ReviewPage(items=items, total=int(count or 0), average_rating=mean_rating(int(total or 0), int(count or 0)))


def search_reviews(db: Session, filters: Optional[ReviewFilters] = None) -> ReviewPage:
    filters = filters or ReviewFilters()

    query = _apply_filters(db.query(Review), filters)
    if filters.provider_id is not None:
        query = query.filter(Review.provider_id == filters.provider_id)
    if filters.client_id is not None:
        query = query.filter(Review.client_id == filters.client_id)

    total = query.count()
    items = _page(
        _apply_sort(query.options(joinedload(Review.client), joinedload(Review.provider)), filters),
        filters,
    )
    return ReviewPage(items=items, total=total)
