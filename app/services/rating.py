# app/services/rating.py
import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models.provider import Provider
from app.db.models.review import Review

logger = logging.getLogger(__name__)


def mean_rating(total: int, count: int) -> float:
    """Mean rounded half-up to one decimal; 0.0 for an empty set."""
    if not count:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def recalculate_provider_rating(db: Session, provider: Provider) -> float:
    """
    Recompute provider.aggregate_rating from the reviews table.

    Always derived from the full review set (never adjusted incrementally), and
    only flushed: the caller commits it together with the review change.
    Pending review inserts/deletes must be flushed before calling this.
    """
    count, total = (
        db.query(func.count(Review.id), func.coalesce(func.sum(Review.rating), 0))
        .filter(Review.provider_id == provider.id)
        .one()
    )
    provider.aggregate_rating = mean_rating(int(total or 0), int(count or 0))
    db.add(provider)
    db.flush()

    logger.info(f"Provider {provider.id} aggregate rating -> {provider.aggregate_rating} ({count} reviews)")
    return provider.aggregate_rating
