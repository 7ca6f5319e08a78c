# app/api/routes/review.py
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Literal, Optional
from datetime import date

from app.db.base import get_db
from app.core.errors import InvalidInput
from app.core.security import ClientPrincipal, require_client
from app.schemas.review import (
    ProviderReviewItem,
    ProviderReviewsResponse,
    ReviewCreate,
    ReviewFilters,
    ReviewResponse,
    ReviewSearchItem,
    ReviewSearchResponse,
    ReviewUpdate,
)
from app.services import reviews as review_service

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


def review_filters(
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    max_rating: Optional[int] = Query(None, ge=1, le=5),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    sort_by: Literal["date", "rating"] = Query("date"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> ReviewFilters:
    try:
        return ReviewFilters(
            min_rating=min_rating,
            max_rating=max_rating,
            date_from=date_from,
            date_to=date_to,
            sort_by=sort_by,
            order=order,
            page=page,
            per_page=per_page,
        )
    except ValidationError as e:
        raise InvalidInput("; ".join(err["msg"] for err in e.errors()))


# search only: the provider listing route already takes provider_id from its path
def search_filters(
    filters: ReviewFilters = Depends(review_filters),
    provider_id: Optional[int] = Query(None),
    client_id: Optional[int] = Query(None),
) -> ReviewFilters:
    return filters.model_copy(update={"provider_id": provider_id, "client_id": client_id})


# Client reviews a completed reservation
@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    current_client: ClientPrincipal = Depends(require_client),
):
    return review_service.submit_review(
        db,
        current_client,
        provider_id=review_in.provider_id,
        rating=review_in.rating,
        comment=review_in.comment,
        service_date=review_in.service_date,
    )


# Public search across all providers
@router.get("/search", response_model=ReviewSearchResponse)
def search_reviews(filters: ReviewFilters = Depends(search_filters), db: Session = Depends(get_db)):
    result = review_service.search_reviews(db, filters)
    return ReviewSearchResponse(
        total=result.total,
        page=filters.page,
        per_page=filters.per_page,
        has_more=filters.page * filters.per_page < result.total,
        items=[ReviewSearchItem.model_validate(r) for r in result.items],
    )


# List reviews for a provider (public)
@router.get("/provider/{provider_id}", response_model=ProviderReviewsResponse)
def list_provider_reviews(
    provider_id: int,
    filters: ReviewFilters = Depends(review_filters),
    db: Session = Depends(get_db),
):
    result = review_service.list_provider_reviews(db, provider_id, filters)
    return ProviderReviewsResponse(
        provider_id=provider_id,
        total=result.total,
        page=filters.page,
        per_page=filters.per_page,
        has_more=filters.page * filters.per_page < result.total,
        average_rating=result.average_rating,
        items=[ProviderReviewItem.model_validate(r) for r in result.items],
    )


# Author edits their review
@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: int,
    review_in: ReviewUpdate,
    db: Session = Depends(get_db),
    current_client: ClientPrincipal = Depends(require_client),
):
    return review_service.update_review(
        db, review_id, current_client, rating=review_in.rating, comment=review_in.comment
    )


# Author deletes their review (and the aggregate is recalculated)
@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_client: ClientPrincipal = Depends(require_client),
):
    review_service.remove_review(db, review_id, current_client)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
