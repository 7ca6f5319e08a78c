# app/schemas/review.py
from pydantic import BaseModel, Field, conint, model_validator
from typing import List, Literal, Optional
from datetime import date, datetime

from app.schemas.user import ClientSummary, ProviderSummary


class ReviewCreate(BaseModel):
    provider_id: int
    rating: conint(ge=1, le=5) = Field(..., description="Rating 1-5")
    comment: str = Field(..., min_length=10, max_length=500)
    service_date: date


class ReviewUpdate(BaseModel):
    rating: Optional[conint(ge=1, le=5)] = None
    comment: Optional[str] = Field(default=None, min_length=10, max_length=500)


class ReviewResponse(BaseModel):
    id: int
    client_id: int
    provider_id: int
    rating: int
    comment: str
    service_date: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewFilters(BaseModel):
    min_rating: Optional[conint(ge=1, le=5)] = None
    max_rating: Optional[conint(ge=1, le=5)] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_by: Literal["date", "rating"] = "date"
    order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    per_page: int = Field(20, ge=1, le=100)

    # search only; ignored when listing a single provider
    provider_id: Optional[int] = None
    client_id: Optional[int] = None

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_rating is not None and self.max_rating is not None and self.min_rating > self.max_rating:
            raise ValueError("min_rating must not exceed max_rating")
        if self.date_from is not None and self.date_to is not None and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class ProviderReviewItem(ReviewResponse):
    client: ClientSummary


class ProviderReviewsResponse(BaseModel):
    provider_id: int
    total: int
    page: int
    per_page: int
    # items hold one page of the matches; has_more tells whether later pages exist
    has_more: bool
    # mean over the filtered reviews, not the provider's stored aggregate_rating
    average_rating: float
    items: List[ProviderReviewItem]


class ReviewSearchItem(ReviewResponse):
    client: ClientSummary
    provider: ProviderSummary


class ReviewSearchResponse(BaseModel):
    total: int
    page: int
    per_page: int
    has_more: bool
    items: List[ReviewSearchItem]
