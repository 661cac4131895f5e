import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ReviewVariant(BaseModel):
    id: str | None = None
    title: str | None = None


class Review(BaseModel):
    """One entry of the JSON list stored in a product's reviews metafield."""

    name: str = "Anonymous"
    rating: int | float = Field(default=0, ge=0)
    content: str = ""
    date: str | None = None  # ISO date, e.g. "2025-08-02"
    avatar: str | None = None
    variant: ReviewVariant | None = None

    @field_validator("rating", mode="before")
    @classmethod
    def _missing_rating_is_zero(cls, value: Any) -> Any:
        return 0 if value is None or value == "" else value

    def display_date(self) -> str:
        """Human form of ``date`` ("August 2, 2025"); today when missing."""
        if not self.date:
            parsed = dt.date.today()
        else:
            try:
                parsed = dt.datetime.fromisoformat(self.date.replace("Z", "+00:00")).date()
            except ValueError:
                return self.date
        return f"{parsed:%B} {parsed.day}, {parsed.year}"


class ReviewList(BaseModel):
    """Reviews read from the metafield, with the digest needed for a guarded write."""

    product_id: str
    reviews: list[Review] = Field(default_factory=list)
    compare_digest: str | None = None  # None when the metafield does not exist yet
    # Stored JSON list exactly as read; None when the value is not a JSON list
    raw_entries: list[Any] | None = Field(default_factory=list)


class ReviewsWritten(BaseModel):
    product_id: str
    count: int
    compare_digest: str | None = None
