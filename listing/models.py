"""
Service records and their render projection.

The catalog JSON uses camelCase keys (totalRatings, socialMedia); the models
accept those as aliases and expose snake_case attributes.

Public API:
    Service, SocialMedia, ServiceCard
    average_rating(service) → float
    format_average(avg)     → str
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

SOCIAL_FIELDS = ("facebook", "instagram", "google", "website")


class SocialMedia(BaseModel):
    facebook: str | None = None
    instagram: str | None = None
    google: str | None = None
    website: str | None = None

    def links(self) -> dict[str, str]:
        """Non-empty links only, in a fixed order."""
        out = {}
        for field in SOCIAL_FIELDS:
            url = (getattr(self, field) or "").strip()
            if url:
                out[field] = url
        return out


class Service(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    description: str = ""
    phone: str = ""
    category: str
    ratings: list[Annotated[int, Field(ge=1, le=5)]] = Field(default_factory=list)
    total_ratings: int = Field(default=0, alias="totalRatings")
    social_media: SocialMedia | None = Field(default=None, alias="socialMedia")

    @model_validator(mode="after")
    def _total_matches_ratings(self) -> "Service":
        if self.total_ratings != len(self.ratings):
            raise ValueError(
                f"totalRatings ({self.total_ratings}) does not match "
                f"the number of ratings ({len(self.ratings)})"
            )
        return self


class ServiceCard(BaseModel):
    """Everything a card shows for one service, computed at render time."""

    id: int
    name: str
    phone: str
    category: str
    description: str
    social_links: dict[str, str]
    average: float
    average_display: str
    total_ratings: int
    filled_stars: int
    rated: bool


def format_average(avg: float) -> str:
    """One decimal, ties rounded up (4.25 → "4.3")."""
    return str(Decimal(str(avg)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_rating(service: Service) -> float:
    """Mean of the rating history, 0 when there is none."""
    if not service.ratings:
        return 0.0
    return sum(service.ratings) / len(service.ratings)
