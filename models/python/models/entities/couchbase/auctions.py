from typing import Any, List, Optional, Literal
from datetime import datetime, timedelta
from pydantic import BaseModel, Field, model_validator
from clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData

from models.engine.increments import DEFAULT_SPECIES, dominant_species, projected_total

# Bidding during the soft-close window requires a bid placed before this offset from the end.
ACTIVITY_WINDOW = timedelta(minutes=15)

AuctionStatus = Literal["draft", "upcoming", "active", "ended", "sold"]


class SpeciesShare(BaseModel):
    species: str
    percentage: float
    volume_m3: Optional[float] = None


class AuctionData(BaseCouchbaseEntityData):
    # Ownership
    owner_id: str
    owner_name: Optional[str] = None
    title: str = ""

    # Lot
    species_breakdown: List[SpeciesShare] = []
    dominant_species: str = DEFAULT_SPECIES
    volume_m3: float = Field(gt=0)

    # Pricing (EUR per m³)
    starting_price_per_m3: float
    current_price_per_m3: float
    second_highest_price_per_m3: float
    highest_max_proxy_per_m3: Optional[float] = None
    projected_total_value: float = 0.0

    # Leader
    current_bidder_id: Optional[str] = None
    current_bidder_name: Optional[str] = None
    current_bidder_anonymous_id: Optional[str] = None

    # Schedule
    start_time: datetime
    end_time: datetime  # moved forward by soft-close extensions
    original_end_time: datetime
    activity_window_cutoff: datetime  # fixed when scheduled, never moved by extensions
    soft_close_active: bool = False

    status: AuctionStatus = "draft"
    bid_count: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_pricing(cls, values: Any) -> Any:
        """Derive the canonical per-m³ fields from legacy total-price documents.

        Older documents store ``current_bid``/``starting_price`` as lot totals.
        Normalizing here means the engine only ever sees per-m³ prices.
        """
        if not isinstance(values, dict):
            return values
        values = dict(values)
        volume = values.get("volume_m3") or 0

        legacy_current = values.pop("current_bid", None)
        legacy_starting = values.pop("starting_price", None)

        if values.get("current_price_per_m3") is None:
            if legacy_current and volume:
                values["current_price_per_m3"] = legacy_current / volume
            elif legacy_starting and volume:
                values["current_price_per_m3"] = legacy_starting / volume
            else:
                values["current_price_per_m3"] = 0.0

        if values.get("starting_price_per_m3") is None:
            if legacy_starting and volume:
                values["starting_price_per_m3"] = legacy_starting / volume
            else:
                values["starting_price_per_m3"] = values["current_price_per_m3"]

        if values.get("second_highest_price_per_m3") is None:
            values["second_highest_price_per_m3"] = values["current_price_per_m3"]

        if not values.get("dominant_species"):
            values["dominant_species"] = dominant_species(values.get("species_breakdown") or [])

        end_time = values.get("end_time")
        if end_time is not None:
            if isinstance(end_time, str):
                end_time = datetime.fromisoformat(end_time.replace("Z", "+00:00"))
            if values.get("original_end_time") is None:
                values["original_end_time"] = end_time
            if values.get("activity_window_cutoff") is None:
                values["activity_window_cutoff"] = end_time - ACTIVITY_WINDOW
        return values

    @model_validator(mode="after")
    def _recompute_projected_total(self) -> "AuctionData":
        self.projected_total_value = projected_total(self.current_price_per_m3, self.volume_m3)
        return self

    def set_price(self, price_per_m3: float) -> None:
        """Update the clearing price together with the projected lot total."""
        self.current_price_per_m3 = price_per_m3
        self.projected_total_value = projected_total(price_per_m3, self.volume_m3)


class Auction(BaseModelCouchbase[AuctionData]):
    _collection_name = "auctions"
