"""
Records passed between the stages of the allocation pipeline.
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, NonNegativeFloat, PositiveFloat, PositiveInt, conint


class PlacementScore(BaseModel, frozen=True):
    """Likelihood (0-10) that a spot request succeeds in one availability zone.

    The placement score API identifies zones by ID (e.g. "use1-az1"); zone_name
    (e.g. "us-east-1a") is filled in from the region's zone directory.
    """

    region: str
    zone_id: str
    score: conint(ge=0, le=10)
    zone_name: Optional[str] = None


class PriceSample(BaseModel, frozen=True):
    """One spot price history observation."""

    zone: str
    instance_type: str
    price: PositiveFloat  # USD/hour
    timestamp: datetime.datetime


class PriceAggregate(BaseModel, frozen=True):
    """Statistics over the price samples of one (zone, instance type) pair."""

    region: str
    zone: str
    instance_type: str
    avg_price: NonNegativeFloat
    min_price: NonNegativeFloat
    max_price: NonNegativeFloat
    count: PositiveInt


class Candidate(BaseModel, frozen=True):
    """A priced and scored placement option."""

    region: str
    zone: str
    instance_type: str
    avg_price: NonNegativeFloat
    max_price: NonNegativeFloat
    score: conint(ge=0, le=10)


class AllocationResult(BaseModel, frozen=True):
    """The selected placement and the bid to submit for it."""

    region: str
    availability_zone: str
    instance_type: str
    bid_price: NonNegativeFloat
    avg_price: NonNegativeFloat
    max_price: NonNegativeFloat
    score: conint(ge=0, le=10)
    # Requested instance types offered in the selected region
    instance_types: List[str]

    def to_output_dict(self) -> Dict[str, Any]:
        """Return the result in the JSON layout consumed by provisioning scripts."""
        return {
            "region": self.region,
            "availability_zone": self.availability_zone,
            "spot_price": self.bid_price,
            "instance_types": list(self.instance_types),
            "primary_instance_type": self.instance_type,
            "pricing": {
                "avg_price": self.avg_price,
                "max_price": self.max_price,
                "safe_bid": self.bid_price,
            },
            "placement_score": self.score,
        }
