"""
Shared fixtures for the spot allocator tests.
"""

import datetime
from unittest.mock import MagicMock

import pytest

from spot_allocator.allocator.models import PlacementScore, PriceSample
from spot_allocator.common.config import AllocationConfig
from spot_allocator.inventory.inventory_client import InventoryClient

SAMPLE_TIME = datetime.datetime(2025, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)

ZONES = {
    "us-east-1": [("use1-az1", "us-east-1a"), ("use1-az2", "us-east-1b")],
    "us-west-2": [("usw2-az1", "us-west-2a"), ("usw2-az2", "us-west-2b")],
    "eu-west-1": [("euw1-az1", "eu-west-1a")],
}


def price(zone: str, instance_type: str, value: float) -> PriceSample:
    return PriceSample(zone=zone, instance_type=instance_type, price=value, timestamp=SAMPLE_TIME)


@pytest.fixture
def inventory_client():
    """Mocked inventory client for three regions with one good zone each.

    us-west-2 is the cheapest region, us-east-1 the most expensive.
    """
    client = MagicMock(spec=InventoryClient)
    client.list_regions.return_value = sorted(ZONES)
    client.list_zones.side_effect = lambda region: ZONES[region]
    client.image_exists.return_value = True
    client.resolve_instance_types.return_value = ["m5.large", "m5a.large"]
    client.offered_instance_types.side_effect = lambda region, types: list(types)

    scores = {
        "us-east-1": [
            PlacementScore(region="us-east-1", zone_id="use1-az1", score=8),
            PlacementScore(region="us-east-1", zone_id="use1-az2", score=2),
        ],
        "us-west-2": [PlacementScore(region="us-west-2", zone_id="usw2-az2", score=9)],
        "eu-west-1": [PlacementScore(region="eu-west-1", zone_id="euw1-az1", score=6)],
    }
    client.get_placement_scores.side_effect = lambda region, types, capacity: scores[region]

    prices = {
        "us-east-1": [
            price("us-east-1a", "m5.large", 0.15),
            price("us-east-1b", "m5.large", 0.01),
        ],
        "us-west-2": [
            price("us-west-2b", "m5.large", 0.08),
            price("us-west-2b", "m5.large", 0.10),
            price("us-west-2a", "m5.large", 0.02),
        ],
        "eu-west-1": [price("eu-west-1a", "m5.large", 0.12)],
    }
    client.get_price_history.side_effect = (
        lambda region, types, start, end, product: prices[region]
    )
    return client


@pytest.fixture
def allocation_config():
    """Allocation configuration with caching of every kind enabled."""
    return AllocationConfig(call_timeout=5.0, zones_cache_ttl=600)
