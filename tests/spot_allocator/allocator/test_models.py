import datetime

import pydantic
import pytest

from spot_allocator.allocator.models import AllocationResult, PlacementScore, PriceSample


def test_allocation_result_output_dict():
    result = AllocationResult(
        region="us-west-2",
        availability_zone="us-west-2b",
        instance_type="m5.large",
        bid_price=0.11,
        avg_price=0.09,
        max_price=0.10,
        score=9,
        instance_types=["m5.large", "m5a.large"],
    )
    assert result.to_output_dict() == {
        "region": "us-west-2",
        "availability_zone": "us-west-2b",
        "spot_price": 0.11,
        "instance_types": ["m5.large", "m5a.large"],
        "primary_instance_type": "m5.large",
        "pricing": {"avg_price": 0.09, "max_price": 0.10, "safe_bid": 0.11},
        "placement_score": 9,
    }


def test_models_are_frozen():
    score = PlacementScore(region="us-east-1", zone_id="use1-az1", score=5)
    with pytest.raises(pydantic.ValidationError):
        score.score = 6


@pytest.mark.parametrize("value", [-1, 11])
def test_placement_score_range(value):
    with pytest.raises(pydantic.ValidationError):
        PlacementScore(region="us-east-1", zone_id="use1-az1", score=value)


def test_price_sample_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        PriceSample(
            zone="us-east-1a",
            instance_type="m5.large",
            price=0,
            timestamp=datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc),
        )
