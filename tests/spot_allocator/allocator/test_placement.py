from spot_allocator.allocator.models import PlacementScore, PriceAggregate
from spot_allocator.allocator.placement import (
    filter_placement_scores,
    join_candidates,
    map_zone_names,
)


def _score(zone_id, score, region="us-east-1", zone_name=None):
    return PlacementScore(region=region, zone_id=zone_id, score=score, zone_name=zone_name)


def _aggregate(zone, instance_type="m5.large", avg=0.1, max_price=0.1, region="us-east-1"):
    return PriceAggregate(
        region=region,
        zone=zone,
        instance_type=instance_type,
        avg_price=avg,
        min_price=avg,
        max_price=max_price,
        count=1,
    )


def test_filter_placement_scores():
    scores = [_score("A", 5), _score("B", 2), _score("C", 8)]
    assert filter_placement_scores(scores, 3) == [_score("A", 5), _score("C", 8)]


def test_filter_placement_scores_boundary_is_excluded():
    scores = [_score("A", 3), _score("B", 4)]
    assert filter_placement_scores(scores, 3) == [_score("B", 4)]
    assert filter_placement_scores([_score("A", 10)], 10) == []
    assert filter_placement_scores([_score("A", 1), _score("B", 0)], 0) == [_score("A", 1)]


def test_map_zone_names():
    scores = [_score("use1-az1", 5), _score("use1-az9", 7), _score("use1-az2", 8)]
    zones = [("use1-az1", "us-east-1a"), ("use1-az2", "us-east-1b")]
    mapped = map_zone_names(scores, zones)
    assert [(s.zone_id, s.zone_name, s.score) for s in mapped] == [
        ("use1-az1", "us-east-1a", 5),
        ("use1-az2", "us-east-1b", 8),
    ]
    # The originals are untouched
    assert scores[0].zone_name is None


def test_join_candidates():
    scores = [_score("use1-az1", 5, zone_name="us-east-1a")]
    aggregates = [
        _aggregate("us-east-1a", "m5.large", avg=0.09, max_price=0.1),
        _aggregate("us-east-1a", "m5a.large", avg=0.07, max_price=0.08),
        _aggregate("us-east-1b", "m5.large"),
    ]
    candidates = join_candidates(scores, aggregates)
    assert [(c.zone, c.instance_type, c.score, c.max_price) for c in candidates] == [
        ("us-east-1a", "m5.large", 5, 0.1),
        ("us-east-1a", "m5a.large", 5, 0.08),
    ]
    assert candidates[0].avg_price == 0.09
    assert candidates[0].region == "us-east-1"


def test_join_candidates_requires_matching_region():
    scores = [_score("az1", 9, region="us-east-1", zone_name="zone-a")]
    aggregates = [_aggregate("zone-a", region="us-west-2")]
    assert join_candidates(scores, aggregates) == []


def test_join_candidates_empty_inputs():
    assert join_candidates([], [_aggregate("us-east-1a")]) == []
    assert join_candidates([_score("az1", 9, zone_name="us-east-1a")], []) == []


def test_join_candidates_unmapped_scores_never_match():
    assert join_candidates([_score("use1-az1", 9)], [_aggregate("us-east-1a")]) == []
