"""
Placement score filtering and the join of placement scores with price statistics.
"""

import logging
from typing import Iterable, List, Tuple

from .models import Candidate, PlacementScore, PriceAggregate

LOGGER = logging.getLogger(__name__)


def filter_placement_scores(
    scores: Iterable[PlacementScore], tolerance: int
) -> List[PlacementScore]:
    """Keep the placement scores strictly above the tolerance.

    Args:
        scores: Placement scores to filter
        tolerance: Threshold; a score equal to it is rejected

    Returns:
        The retained scores in their original order
    """
    return [score for score in scores if score.score > tolerance]


def map_zone_names(
    scores: Iterable[PlacementScore], zones: Iterable[Tuple[str, str]]
) -> List[PlacementScore]:
    """Attach zone names to placement scores using a region's zone directory.

    Args:
        scores: Placement scores identified by zone ID
        zones: (zone ID, zone name) pairs for the region

    Returns:
        Copies of the scores with zone_name set. Scores whose zone ID is not in the
        directory are dropped.
    """
    zone_names = dict(zones)
    mapped = []
    for score in scores:
        zone_name = zone_names.get(score.zone_id)
        if zone_name is None:
            LOGGER.debug(f"Zone ID {score.zone_id} not found in region {score.region}; ignoring")
            continue
        mapped.append(score.model_copy(update={"zone_name": zone_name}))
    return mapped


def join_candidates(
    scores: Iterable[PlacementScore], aggregates: Iterable[PriceAggregate]
) -> List[Candidate]:
    """Inner join placement scores and price statistics on zone name.

    Both inputs must come from the same region; pairs from different regions never
    match. Zone names are compared exactly.

    Args:
        scores: Placement scores with zone_name set
        aggregates: Price statistics

    Returns:
        One Candidate per matching (score, aggregate) pair
    """
    score_list = list(scores)
    candidates = []
    for aggregate in aggregates:
        for score in score_list:
            if score.region != aggregate.region or score.zone_name != aggregate.zone:
                continue
            candidates.append(
                Candidate(
                    region=aggregate.region,
                    zone=aggregate.zone,
                    instance_type=aggregate.instance_type,
                    avg_price=aggregate.avg_price,
                    max_price=aggregate.max_price,
                    score=score.score,
                )
            )
    return candidates
