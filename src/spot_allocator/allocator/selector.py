"""
Global selection of the best candidate and the safe bid price.
"""

import logging
from typing import Iterable, List, Tuple

from .exceptions import NoCandidatesError
from .models import AllocationResult, Candidate

LOGGER = logging.getLogger(__name__)

# All prices are reported with this many decimal places
PRICE_DECIMALS = 6


def candidate_sort_key(candidate: Candidate) -> Tuple[float, float, str, str, str]:
    """Cheapest maximum price first; ties go to the cheaper average price, then to
    the alphabetically first region, zone, and instance type."""
    return (
        candidate.max_price,
        candidate.avg_price,
        candidate.region,
        candidate.zone,
        candidate.instance_type,
    )


def select_best_candidate(candidates: Iterable[Candidate]) -> Candidate:
    """
    Select the candidate with the lowest maximum price.

    Args:
        candidates: The pooled candidates of all regions

    Returns:
        The selected candidate

    Raises:
        NoCandidatesError: If there are no candidates
    """
    ranked = sorted(candidates, key=candidate_sort_key)
    if not ranked:
        raise NoCandidatesError()

    LOGGER.debug("Candidates sorted by max price (cheapest first):")
    for i, candidate in enumerate(ranked):
        LOGGER.debug(
            f"  [{i+1:3d}] {candidate.instance_type:20s} in {candidate.zone:20s}: "
            f"max ${candidate.max_price:10.6f}/hour, avg ${candidate.avg_price:10.6f}/hour, "
            f"score {candidate.score}"
        )

    return ranked[0]


def calculate_safe_bid(max_price: float, increase_rate: float) -> float:
    """
    Inflate a price by a percentage buffer.

    Args:
        max_price: Highest observed price in USD/hour
        increase_rate: Buffer in percent; zero or negative means no buffer

    Returns:
        The bid price in USD/hour
    """
    if increase_rate > 0:
        return round(max_price * (1 + increase_rate / 100), PRICE_DECIMALS)
    return max_price


def build_allocation_result(
    candidate: Candidate, increase_rate: float, offered_instance_types: List[str]
) -> AllocationResult:
    """
    Turn the selected candidate into the final result.

    Args:
        candidate: The selected candidate
        increase_rate: Bid buffer in percent
        offered_instance_types: Requested instance types offered in the candidate's region

    Returns:
        The allocation result
    """
    return AllocationResult(
        region=candidate.region,
        availability_zone=candidate.zone,
        instance_type=candidate.instance_type,
        bid_price=calculate_safe_bid(candidate.max_price, increase_rate),
        avg_price=candidate.avg_price,
        max_price=candidate.max_price,
        score=candidate.score,
        instance_types=offered_instance_types,
    )
