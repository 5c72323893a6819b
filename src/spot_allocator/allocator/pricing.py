"""
Reduce spot price history to per-zone, per-instance-type statistics.
"""

from typing import Dict, Iterable, List, Tuple

from .models import PriceAggregate, PriceSample


def aggregate_prices(region: str, samples: Iterable[PriceSample]) -> List[PriceAggregate]:
    """Group price samples by (zone, instance type) and summarize each group.

    Args:
        region: Region the samples were fetched from
        samples: Price history samples

    Returns:
        One PriceAggregate per (zone, instance type) group that has at least one
        sample, in the order the groups were first seen
    """
    groups: Dict[Tuple[str, str], List[float]] = {}
    for sample in samples:
        groups.setdefault((sample.zone, sample.instance_type), []).append(sample.price)

    aggregates = []
    for (zone, instance_type), prices in groups.items():
        if not prices:
            continue
        aggregates.append(
            PriceAggregate(
                region=region,
                zone=zone,
                instance_type=instance_type,
                avg_price=sum(prices) / len(prices),
                min_price=min(prices),
                max_price=max(prices),
                count=len(prices),
            )
        )
    return aggregates
