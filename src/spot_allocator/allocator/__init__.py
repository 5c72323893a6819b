"""
Spot allocation types and errors.

The optimizer itself lives in spot_allocator.allocator.optimizer.
"""

from .exceptions import (
    AllocationCancelledError,
    ImageNotFoundError,
    InvalidInputError,
    NoCandidatesError,
    SpotAllocationError,
)
from .models import AllocationResult, Candidate, PlacementScore, PriceAggregate, PriceSample

__all__ = [
    "AllocationCancelledError",
    "AllocationResult",
    "Candidate",
    "ImageNotFoundError",
    "InvalidInputError",
    "NoCandidatesError",
    "PlacementScore",
    "PriceAggregate",
    "PriceSample",
    "SpotAllocationError",
]
