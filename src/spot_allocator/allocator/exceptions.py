"""Errors reported by the spot allocation optimizer."""

from typing import Iterable, List, Optional


class SpotAllocationError(Exception):
    """Base class for errors that end an allocation run."""


class InvalidInputError(SpotAllocationError):
    """The request does not say which instance types to consider."""


class ImageNotFoundError(SpotAllocationError):
    """The requested image is not available in any of the regions checked.

    Attributes:
        name_pattern: The image name pattern that was searched for.
        architecture: The image architecture that was searched for.
        regions_checked: The regions that were checked.
    """

    def __init__(self, name_pattern: str, architecture: str, regions_checked: Iterable[str]):
        self.name_pattern = name_pattern
        self.architecture = architecture
        self.regions_checked: List[str] = list(regions_checked)
        super().__init__(
            f"Image '{name_pattern}' ({architecture}) is not available in any of the "
            f"{len(self.regions_checked)} region(s) checked"
        )


class NoCandidatesError(SpotAllocationError):
    """No zone in any region passed the placement score threshold and had prices.

    Attributes:
        regions_evaluated: The regions whose candidates were considered.
    """

    def __init__(self, regions_evaluated: Optional[Iterable[str]] = None):
        self.regions_evaluated: List[str] = list(regions_evaluated or [])
        super().__init__(
            f"No suitable spot options found across {len(self.regions_evaluated)} region(s)"
        )


class AllocationCancelledError(SpotAllocationError):
    """The run was cancelled before it could reach a result.

    Attributes:
        regions_completed: The regions whose check or evaluation finished before the
            cancellation.
    """

    def __init__(self, stage: str, regions_completed: Optional[Iterable[str]] = None):
        self.stage = stage
        self.regions_completed: List[str] = list(regions_completed or [])
        super().__init__(
            f"Cancelled during {stage} after {len(self.regions_completed)} region(s)"
        )
