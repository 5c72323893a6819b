from abc import ABC, abstractmethod
import datetime
from typing import List, Optional, Tuple

from spot_allocator.allocator.models import PlacementScore, PriceSample


class InventoryClient(ABC):
    """Read-only view of a cloud provider's regions, capacity signals, and prices.

    All methods are blocking; the optimizer runs them in worker threads. No method
    creates or modifies cloud resources.
    """

    @abstractmethod
    def list_regions(self) -> List[str]:
        """Return the names of all regions enabled for the account."""
        pass

    @abstractmethod
    def list_zones(self, region: str) -> List[Tuple[str, str]]:
        """Return the (zone ID, zone name) pairs of a region's availability zones."""
        pass

    @abstractmethod
    def resolve_instance_types(
        self,
        vcpus: int,
        memory_gib: float,
        architecture: str,
        gpu_manufacturer: Optional[str] = None,
    ) -> List[str]:
        """Find instance types matching hardware requirements.

        Args:
            vcpus: Number of default vCPUs
            memory_gib: Amount of memory in GiB
            architecture: CPU architecture (x86_64, arm64, or aarch64)
            gpu_manufacturer: If given, only GPU instance types from this manufacturer

        Returns:
            Instance type names
        """
        pass

    @abstractmethod
    def get_placement_scores(
        self, region: str, instance_types: List[str], target_capacity: int
    ) -> List[PlacementScore]:
        """Return the per-zone spot placement scores of a region.

        Args:
            region: Region to score
            instance_types: Instance types that may satisfy the request
            target_capacity: Number of instances to score the placement for

        Returns:
            Placement scores identified by zone ID
        """
        pass

    @abstractmethod
    def get_price_history(
        self,
        region: str,
        instance_types: List[str],
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        product_description: str,
    ) -> List[PriceSample]:
        """Return the spot price history of a region within a time window.

        Args:
            region: Region to query
            instance_types: Instance types to query
            start_time: Start of the window
            end_time: End of the window
            product_description: Platform, e.g. "Linux/UNIX"

        Returns:
            Price samples for every zone of the region
        """
        pass

    @abstractmethod
    def image_exists(self, region: str, name_pattern: str, architecture: str) -> bool:
        """Return whether at least one available image matches in a region."""
        pass

    @abstractmethod
    def offered_instance_types(self, region: str, instance_types: List[str]) -> List[str]:
        """Return the subset of instance types offered in a region, in the given order."""
        pass
