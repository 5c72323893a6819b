"""
Cloud inventory client module and factory function
"""

from .inventory_client import InventoryClient
from spot_allocator.common.config import Config


def create_inventory_client(config: Config) -> InventoryClient:
    """
    Create the InventoryClient for the configured cloud account.

    Args:
        config: Configuration

    Returns:
        An InventoryClient implementation
    """
    # We import this here to avoid requiring boto3 for the pure parts of the package
    from .aws import AWSEC2InventoryClient

    return AWSEC2InventoryClient(
        config.aws,
        call_timeout=config.allocation.call_timeout,
        max_placement_results=config.allocation.max_placement_results,
        max_instance_types=config.allocation.max_instance_types,
    )


__all__ = ["InventoryClient", "create_inventory_client"]
