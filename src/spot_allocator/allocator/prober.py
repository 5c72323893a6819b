"""
Parallel check of image availability across regions.
"""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Dict, Iterable, Optional, Set

from spot_allocator.common.concurrency import fan_out, run_blocking
from spot_allocator.inventory.inventory_client import InventoryClient


class ImageProber:
    """Find the regions in which an image is available."""

    _DEFAULT_CONCURRENCY = 10

    def __init__(
        self,
        client: InventoryClient,
        *,
        concurrency: int = _DEFAULT_CONCURRENCY,
        timeout: Optional[float] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        """
        Args:
            client: Inventory client used for the image lookups
            concurrency: Maximum number of regions probed at the same time
            timeout: Maximum number of seconds for a single region's lookup
            executor: Thread pool for the lookups; the event loop's default if None
        """
        self._logger = logging.getLogger(__name__)
        self._client = client
        self._concurrency = concurrency
        self._timeout = timeout
        self._executor = executor

    async def check_regions(
        self,
        regions: Iterable[str],
        name_pattern: str,
        architecture: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, bool]:
        """
        Check every region for an available image matching the name pattern.

        A region whose lookup fails or times out counts as not having the image.

        Args:
            regions: Regions to check
            name_pattern: Image name pattern
            architecture: Image architecture
            cancel_event: If set, regions not yet checked are skipped

        Returns:
            Whether the image was found, for every region that was checked, in the
            order of `regions`. Regions skipped because of cancellation are absent.
        """
        region_list = list(regions)
        self._logger.info(
            f"Checking availability of image '{name_pattern}' ({architecture}) in "
            f"{len(region_list)} regions"
        )

        async def check_region(region: str) -> bool:
            try:
                return await run_blocking(
                    self._client.image_exists,
                    region,
                    name_pattern,
                    architecture,
                    timeout=self._timeout,
                    executor=self._executor,
                )
            except asyncio.TimeoutError:
                self._logger.warning(f"Timed out checking image availability in region {region}")
            except Exception as e:
                self._logger.warning(f"Error checking image availability in region {region}: {e}")
            return False

        results = await fan_out(region_list, check_region, self._concurrency, cancel_event)
        if len(results) < len(region_list):
            self._logger.warning(
                f"Cancelled: checked {len(results)} of {len(region_list)} regions for image "
                f"'{name_pattern}'"
            )
        checked = {region: bool(exists) for region, exists in results}

        found = sorted(region for region, exists in checked.items() if exists)
        if found:
            self._logger.info(
                f"Image '{name_pattern}' found in {len(found)} region(s): {', '.join(found)}"
            )
        else:
            self._logger.error(
                f"Image '{name_pattern}' ({architecture}) is not available in any of the "
                f"{len(checked)} region(s) checked"
            )
        return checked

    async def probe(
        self,
        regions: Iterable[str],
        name_pattern: str,
        architecture: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Set[str]:
        """
        Return the regions in which an available image matches the name pattern.

        See check_regions for the arguments.
        """
        checked = await self.check_regions(regions, name_pattern, architecture, cancel_event)
        return {region for region, exists in checked.items() if exists}
