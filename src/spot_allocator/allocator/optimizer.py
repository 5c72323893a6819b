"""
Spot allocation optimizer core module.
"""

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import List, Optional, Tuple

from spot_allocator.common import cache as cache_kinds
from spot_allocator.common.cache import TTLCache
from spot_allocator.common.concurrency import fan_out, run_blocking
from spot_allocator.common.config import AllocationConfig, RequestConfig
from spot_allocator.inventory.inventory_client import InventoryClient

from .exceptions import (
    AllocationCancelledError,
    ImageNotFoundError,
    InvalidInputError,
    NoCandidatesError,
)
from .models import AllocationResult, Candidate
from .prober import ImageProber
from .region_evaluator import RegionEvaluator
from .selector import build_allocation_result, select_best_candidate


class SpotAllocationOptimizer:
    """
    Find the cheapest reliable (region, zone, instance type) for a spot instance.

    The optimizer checks that the requested image exists somewhere, evaluates every
    region in parallel, pools their candidates, and picks the one with the lowest
    maximum price in the lookback window.

    All remote calls run in a thread pool owned by the optimizer unless one is
    given. Call close() when done so that calls abandoned after a timeout do not
    hold up the shutdown of the event loop.
    """

    def __init__(
        self,
        client: InventoryClient,
        config: Optional[AllocationConfig] = None,
        cache: Optional[TTLCache] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        """
        Initialize the optimizer.

        Args:
            client: Inventory client for all remote calls
            config: Optimizer configuration; defaults if not specified
            cache: Cache shared between runs; a new one if not specified
            executor: Thread pool for the remote calls; a new one owned by the
                optimizer if not specified
        """
        self._logger = logging.getLogger(__name__)
        self._client = client
        self._config = config if config is not None else AllocationConfig()
        self._cache = cache if cache is not None else TTLCache()

        self._owns_executor = executor is None
        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=max(self._config.region_concurrency, self._config.image_concurrency),
                thread_name_prefix="spot_allocator",
            )
        self._executor = executor

        self._prober = ImageProber(
            client,
            concurrency=self._config.image_concurrency,
            timeout=self._config.call_timeout,
            executor=self._executor,
        )
        self._evaluator = RegionEvaluator(client, self._cache, self._config, self._executor)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def close(self) -> None:
        """Shut down the optimizer's own thread pool without waiting for running calls."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    async def find_allocation(
        self, request: RequestConfig, cancel_event: Optional[asyncio.Event] = None
    ) -> AllocationResult:
        """
        Run the whole optimization.

        Args:
            request: What to allocate
            cancel_event: If set during the run, regions not yet started are skipped

        Returns:
            The selected allocation. If the run is cancelled during region evaluation
            after some regions produced candidates, the best of those is returned.

        Raises:
            InvalidInputError: If the request names no instance types and no complete
                set of requirements, or the requirements match no instance types
            ImageNotFoundError: If the requested image exists in none of the regions
            NoCandidatesError: If no region produced a candidate
            AllocationCancelledError: If the run was cancelled before the image check
                finished, or before any region produced a candidate
        """
        self._validate_request(request)

        self._logger.info("Starting global spot instance optimization")

        regions = await self.list_regions()

        if request.image:
            found = await self.find_image_regions(
                regions, request.image, request.architecture, cancel_event
            )
            if self._config.restrict_to_image_regions:
                regions = [region for region in regions if region in found]

        instance_types = await self.resolve_instance_types(request)

        evaluated, candidates = await self.evaluate_regions(
            regions, instance_types, request.product_description, cancel_event
        )
        if not candidates:
            if len(evaluated) < len(regions):
                raise AllocationCancelledError("region evaluation", evaluated)
            raise NoCandidatesError(evaluated)

        best = select_best_candidate(candidates)
        offered = await self._offered_instance_types(best, instance_types)
        result = build_allocation_result(best, request.price_increase_rate, offered)

        self._logger.info("Found optimal spot allocation:")
        self._logger.info(f"  Region: {result.region}")
        self._logger.info(f"  Availability Zone: {result.availability_zone}")
        self._logger.info(f"  Instance Type: {result.instance_type}")
        self._logger.info(f"  Average Price: ${result.avg_price:.4f}/hour")
        self._logger.info(f"  Max Price: ${result.max_price:.4f}/hour")
        self._logger.info(f"  Placement Score: {result.score}/10")
        self._logger.info(
            f"  Recommended Bid: ${result.bid_price:.4f}/hour "
            f"(+{max(request.price_increase_rate, 0):g}%)"
        )
        return result

    async def list_regions(self) -> List[str]:
        """Return the regions to consider, from the cache when fresh enough."""
        regions = await run_blocking(
            self._cache.get_or_fetch,
            cache_kinds.REGIONS,
            "all",
            self._config.regions_cache_ttl,
            self._client.list_regions,
            timeout=self._config.call_timeout,
            executor=self._executor,
        )
        if self._config.regions is not None:
            unknown = [region for region in self._config.regions if region not in regions]
            if unknown:
                self._logger.warning(f"Ignoring unknown regions: {', '.join(unknown)}")
            regions = [region for region in regions if region in self._config.regions]
        return list(regions)

    async def find_image_regions(
        self,
        regions: List[str],
        name_pattern: str,
        architecture: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[str]:
        """
        Return the regions in which an image is available.

        Raises:
            ImageNotFoundError: If every region was checked and none has the image
            AllocationCancelledError: If the check was cancelled before every region
                was checked
        """
        checked = await self._prober.check_regions(
            regions, name_pattern, architecture, cancel_event
        )
        if len(checked) < len(regions):
            raise AllocationCancelledError("image check", checked)
        found = sorted(region for region, exists in checked.items() if exists)
        if not found:
            raise ImageNotFoundError(name_pattern, architecture, checked)
        return found

    async def resolve_instance_types(self, request: RequestConfig) -> List[str]:
        """
        Return the instance types to analyze.

        Raises:
            InvalidInputError: If the requirements match no instance types
        """
        self._validate_request(request)
        if request.instance_types:
            self._logger.info(f"Using provided instance types: {request.instance_types}")
            return list(request.instance_types)

        self._logger.info(
            f"Auto-selecting instance types for: {request.cpus} vCPUs, {request.memory:g}GiB "
            f"RAM, {request.architecture} architecture"
        )
        instance_types = await run_blocking(
            self._client.resolve_instance_types,
            request.cpus,
            request.memory,
            request.architecture,
            request.gpu,
            timeout=self._config.call_timeout,
            executor=self._executor,
        )
        if not instance_types:
            raise InvalidInputError("No instance types found matching the requirements")
        self._logger.info(f"Selected instance types: {instance_types}")
        return instance_types

    async def evaluate_regions(
        self,
        regions: List[str],
        instance_types: List[str],
        product_description: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Tuple[List[str], List[Candidate]]:
        """
        Evaluate regions in parallel and pool their candidates.

        Returns:
            The regions that were evaluated (fewer than `regions` if cancelled) and
            all candidates, grouped by region in the order of `regions`
        """
        self._logger.info(
            f"Analyzing {len(regions)} regions for optimal spot allocation "
            f"(concurrency {self._config.region_concurrency})"
        )

        async def evaluate_region(region: str) -> List[Candidate]:
            return await self._evaluator.evaluate(region, instance_types, product_description)

        results = await fan_out(
            regions, evaluate_region, self._config.region_concurrency, cancel_event
        )
        evaluated = [region for region, _ in results]
        if len(evaluated) < len(regions):
            self._logger.warning(
                f"Cancelled: evaluated {len(evaluated)} of {len(regions)} regions"
            )

        candidates = [
            candidate for _, region_candidates in results for candidate in region_candidates
        ]
        self._logger.info(f"Collected {len(candidates)} candidates")
        return evaluated, candidates

    async def _offered_instance_types(
        self, best: Candidate, instance_types: List[str]
    ) -> List[str]:
        try:
            offered = await run_blocking(
                self._client.offered_instance_types,
                best.region,
                instance_types,
                timeout=self._config.call_timeout,
                executor=self._executor,
            )
        except Exception as e:
            self._logger.warning(
                f"Could not list instance types offered in region {best.region}: {e}"
            )
            return [best.instance_type]
        if not offered:
            return [best.instance_type]
        return offered

    @staticmethod
    def _validate_request(request: RequestConfig) -> None:
        if request.instance_types:
            return
        if request.cpus is None or request.memory is None:
            raise InvalidInputError(
                "Either specify instance types or provide both CPU and memory requirements"
            )
