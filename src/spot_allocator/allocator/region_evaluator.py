"""
Evaluation of a single region: placement scores, price history, and their join.
"""

import asyncio
import logging
from concurrent.futures import Executor
from typing import List, Optional

from spot_allocator.common import cache as cache_kinds
from spot_allocator.common.cache import TTLCache
from spot_allocator.common.concurrency import run_blocking
from spot_allocator.common.config import AllocationConfig
from spot_allocator.common.time_utils import lookback_window
from spot_allocator.inventory.inventory_client import InventoryClient

from .models import Candidate
from .placement import filter_placement_scores, join_candidates, map_zone_names
from .pricing import aggregate_prices


class RegionEvaluator:
    """Produce the priced and scored candidates of one region.

    Every region is its own failure domain: any error while evaluating a region is
    logged and the region contributes no candidates.
    """

    def __init__(
        self,
        client: InventoryClient,
        cache: TTLCache,
        config: AllocationConfig,
        executor: Optional[Executor] = None,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._client = client
        self._cache = cache
        self._config = config
        self._executor = executor

    async def evaluate(
        self, region: str, instance_types: List[str], product_description: str
    ) -> List[Candidate]:
        """
        Evaluate one region.

        Args:
            region: Region to evaluate
            instance_types: Instance types to consider
            product_description: Platform for the price history, e.g. "Linux/UNIX"

        Returns:
            The region's candidates; empty if none qualify or the evaluation failed
        """
        try:
            return await self._evaluate(region, instance_types, product_description)
        except asyncio.TimeoutError:
            self._logger.warning(f"Timed out evaluating region {region}; skipping it")
        except Exception as e:
            self._logger.warning(f"Error evaluating region {region}; skipping it: {e}")
        return []

    async def _evaluate(
        self, region: str, instance_types: List[str], product_description: str
    ) -> List[Candidate]:
        config = self._config
        timeout = config.call_timeout
        self._logger.debug(f"Processing region: {region}")

        # Placement scores depend on the instance types and capacity asked about, so
        # those are part of the cache scope
        scope = f"{region}|{','.join(sorted(instance_types))}|{config.target_capacity}"
        all_scores = await run_blocking(
            self._cache.get_or_fetch,
            cache_kinds.PLACEMENT_SCORES,
            scope,
            config.placement_cache_ttl,
            lambda: self._client.get_placement_scores(
                region, instance_types, config.target_capacity
            ),
            timeout=timeout,
            executor=self._executor,
        )
        scores = filter_placement_scores(all_scores, config.tolerance_score)
        if not scores:
            self._logger.debug(f"No suitable placement scores for region: {region}")
            return []

        zones = await run_blocking(
            self._cache.get_or_fetch,
            cache_kinds.ZONES,
            region,
            config.zones_cache_ttl,
            lambda: self._client.list_zones(region),
            timeout=timeout,
            executor=self._executor,
        )
        scores = map_zone_names(scores, zones)
        if not scores:
            self._logger.debug(f"No placement scores match a known zone in region: {region}")
            return []

        start_time, end_time = lookback_window(config.price_lookback_minutes)
        samples = await run_blocking(
            self._client.get_price_history,
            region,
            instance_types,
            start_time,
            end_time,
            product_description,
            timeout=timeout,
            executor=self._executor,
        )
        aggregates = aggregate_prices(region, samples)

        candidates = join_candidates(scores, aggregates)
        self._logger.debug(
            f"Completed processing region {region}: {len(scores)} placement scores, "
            f"{len(aggregates)} price groups, {len(candidates)} candidates"
        )
        return candidates
