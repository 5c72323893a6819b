"""
AWS EC2 implementation of the InventoryClient interface.
"""

import datetime
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import boto3  # type: ignore
from botocore.config import Config as BotoConfig  # type: ignore

from spot_allocator.allocator.models import PlacementScore, PriceSample
from spot_allocator.common.config import AWSConfig

from .inventory_client import InventoryClient


# Notes:
# - Spot placement scores are reported per availability zone ID (e.g. "use1-az1"),
#   while spot price history is reported per availability zone name (e.g.
#   "us-east-1a"). The mapping between the two differs between accounts, so it must
#   be read from describe_availability_zones in each region.
# - get_spot_placement_scores requires MaxResults of at least 10.


class AWSEC2InventoryClient(InventoryClient):
    """AWS EC2 implementation of the InventoryClient interface."""

    _DEFAULT_MAX_PLACEMENT_RESULTS = 10
    _DEFAULT_MAX_INSTANCE_TYPES = 5

    # Total attempts per API call, first try included. With a call timeout T a call
    # that never answers ends after about _MAX_ATTEMPTS * 2T plus backoff.
    _MAX_ATTEMPTS = 3

    # Map of accepted architecture names to EC2 architecture names
    ARCHITECTURE_MAP = {
        "x86_64": "x86_64",
        "amd64": "x86_64",
        "arm64": "arm64",
        "aarch64": "arm64",
    }

    def __init__(
        self,
        aws_config: AWSConfig,
        *,
        call_timeout: Optional[float] = None,
        max_placement_results: int = _DEFAULT_MAX_PLACEMENT_RESULTS,
        max_instance_types: int = _DEFAULT_MAX_INSTANCE_TYPES,
    ) -> None:
        """Initialize the AWS EC2 inventory client.

        Args:
            aws_config: AWS configuration
            call_timeout: Connect and read timeout in seconds for every API call
            max_placement_results: Maximum number of placement scores per region
            max_instance_types: Maximum number of instance types returned by
                resolve_instance_types
        """
        self._logger = logging.getLogger(__name__)

        self._logger.info("Initializing AWS EC2 inventory client")

        session_args: Dict[str, Any] = {}
        if aws_config.profile is not None:
            session_args["profile_name"] = aws_config.profile
        if aws_config.access_key is not None:
            session_args["aws_access_key_id"] = aws_config.access_key
            session_args["aws_secret_access_key"] = aws_config.secret_key
        self._session = boto3.session.Session(**session_args)

        self._home_region = aws_config.region
        self._max_placement_results = max_placement_results
        self._max_instance_types = max_instance_types

        boto_config_args: Dict[str, Any] = {
            "retries": {"max_attempts": self._MAX_ATTEMPTS, "mode": "standard"}
        }
        if call_timeout is not None:
            boto_config_args["connect_timeout"] = call_timeout
            boto_config_args["read_timeout"] = call_timeout
        self._boto_config = BotoConfig(**boto_config_args)

        # Clients are thread-safe once created, but creating them from a shared
        # session is not
        self._clients: Dict[str, Any] = {}
        self._clients_lock = threading.Lock()

        self._logger.debug(
            f"Initialized AWS EC2 inventory client: home region '{self._home_region}'"
        )

    def _ec2_client(self, region: Optional[str] = None) -> Any:
        """Return the EC2 client for a region, creating it on first use."""
        if region is None:
            region = self._home_region
        with self._clients_lock:
            client = self._clients.get(region)
            if client is None:
                client = self._session.client("ec2", region_name=region, config=self._boto_config)
                self._clients[region] = client
        return client

    def _normalize_architecture(self, architecture: str) -> str:
        return self.ARCHITECTURE_MAP.get(architecture.lower(), "x86_64")

    def list_regions(self) -> List[str]:
        """
        Return the names of all regions enabled for the account.

        Returns:
            Sorted region names
        """
        self._logger.debug("Listing AWS regions")
        response = self._ec2_client().describe_regions()
        regions = sorted(region["RegionName"] for region in response["Regions"])
        self._logger.debug(f"Found {len(regions)} regions: {', '.join(regions)}")
        return regions

    def list_zones(self, region: str) -> List[Tuple[str, str]]:
        """
        Return the availability zones of a region.

        Args:
            region: Region name

        Returns:
            List of (zone ID, zone name) tuples, e.g. ("use1-az1", "us-east-1a")
        """
        self._logger.debug(f"Listing availability zones in region {region}")
        response = self._ec2_client(region).describe_availability_zones()
        return [
            (zone["ZoneId"], zone["ZoneName"])
            for zone in response["AvailabilityZones"]
            if zone.get("ZoneType", "availability-zone") == "availability-zone"
        ]

    def resolve_instance_types(
        self,
        vcpus: int,
        memory_gib: float,
        architecture: str,
        gpu_manufacturer: Optional[str] = None,
    ) -> List[str]:
        """
        Find spot-capable instance types matching hardware requirements.

        Without a GPU manufacturer, instance types must have exactly the requested
        number of default vCPUs and between the requested memory and 2 GiB more. With
        a GPU manufacturer, any GPU instance type of the architecture whose first GPU
        is made by that manufacturer matches.

        Args:
            vcpus: Number of default vCPUs
            memory_gib: Amount of memory in GiB
            architecture: CPU architecture (x86_64, arm64, or aarch64)
            gpu_manufacturer: GPU manufacturer (e.g. "nvidia"); matched case-insensitively

        Returns:
            At most max_instance_types instance type names, sorted by name
        """
        arch = self._normalize_architecture(architecture)
        self._logger.debug(
            f"Finding instance types: vCPUs={vcpus}, Memory={memory_gib}GiB, Arch={arch}, "
            f"GPU={gpu_manufacturer}"
        )

        filters = [
            {"Name": "processor-info.supported-architecture", "Values": [arch]},
            {"Name": "supported-usage-class", "Values": ["spot"]},
        ]
        if gpu_manufacturer is None:
            filters.append({"Name": "vcpu-info.default-vcpus", "Values": [str(vcpus)]})
        min_mib = int(memory_gib * 1024)
        max_mib = min_mib + 2048

        names = []
        paginator = self._ec2_client().get_paginator("describe_instance_types")
        for page in paginator.paginate(Filters=filters):
            for instance_type in page["InstanceTypes"]:
                if gpu_manufacturer is not None:
                    gpus = instance_type.get("GpuInfo", {}).get("Gpus", [])
                    if not gpus or gpus[0].get("Manufacturer", "").lower() != (
                        gpu_manufacturer.lower()
                    ):
                        continue
                else:
                    mem_mib = instance_type["MemoryInfo"]["SizeInMiB"]
                    if not min_mib <= mem_mib <= max_mib:
                        continue
                names.append(instance_type["InstanceType"])

        names = sorted(names)[: self._max_instance_types]
        self._logger.debug(f"Matching instance types: {names}")
        return names

    def get_placement_scores(
        self, region: str, instance_types: List[str], target_capacity: int
    ) -> List[PlacementScore]:
        """
        Return the single-zone spot placement scores of a region.

        Args:
            region: Region to score
            instance_types: Instance types that may satisfy the request
            target_capacity: Number of instances

        Returns:
            Placement scores identified by zone ID
        """
        self._logger.debug(f"Getting placement scores for region {region}")
        response = self._ec2_client(region).get_spot_placement_scores(
            InstanceTypes=list(instance_types),
            TargetCapacity=target_capacity,
            SingleAvailabilityZone=True,
            RegionNames=[region],
            MaxResults=self._max_placement_results,
        )
        scores = []
        for item in response.get("SpotPlacementScores", []):
            zone_id = item.get("AvailabilityZoneId")
            if zone_id is None:
                continue
            scores.append(
                PlacementScore(
                    region=item.get("Region", region), zone_id=zone_id, score=item["Score"]
                )
            )
        self._logger.debug(f"Region {region} has {len(scores)} placement scores")
        return scores

    def get_price_history(
        self,
        region: str,
        instance_types: List[str],
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        product_description: str,
    ) -> List[PriceSample]:
        """
        Return the spot price history of a region.

        Args:
            region: Region to query
            instance_types: Instance types to query
            start_time: Start of the window
            end_time: End of the window
            product_description: Platform, e.g. "Linux/UNIX"

        Returns:
            Price samples for every zone of the region
        """
        self._logger.debug(f"Getting spot pricing for region {region}")
        paginator = self._ec2_client(region).get_paginator("describe_spot_price_history")
        samples = []
        for page in paginator.paginate(
            InstanceTypes=list(instance_types),
            StartTime=start_time,
            EndTime=end_time,
            ProductDescriptions=[product_description],
        ):
            for price in page["SpotPriceHistory"]:
                spot_price = float(price["SpotPrice"])
                if spot_price <= 0:
                    self._logger.debug(f"Ignoring non-positive spot price {price}")
                    continue
                samples.append(
                    PriceSample(
                        zone=price["AvailabilityZone"],
                        instance_type=price["InstanceType"],
                        price=spot_price,
                        timestamp=price["Timestamp"],
                    )
                )
        self._logger.debug(f"Region {region} has {len(samples)} spot price samples")
        return samples

    def image_exists(self, region: str, name_pattern: str, architecture: str) -> bool:
        """
        Return whether an available image matching the name pattern exists in a region.

        Args:
            region: Region to search
            name_pattern: Image name, wildcards allowed (e.g. "amzn2-ami-hvm-*")
            architecture: Image architecture

        Returns:
            True if at least one image matches
        """
        response = self._ec2_client(region).describe_images(
            Filters=[
                {"Name": "name", "Values": [name_pattern]},
                {"Name": "architecture", "Values": [self._normalize_architecture(architecture)]},
                {"Name": "state", "Values": ["available"]},
            ]
        )
        return len(response["Images"]) > 0

    def offered_instance_types(self, region: str, instance_types: List[str]) -> List[str]:
        """
        Return the instance types offered in a region.

        Args:
            region: Region to check
            instance_types: Instance types to check

        Returns:
            The offered instance types in the order given
        """
        self._logger.debug(f"Filtering instance types available in region {region}")
        paginator = self._ec2_client(region).get_paginator("describe_instance_type_offerings")
        offered = set()
        for page in paginator.paginate(
            LocationType="region",
            Filters=[
                {"Name": "location", "Values": [region]},
                {"Name": "instance-type", "Values": list(instance_types)},
            ],
        ):
            for offering in page["InstanceTypeOfferings"]:
                offered.add(offering["InstanceType"])
        return [instance_type for instance_type in instance_types if instance_type in offered]
