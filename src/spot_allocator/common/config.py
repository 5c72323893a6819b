"""
Configuration handling for the spot allocation optimizer.
"""

import logging
import os
from typing import Any, Dict, List, Literal, Optional

import yaml

from filecache import FCPath
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    conint,
    constr,
    field_validator,
)

LOGGER = logging.getLogger(__name__)

PRICE_INCREASE_RATE_ENV = "SPOT_PRICE_INCREASE_RATE"


class AWSConfig(BaseModel, validate_assignment=True):
    """Config options for connecting to AWS"""

    model_config = ConfigDict(extra="forbid")

    access_key: Optional[constr(min_length=1)] = None
    secret_key: Optional[constr(min_length=1)] = None
    profile: Optional[constr(min_length=1)] = None
    # Region used for calls that are not tied to a particular region (listing regions,
    # searching instance types)
    region: constr(min_length=1) = "us-east-1"


class AllocationConfig(BaseModel, validate_assignment=True):
    """Config options for the optimizer itself"""

    model_config = ConfigDict(extra="forbid")

    #
    # Candidate selection
    #

    # Placement scores must be strictly greater than this to be considered
    tolerance_score: conint(ge=0, le=10) = 3
    target_capacity: PositiveInt = 1
    max_placement_results: conint(ge=10, le=1000) = 10
    max_instance_types: PositiveInt = 5
    price_lookback_minutes: PositiveInt = 60

    # Only evaluate the regions where the requested image was found
    restrict_to_image_regions: bool = True

    # Explicit list of regions to consider; all regions if None
    regions: Optional[List[constr(min_length=1)]] = None

    #
    # Concurrency and timeouts
    #

    region_concurrency: PositiveInt = 1
    image_concurrency: PositiveInt = 10
    call_timeout: PositiveFloat = 30.0  # Seconds

    #
    # Cache lifetimes in seconds; 0 disables caching
    #

    regions_cache_ttl: NonNegativeInt = 3600
    placement_cache_ttl: NonNegativeInt = 1800
    zones_cache_ttl: NonNegativeInt = 0


class RequestConfig(BaseModel, validate_assignment=True):
    """What to allocate: either explicit instance types or hardware requirements"""

    model_config = ConfigDict(extra="forbid")

    image: Optional[constr(min_length=1)] = None
    instance_types: Optional[List[str]] = None
    cpus: Optional[PositiveInt] = None
    memory: Optional[PositiveFloat] = None  # GiB
    architecture: Literal["x86_64", "arm64", "aarch64"] = "x86_64"
    gpu: Optional[constr(min_length=1)] = None
    product_description: constr(min_length=1) = "Linux/UNIX"
    # Percent added to the highest observed price; zero or negative bids that price
    price_increase_rate: float = 10.0

    @field_validator("instance_types", mode="before")
    @classmethod
    def split_names_str(cls, value: Any) -> Any:
        # Accept "m5.large,m5.xlarge" as well as a list
        if isinstance(value, str):
            return split_names([value])
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return split_names(value)
        return value

    @field_validator("architecture", mode="before")
    @classmethod
    def lower_architecture(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class Config(BaseModel, validate_assignment=True):
    """Main configuration object.

    Must be created and populated like::

        config = load_config(args.config)
        config.overload_from_cli(vars(args))
        config.validate_config()
    """

    model_config = ConfigDict(extra="forbid")

    aws: AWSConfig = Field(default_factory=AWSConfig)
    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)

    def overload_from_cli(self, cli_args: Optional[Dict[str, Any]] = None) -> None:
        """Overload Config object with command line arguments.

        Arguments are matched to fields by name in every section. The AWS home region
        is named "home_region" on the command line.

        Args:
            cli_args: Command line arguments as a dictionary
        """
        if cli_args is None:
            return
        cli_args = dict(cli_args)
        if cli_args.get("home_region") is not None:
            cli_args["region"] = cli_args["home_region"]

        for section_name in ("aws", "allocation", "request"):
            section = getattr(self, section_name)
            for attr_name in type(section).model_fields:
                if attr_name in cli_args and cli_args[attr_name] is not None:
                    val = getattr(section, attr_name)
                    if val is not None and val != cli_args[attr_name]:
                        LOGGER.info(
                            f"Overloading {section_name}.{attr_name}={val} with "
                            f"CLI={cli_args[attr_name]}"
                        )
                    setattr(section, attr_name, cli_args[attr_name])

    def validate_config(self) -> None:
        """Perform final validation of the configuration."""
        if (self.aws.access_key is None) != (self.aws.secret_key is None):
            raise ValueError("access_key and secret_key must be given together")
        if self.aws.profile is not None and self.aws.access_key is not None:
            raise ValueError("profile cannot be combined with access_key and secret_key")
        if self.request.instance_types is not None and not self.request.instance_types:
            raise ValueError("instance_types must not be empty")


def split_names(values: List[str]) -> List[str]:
    """Split name arguments (instance types, regions) that may contain commas and spaces.

    Args:
        values: Strings like "m5.large,m5.xlarge" or "m5.large m4.large"

    Returns:
        Flat list of names
    """
    instance_types = []
    for str1 in values:
        for str2 in str1.split(","):
            for str3 in str2.split(" "):
                if str3.strip():
                    instance_types.append(str3.strip())
    return instance_types


def load_config(config_file: Optional[str] = None) -> Config:
    """Load configuration from a YAML file.

    Args:
        config_file: Path to the configuration file

    Returns:
        Config object containing the configuration

    Raises:
        FileNotFoundError: If the file cannot be found
        ValueError: If the file cannot be loaded or is invalid
    """
    if config_file:
        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        with FCPath(config_file).open(mode="r") as f:
            config_dict = yaml.safe_load(f)

        if not isinstance(config_dict, dict):
            raise ValueError("Configuration file must contain a YAML dictionary")
    else:
        config_dict = {}

    # Let the user leave out whole sections, or write them down with no contents
    for section_name in ("aws", "allocation", "request"):
        if section_name not in config_dict or config_dict[section_name] is None:
            config_dict[section_name] = {}

    request_dict = config_dict["request"]
    if "price_increase_rate" not in request_dict:
        env_rate = os.environ.get(PRICE_INCREASE_RATE_ENV)
        if env_rate:
            try:
                request_dict["price_increase_rate"] = float(env_rate)
            except ValueError:
                raise ValueError(
                    f"{PRICE_INCREASE_RATE_ENV} must be a number, got '{env_rate}'"
                ) from None

    return Config(**config_dict)
