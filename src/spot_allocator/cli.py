"""
Command-line interface for the spot allocation optimizer.
"""

import argparse
import asyncio
import json
import logging
import sys

import pydantic

from spot_allocator.allocator.exceptions import SpotAllocationError
from spot_allocator.allocator.optimizer import SpotAllocationOptimizer
from spot_allocator.common.config import Config, load_config, split_names
from spot_allocator.common.logging_config import configure_logging
from spot_allocator.inventory import create_inventory_client


# Use custom logging configuration
configure_logging(level=logging.WARNING)
logger = logging.getLogger(__name__)


def create_optimizer(config: Config) -> SpotAllocationOptimizer:
    """Create an optimizer talking to the configured cloud account."""
    try:
        client = create_inventory_client(config)
    except Exception as e:
        logger.fatal(f"Error connecting to AWS: {e}", exc_info=True)
        sys.exit(1)
    return SpotAllocationOptimizer(client, config.allocation)


async def find_allocation_cmd(args: argparse.Namespace, config: Config) -> None:
    """
    Find the best spot allocation and print it as JSON.

    Parameters:
        args: Command-line arguments
        config: Configuration
    """
    optimizer = create_optimizer(config)
    try:
        result = await optimizer.find_allocation(config.request)
    except SpotAllocationError as e:
        logger.fatal(f"Error finding spot allocation: {e}")
        sys.exit(1)
    except Exception as e:
        logger.fatal(f"Error finding spot allocation: {e}", exc_info=True)
        sys.exit(1)
    finally:
        optimizer.close()

    print(json.dumps(result.to_output_dict(), indent=2))


async def check_image_cmd(args: argparse.Namespace, config: Config) -> None:
    """
    Print the regions in which an image is available.

    Parameters:
        args: Command-line arguments
        config: Configuration
    """
    optimizer = create_optimizer(config)
    try:
        regions = await optimizer.list_regions()
        found = await optimizer.find_image_regions(
            regions, config.request.image, config.request.architecture
        )
    except SpotAllocationError as e:
        logger.fatal(f"Error checking image: {e}")
        sys.exit(1)
    except Exception as e:
        logger.fatal(f"Error checking image: {e}", exc_info=True)
        sys.exit(1)
    finally:
        optimizer.close()

    for region in found:
        print(region)


async def list_regions_cmd(args: argparse.Namespace, config: Config) -> None:
    """
    Print the regions that would be considered for an allocation.

    Parameters:
        args: Command-line arguments
        config: Configuration
    """
    optimizer = create_optimizer(config)
    try:
        regions = await optimizer.list_regions()
    except Exception as e:
        logger.fatal(f"Error listing regions: {e}", exc_info=True)
        sys.exit(1)
    finally:
        optimizer.close()

    for region in regions:
        print(region)


# Helper functions for argument parsing


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to all command parsers."""
    parser.add_argument("--config", help="Path to configuration file")

    # From AWSConfig class
    parser.add_argument("--access-key", help="AWS access key")
    parser.add_argument("--secret-key", help="AWS secret key")
    parser.add_argument("--profile", help="AWS credentials profile")
    parser.add_argument(
        "--home-region", help="Region used for calls not tied to a region (default us-east-1)"
    )

    # From AllocationConfig class
    parser.add_argument(
        "--regions",
        nargs="+",
        help="Only consider these regions (space or comma separated)",
    )
    parser.add_argument(
        "--timeout",
        dest="call_timeout",
        type=float,
        help="Maximum number of seconds for a single cloud API call",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Increase verbosity level (-v for info, -vv for debug)",
    )


def add_architecture_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--architecture",
        "-a",
        type=str.lower,
        choices=["x86_64", "arm64", "aarch64"],
        help="CPU architecture (default x86_64)",
    )


def add_find_allocation_args(parser: argparse.ArgumentParser) -> None:
    """Add find allocation specific arguments."""
    parser.add_argument(
        "image",
        nargs="?",
        help="Image name pattern that must be available (e.g. 'amzn2-ami-hvm-*')",
    )
    parser.add_argument("--cpus", "-c", type=int, help="Number of vCPUs")
    parser.add_argument("--memory", "-m", type=float, help="Amount of memory in GiB")
    add_architecture_arg(parser)
    parser.add_argument("--gpu", "-g", help="GPU manufacturer (e.g. nvidia)")
    parser.add_argument(
        "--instance-types",
        "-i",
        nargs="+",
        help="Instance types to consider (space or comma separated); overrides "
        "--cpus and --memory",
    )
    parser.add_argument(
        "--price-increase-rate",
        "-r",
        type=float,
        help="Percentage added to the maximum observed price for the bid (default 10)",
    )
    parser.add_argument(
        "--product-description",
        "-p",
        help="Platform of the price history (default 'Linux/UNIX')",
    )
    parser.add_argument(
        "--tolerance",
        dest="tolerance_score",
        type=int,
        help="Placement scores must be greater than this (0-10, default 3)",
    )
    parser.add_argument(
        "--region-concurrency",
        type=int,
        help="Maximum number of regions evaluated at the same time (default 1)",
    )
    parser.add_argument(
        "--image-concurrency",
        type=int,
        help="Maximum number of regions checked for the image at the same time (default 10)",
    )


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Spot Instance Allocation Optimizer")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.required = True

    # --- Find allocation command ---

    find_allocation_parser = subparsers.add_parser(
        "find_allocation",
        help="Find the cheapest reliable region, zone, and instance type for a spot instance",
    )
    add_common_args(find_allocation_parser)
    add_find_allocation_args(find_allocation_parser)
    find_allocation_parser.set_defaults(func=find_allocation_cmd)

    # --- Check image command ---

    check_image_parser = subparsers.add_parser(
        "check_image", help="List the regions in which an image is available"
    )
    add_common_args(check_image_parser)
    check_image_parser.add_argument("image", help="Image name pattern")
    add_architecture_arg(check_image_parser)
    check_image_parser.set_defaults(func=check_image_cmd)

    # --- List regions command ---

    list_regions_parser = subparsers.add_parser(
        "list_regions", help="List the regions considered for an allocation"
    )
    add_common_args(list_regions_parser)
    list_regions_parser.set_defaults(func=list_regions_cmd)

    # -------------- #
    # MAIN EXECUTION #
    # -------------- #

    # Parse arguments
    args = parser.parse_args()

    if getattr(args, "instance_types", None):
        args.instance_types = split_names(args.instance_types)
    if getattr(args, "regions", None):
        args.regions = split_names(args.regions)

    # Set up logging level based on verbosity
    if args.verbose == 1:
        logging.getLogger().setLevel(logging.INFO)
    elif args.verbose > 1:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load configuration
    logger.info(f"Loading configuration from {args.config}")
    try:
        config = load_config(args.config)
        config.overload_from_cli(vars(args))
        config.validate_config()
    except (pydantic.ValidationError, ValueError, FileNotFoundError) as e:
        logger.fatal(f"Invalid configuration: {e}")
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Run the appropriate command
    asyncio.run(args.func(args, config))


if __name__ == "__main__":
    main()
