import asyncio
import logging
import time

import pytest

from spot_allocator.allocator.prober import ImageProber

REGIONS = ["eu-west-1", "us-east-1", "us-west-2"]


@pytest.mark.asyncio
async def test_probe_finds_regions(inventory_client):
    inventory_client.image_exists.side_effect = lambda region, name, arch: region != "us-east-1"
    prober = ImageProber(inventory_client, concurrency=2)

    found = await prober.probe(REGIONS, "amzn2-ami-hvm-*", "x86_64")

    assert found == {"eu-west-1", "us-west-2"}
    assert inventory_client.image_exists.call_count == 3
    inventory_client.image_exists.assert_any_call("us-east-1", "amzn2-ami-hvm-*", "x86_64")


@pytest.mark.asyncio
async def test_probe_failure_counts_as_not_found(inventory_client, caplog):
    def image_exists(region, name, arch):
        if region == "us-west-2":
            raise RuntimeError("AuthFailure")
        return region == "eu-west-1"

    inventory_client.image_exists.side_effect = image_exists
    prober = ImageProber(inventory_client)

    with caplog.at_level(logging.WARNING):
        found = await prober.probe(REGIONS, "img", "arm64")

    assert found == {"eu-west-1"}
    assert "us-west-2" in caplog.text
    assert "AuthFailure" in caplog.text


@pytest.mark.asyncio
async def test_probe_timeout_counts_as_not_found(inventory_client):
    def image_exists(region, name, arch):
        if region == "us-east-1":
            time.sleep(0.5)
        return True

    inventory_client.image_exists.side_effect = image_exists
    prober = ImageProber(inventory_client, concurrency=3, timeout=0.05)

    assert await prober.probe(REGIONS, "img", "x86_64") == {"eu-west-1", "us-west-2"}


@pytest.mark.asyncio
async def test_probe_not_found_anywhere(inventory_client, caplog):
    inventory_client.image_exists.return_value = False
    prober = ImageProber(inventory_client)

    with caplog.at_level(logging.ERROR):
        assert await prober.probe(REGIONS, "img", "x86_64") == set()
    assert "not available in any of the 3 region(s) checked" in caplog.text


@pytest.mark.asyncio
async def test_probe_no_regions(inventory_client):
    assert await ImageProber(inventory_client).probe([], "img", "x86_64") == set()
    inventory_client.image_exists.assert_not_called()


@pytest.mark.asyncio
async def test_probe_cancelled(inventory_client):
    cancel_event = asyncio.Event()
    cancel_event.set()

    found = await ImageProber(inventory_client).probe(REGIONS, "img", "x86_64", cancel_event)

    assert found == set()
    inventory_client.image_exists.assert_not_called()


@pytest.mark.asyncio
async def test_check_regions_reports_every_region_in_order(inventory_client):
    inventory_client.image_exists.side_effect = lambda region, name, arch: region == "us-west-2"

    checked = await ImageProber(inventory_client).check_regions(
        ["us-west-2", "eu-west-1", "us-east-1"], "img", "x86_64"
    )

    assert list(checked.items()) == [
        ("us-west-2", True),
        ("eu-west-1", False),
        ("us-east-1", False),
    ]


@pytest.mark.asyncio
async def test_check_regions_cancelled_omits_unchecked_regions(inventory_client):
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def image_exists(region, name, arch):
        loop.call_soon_threadsafe(cancel_event.set)
        return False

    inventory_client.image_exists.side_effect = image_exists
    prober = ImageProber(inventory_client, concurrency=1)

    checked = await prober.check_regions(REGIONS, "img", "x86_64", cancel_event)

    assert checked == {"eu-west-1": False}
