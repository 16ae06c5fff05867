"""Tests for bounded location fixes."""

import asyncio
import time

import pytest

from field_capture.domain.records import GeoFix
from field_capture.services.location import LocationFixProvider
from tests.conftest import FakeLocationSource


def test_returns_first_fix_and_unsubscribes() -> None:
    source = FakeLocationSource(fix=GeoFix(52.52, 13.405), fix_after_s=0.01)
    provider = LocationFixProvider(source)

    fix = asyncio.run(provider.get_bounded_fix(500))

    assert fix == GeoFix(52.52, 13.405)
    assert source.requests == 1
    assert source.active == 0
    assert source.subscriptions[0].cancelled


def test_times_out_with_none_and_unsubscribes() -> None:
    source = FakeLocationSource()
    provider = LocationFixProvider(source)

    async def run():  # type: ignore[no-untyped-def]
        started = time.monotonic()
        fix = await provider.get_bounded_fix(50)
        return fix, time.monotonic() - started

    fix, elapsed = asyncio.run(run())

    assert fix is None
    assert 0.04 <= elapsed < 1.0
    assert source.active == 0


def test_late_fix_after_timeout_is_ignored() -> None:
    source = FakeLocationSource(fix=GeoFix(1.0, 1.0), fix_after_s=0.2)
    provider = LocationFixProvider(source)

    fix = asyncio.run(provider.get_bounded_fix(20))

    assert fix is None
    assert source.active == 0


def test_without_permission_skips_subscription() -> None:
    source = FakeLocationSource(fix=GeoFix(1.0, 1.0), permission=False)
    provider = LocationFixProvider(source)

    fix = asyncio.run(provider.get_bounded_fix(500))

    assert fix is None
    assert source.requests == 0


def test_source_error_resolves_to_none() -> None:
    source = FakeLocationSource(error_after_s=0.01)
    provider = LocationFixProvider(source)

    fix = asyncio.run(provider.get_bounded_fix(500))

    assert fix is None
    assert source.active == 0


def test_unavailable_source_resolves_to_none() -> None:
    source = FakeLocationSource(fail_request=True)
    provider = LocationFixProvider(source)

    assert asyncio.run(provider.get_bounded_fix(500)) is None


def test_rejects_non_positive_timeout() -> None:
    provider = LocationFixProvider(FakeLocationSource())

    with pytest.raises(ValueError):
        asyncio.run(provider.get_bounded_fix(0))


def test_last_known_fix_respects_permission() -> None:
    source = FakeLocationSource(last=GeoFix(9.0, 8.0))
    provider = LocationFixProvider(source)

    assert provider.get_last_known_fix() == GeoFix(9.0, 8.0)

    source.permission = False
    assert provider.get_last_known_fix() is None


class _BrokenPermissionSource(FakeLocationSource):
    def has_permission(self) -> bool:
        raise RuntimeError("permission service unavailable")


def test_failing_permission_check_resolves_to_none() -> None:
    source = _BrokenPermissionSource(fix=GeoFix(1.0, 1.0), last=GeoFix(2.0, 2.0))
    provider = LocationFixProvider(source)

    assert asyncio.run(provider.get_bounded_fix(500)) is None
    assert provider.get_last_known_fix() is None
    assert source.requests == 0
