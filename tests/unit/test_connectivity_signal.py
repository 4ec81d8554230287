"""Unit tests for the ConnectivitySignal and the manual provider."""

import asyncio

import pytest

from splitsync.application.services import ConnectivitySignal
from splitsync.infrastructure.connectivity import ManualConnectivityProvider


def test_reads_online_before_first_observation():
    provider = ManualConnectivityProvider(online=False)
    signal = ConnectivitySignal(provider)

    assert signal.observed is False
    assert signal.is_online is True


def test_start_takes_the_provider_state():
    provider = ManualConnectivityProvider(online=False)
    signal = ConnectivitySignal(provider)

    signal.start()

    assert signal.observed is True
    assert signal.is_online is False


def test_listeners_fire_only_on_transitions():
    provider = ManualConnectivityProvider(online=True)
    signal = ConnectivitySignal(provider)
    signal.start()
    seen: list[bool] = []
    signal.add_listener(seen.append)

    provider.set_online(True)
    provider.set_online(False)
    provider.set_online(False)
    provider.set_online(True)

    assert seen == [False, True]


def test_failing_listener_does_not_block_others():
    provider = ManualConnectivityProvider(online=True)
    signal = ConnectivitySignal(provider)
    signal.start()
    seen: list[bool] = []

    def broken(online: bool) -> None:
        raise RuntimeError("listener bug")

    signal.add_listener(broken)
    signal.add_listener(seen.append)

    provider.set_online(False)

    assert seen == [False]
    assert signal.is_online is False


def test_stop_unsubscribes_from_provider():
    provider = ManualConnectivityProvider(online=True)
    signal = ConnectivitySignal(provider)
    signal.start()
    seen: list[bool] = []
    signal.add_listener(seen.append)

    signal.stop()
    provider.set_online(False)

    assert seen == []


@pytest.mark.asyncio
async def test_async_listeners_are_scheduled_on_the_loop():
    provider = ManualConnectivityProvider(online=False)
    signal = ConnectivitySignal(provider)
    signal.start()
    seen: list[bool] = []

    async def on_change(online: bool) -> None:
        seen.append(online)

    signal.add_listener(on_change)
    provider.set_online(True)
    await asyncio.sleep(0)

    assert seen == [True]
