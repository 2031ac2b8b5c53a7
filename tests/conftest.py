"""Shared pytest fixtures."""

import pytest

from test_helpers import Harness, ScriptedBundler, SleepRecorder, make_harness


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def bundler() -> ScriptedBundler:
    return ScriptedBundler()


@pytest.fixture
def harness(bundler: ScriptedBundler) -> Harness:
    return make_harness(bundler)


@pytest.fixture
def connected(harness: Harness) -> Harness:
    harness.connect()
    return harness


@pytest.fixture
def authorized(connected: Harness) -> Harness:
    connected.authorize()
    return connected
