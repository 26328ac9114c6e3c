"""Pytest fixtures for preview companion tests."""

from __future__ import annotations

import logging
import os

import pytest
from hypothesis import Phase, Verbosity, settings
from tests.helpers.protocol import TEST_IDENTITY, RecordingListener, ResponseSink

from aspose_preview.debug_log import ROOT_LOGGER_NAME
from aspose_preview.protocol.emitter import ResponseEmitter
from aspose_preview.protocol.parser import ProtocolParser
from aspose_preview.protocol.transport.shm import UnsupportedRegionReader

settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=None,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture(autouse=True)
def _restore_package_log_level():
    """Tests may toggle debug logging at runtime; put the level back afterwards."""
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def sink() -> ResponseSink:
    return ResponseSink()


@pytest.fixture
def emitter(sink: ResponseSink) -> ResponseEmitter:
    return ResponseEmitter(sink, identity=TEST_IDENTITY)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def parser(listener: RecordingListener, emitter: ResponseEmitter) -> ProtocolParser:
    return ProtocolParser(listener, emitter, region_reader=UnsupportedRegionReader("TestOS"))
