"""
Shared fixtures: virtual clock, recording audio output, fake speaker.
"""
import copy

import pytest

from audio.engine import RecordingOutput
from audio.scheduler import ManualClock
from core.app import AppContext
from core.events import EventBus
from core.persistence import ProfileStore
from core.settings import DEFAULT_SETTINGS
from tests.helpers import FakeSpeaker


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def audio(clock):
    return RecordingOutput(clock)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def speaker():
    return FakeSpeaker()


@pytest.fixture
def store(tmp_path):
    return ProfileStore(tmp_path / "profiles.msgpack")


@pytest.fixture
def settings():
    return copy.deepcopy(DEFAULT_SETTINGS)


@pytest.fixture
def app(clock, audio, speaker, store, settings):
    ctx = AppContext(clock, audio=audio, speaker=speaker, store=store, settings=settings)
    ctx.start()
    return ctx
