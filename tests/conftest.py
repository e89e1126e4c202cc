# tests/conftest.py
import time
import pytest

from captionmirror.LiveTranscriptService import LiveTranscriptService
from captionmirror.ReconcilerConfig import ReconcilerConfig
from captionmirror.TranscriptPublisher import TranscriptPublisher
from captionmirror.sources.ScriptedSnapshotSource import ScriptedSnapshotSource


@pytest.fixture
def manual_config():
    """Config whose timer effectively never fires, so tests drive ticks by hand."""
    return ReconcilerConfig(poll_interval_ms=60_000, read_timeout_ms=500)


@pytest.fixture
def make_service(manual_config):
    """Factory building a LiveTranscriptService over a scripted source.

    Services are stopped after the test.
    """
    created = []

    def factory(script=(), config=None, available=True, publisher=None):
        source = ScriptedSnapshotSource(script, available=available)
        service = LiveTranscriptService(
            source=source,
            publisher=publisher if publisher is not None else TranscriptPublisher(),
            config=config if config is not None else manual_config,
        )
        created.append(service)
        return service, source

    yield factory

    for service in created:
        service.close()
        service.publisher.stop()


def _wait_until(predicate, timeout=2.0, interval=0.01):
    """Poll predicate until true or timeout; returns the final result."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    return _wait_until
