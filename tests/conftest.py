"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from typing import Any, Callable, List, Tuple

import pytest

# Hypothesis configuration for property-based testing
from hypothesis import settings, Verbosity, Phase

from healthz.service import Provider

# Default profile: balanced for local development
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

# CI profile: more thorough testing for continuous integration
settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

# Debug profile: minimal examples for quick debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],  # Skip shrinking for speed
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


ERROR_SUFFIX = "provider_failed"


def provider_error(name: str) -> str:
    """Failure reason reported by a StaticCheck with the given name."""
    return f"{name}-{ERROR_SUFFIX}"


class StaticCheck:
    """Check that always passes or always fails with a fixed reason."""

    def __init__(self, healthy: bool, reason: str = "failed"):
        self.healthy = healthy
        self.reason = reason
        self.calls = 0

    def healthz(self) -> None:
        self.calls += 1
        if not self.healthy:
            raise RuntimeError(self.reason)


class RecordingLogger:
    """Logging sink that keeps every call for assertions."""

    def __init__(self):
        self.records: List[Tuple[str, str]] = []

    def _record(self, level: str, msg: Any, *args: Any) -> None:
        self.records.append((level, str(msg) % args if args else str(msg)))

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._record("info", msg, *args)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._record("error", msg, *args)

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._record("fatal", msg, *args)

    def messages(self, level: str) -> List[str]:
        return [msg for lvl, msg in self.records if lvl == level]


@pytest.fixture
def make_provider() -> Callable[..., Provider]:
    """Factory for providers whose failure reason is derived from the name."""
    def _make(name: str, healthy: bool = True) -> Provider:
        return Provider(name=name, handle=StaticCheck(healthy, provider_error(name)))
    return _make


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Logging sink capturing info/error/fatal calls."""
    return RecordingLogger()


@pytest.fixture
def mixed_providers(make_provider) -> List[Provider]:
    """Two healthy and two failing providers, interleaved."""
    return [
        make_provider("test1", healthy=True),
        make_provider("Test2", healthy=False),
        make_provider("Test3", healthy=True),
        make_provider("Test4", healthy=False),
    ]
