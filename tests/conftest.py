"""Pytest configuration for tests."""

import pytest

from geniesite.config import GeneratorConfig


@pytest.fixture
def config() -> GeneratorConfig:
    """Default config without the pacing delay between thoughts."""
    return GeneratorConfig(thought_delay=0)
