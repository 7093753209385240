"""Shared fixtures: deterministic settings and a zero-latency synthesizer."""
from __future__ import annotations

import random

import pytest

from shared.config import Settings

from builder.timeline.synthetic import MatchSynthesizer


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        synthetic_delay_scale=0.0,
        synthetic_seed=7,
        metrics_enabled=False,
        provider_max_retries=1,
        provider_failure_threshold=3,
        cricapi_api_key="test-cricapi-key",
        sportmonks_api_key="test-sportmonks-key",
        espncricinfo_series_id="1415700",
        espncricinfo_match_id="1415755",
    )


@pytest.fixture
def synthesizer(settings: Settings) -> MatchSynthesizer:
    return MatchSynthesizer(settings, rng=random.Random(7))
