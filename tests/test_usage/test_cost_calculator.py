"""Tests for the cost calculator."""

from __future__ import annotations

import pytest

from mock_interview.config import RatesConfig
from mock_interview.usage.cost_calculator import (
    DEFAULT_RATES,
    aggregate_usage,
    estimate_audio_duration,
    price_record,
    speech_synthesis_cost,
    text_generation_cost,
    transcription_cost,
)
from mock_interview.usage.models import UsageRecord


class TestTextGenerationCost:
    def test_one_million_each(self):
        # $0.10 input + $0.40 output
        assert text_generation_cost(1_000_000, 1_000_000) == pytest.approx(0.50)

    def test_small_token_count(self):
        expected = (1200 / 1_000_000) * 0.10 + (800 / 1_000_000) * 0.40
        assert text_generation_cost(1200, 800) == pytest.approx(expected)

    def test_zero_tokens(self):
        assert text_generation_cost(0, 0) == 0.0

    def test_custom_rates(self):
        rates = RatesConfig(text_input_per_million=1.0, text_output_per_million=2.0)
        assert text_generation_cost(500_000, 500_000, rates) == pytest.approx(1.5)


class TestSpeechAndTranscriptionCost:
    def test_speech_per_character(self):
        assert speech_synthesis_cost(100) == pytest.approx(0.022)

    def test_speech_zero_characters(self):
        assert speech_synthesis_cost(0) == 0.0

    def test_transcription_per_second(self):
        assert transcription_cost(60) == pytest.approx(0.0015)


class TestEstimateAudioDuration:
    def test_exact_seconds(self):
        assert estimate_audio_duration(8192 * 10) == 10

    def test_rounds_half_up(self):
        assert estimate_audio_duration(8192 * 10 + 4096) == 11

    def test_rounds_down_below_half(self):
        assert estimate_audio_duration(8192 * 10 + 4095) == 10

    def test_minimum_applied_to_short_clip(self):
        assert estimate_audio_duration(1000) == 3

    def test_zero_bytes_billed_at_minimum(self):
        assert estimate_audio_duration(0) == DEFAULT_RATES.min_audio_seconds

    def test_never_below_minimum(self):
        for size in (0, 1, 8192, 8192 * 2, 8192 * 3):
            assert estimate_audio_duration(size) >= 3


class TestPriceRecord:
    def test_reasoning_billed_at_output_rate(self):
        record = UsageRecord(
            function_name="evaluate_interview",
            prompt_tokens=1000,
            output_tokens=500,
            reasoning_tokens=500,
            total_tokens=2000,
        )
        priced = price_record(record)
        expected = (1000 / 1e6) * 0.10 + (1000 / 1e6) * 0.40
        assert priced.text_cost == pytest.approx(expected)

    def test_original_record_unchanged(self):
        record = UsageRecord(function_name="x", prompt_tokens=10, output_tokens=10)
        price_record(record)
        assert record.text_cost == 0.0

    def test_stale_cost_fields_recomputed(self):
        record = UsageRecord(
            function_name="respond_to_answer",
            speech_characters=10,
            speech_cost=99.0,
        )
        assert price_record(record).speech_cost == pytest.approx(0.0022)


class TestAggregateUsage:
    def _records(self) -> list[UsageRecord]:
        return [
            UsageRecord(
                function_name="respond_to_answer",
                prompt_tokens=200,
                output_tokens=50,
                total_tokens=250,
                speech_characters=120,
            ),
            UsageRecord(
                function_name="transcribe_audio",
                transcription_seconds=30,
            ),
            UsageRecord(
                function_name="evaluate_interview",
                prompt_tokens=1200,
                output_tokens=800,
                total_tokens=2000,
            ),
        ]

    def test_totals(self):
        priced, totals = aggregate_usage(self._records())
        assert len(priced) == 3
        assert totals.total_tokens == 2250
        assert totals.total_prompt_tokens == 1400
        assert totals.total_output_tokens == 850
        assert totals.total_speech_characters == 120
        assert totals.total_transcription_seconds == 30
        assert totals.total_speech_cost == pytest.approx(120 * 0.00022)
        assert totals.total_transcription_cost == pytest.approx(30 * 0.000025)
        assert totals.total_cost == pytest.approx(
            totals.total_text_cost + totals.total_speech_cost + totals.total_transcription_cost
        )

    def test_order_independent(self):
        _, forward = aggregate_usage(self._records())
        _, backward = aggregate_usage(list(reversed(self._records())))
        assert forward.total_tokens == backward.total_tokens
        assert forward.total_cost == pytest.approx(backward.total_cost)

    def test_empty(self):
        priced, totals = aggregate_usage([])
        assert priced == []
        assert totals.total_cost == 0.0
        assert totals.total_tokens == 0
