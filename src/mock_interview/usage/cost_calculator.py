"""Cost calculator for text generation, speech synthesis and transcription usage."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from mock_interview.config import RatesConfig
from mock_interview.usage.models import UsageRecord, UsageTotals

logger = logging.getLogger(__name__)

DEFAULT_RATES = RatesConfig()


def text_generation_cost(
    input_tokens: int,
    output_tokens: int,
    rates: RatesConfig = DEFAULT_RATES,
) -> float:
    """Cost of one text-generation call. Rates are per 1M tokens."""
    total = (input_tokens / 1_000_000) * rates.text_input_per_million
    total += (output_tokens / 1_000_000) * rates.text_output_per_million
    return total


def speech_synthesis_cost(characters: int, rates: RatesConfig = DEFAULT_RATES) -> float:
    return characters * rates.speech_per_character


def transcription_cost(duration_seconds: int, rates: RatesConfig = DEFAULT_RATES) -> float:
    return duration_seconds * rates.transcription_per_second


def estimate_audio_duration(byte_length: int, rates: RatesConfig = DEFAULT_RATES) -> int:
    """Estimate spoken seconds from an audio payload size.

    Assumes a constant voice bitrate and rounds half up. The result is
    clamped to ``rates.min_audio_seconds`` so short clips (and container
    header overhead) are never billed as zero.
    """
    estimated = max(byte_length, 0) / rates.audio_bytes_per_second
    rounded = max(rates.min_audio_seconds, math.floor(estimated + 0.5))
    logger.debug(
        "Audio duration: %d bytes, estimated %.2fs, billed %ds",
        byte_length, estimated, rounded,
    )
    return rounded


def price_record(record: UsageRecord, rates: RatesConfig = DEFAULT_RATES) -> UsageRecord:
    """Return a copy of ``record`` with every cost field recomputed from its units.

    Reasoning tokens are billed at the output rate.
    """
    return record.model_copy(
        update={
            "text_cost": text_generation_cost(
                record.prompt_tokens,
                record.output_tokens + record.reasoning_tokens,
                rates,
            ),
            "speech_cost": speech_synthesis_cost(record.speech_characters, rates),
            "transcription_cost": transcription_cost(record.transcription_seconds, rates),
        }
    )


def aggregate_usage(
    records: Iterable[UsageRecord],
    rates: RatesConfig = DEFAULT_RATES,
) -> tuple[list[UsageRecord], UsageTotals]:
    """Price every record and sum the results.

    Pre-computed cost fields on the incoming records are ignored so the
    totals always follow from the unit counts.
    """
    priced = [price_record(r, rates) for r in records]
    totals = UsageTotals()
    for r in priced:
        totals.total_tokens += r.total_tokens
        totals.total_prompt_tokens += r.prompt_tokens
        totals.total_output_tokens += r.output_tokens
        totals.total_reasoning_tokens += r.reasoning_tokens
        totals.total_speech_characters += r.speech_characters
        totals.total_speech_cost += r.speech_cost
        totals.total_transcription_seconds += r.transcription_seconds
        totals.total_transcription_cost += r.transcription_cost
        totals.total_text_cost += r.text_cost
    totals.total_cost = (
        totals.total_text_cost + totals.total_speech_cost + totals.total_transcription_cost
    )
    return priced, totals
