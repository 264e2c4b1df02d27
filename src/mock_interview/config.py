"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from mock_interview.errors import ConfigError

BUFFER_BACKENDS = ("memory", "sqlite")


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-haiku-4-5-20251001"
    max_retries: int = 3
    timeout: int = 60
    max_tokens: int = 8192

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.timeout < 1:
            raise ConfigError(f"timeout must be >= 1, got {self.timeout}")


@dataclass(frozen=True)
class SpeechConfig:
    transcribe_model: str = "whisper-1"
    tts_model: str = "gpt-4o-mini-tts"
    tts_voice: str = "alloy"
    tts_format: str = "mp3"
    simulate_synthesis: bool = True


@dataclass(frozen=True)
class RatesConfig:
    """Per-unit prices in USD."""

    text_input_per_million: float = 0.10
    text_output_per_million: float = 0.40
    speech_per_character: float = 0.00022
    transcription_per_second: float = 0.000025
    audio_bytes_per_second: int = 8192  # ~64 kbps voice
    min_audio_seconds: int = 3

    def __post_init__(self) -> None:
        for name in (
            "text_input_per_million",
            "text_output_per_million",
            "speech_per_character",
            "transcription_per_second",
        ):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.audio_bytes_per_second <= 0:
            raise ConfigError(
                f"audio_bytes_per_second must be > 0, got {self.audio_bytes_per_second}"
            )
        if self.min_audio_seconds < 0:
            raise ConfigError(f"min_audio_seconds must be >= 0, got {self.min_audio_seconds}")


@dataclass(frozen=True)
class EvaluationConfig:
    contention_wait_seconds: float = 2.0
    persist_attempts: int = 2

    def __post_init__(self) -> None:
        if self.contention_wait_seconds < 0:
            raise ConfigError(
                f"contention_wait_seconds must be >= 0, got {self.contention_wait_seconds}"
            )
        if self.persist_attempts < 1:
            raise ConfigError(f"persist_attempts must be >= 1, got {self.persist_attempts}")


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "~/.mock-interview/interviews.db"
    buffer_backend: str = "memory"

    def __post_init__(self) -> None:
        if self.buffer_backend not in BUFFER_BACKENDS:
            raise ConfigError(
                f"buffer_backend must be one of {BUFFER_BACKENDS}, got {self.buffer_backend!r}"
            )

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


def _default_tiers() -> dict[str, int]:
    return {"free": 5, "premium": 10}


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    rates: RatesConfig = field(default_factory=RatesConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    tiers: dict[str, int] = field(default_factory=_default_tiers)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    tiers = raw.get("tiers") or _default_tiers()
    tiers = {str(name).lower(): int(quota) for name, quota in tiers.items()}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        speech=SpeechConfig(**raw.get("speech", {})),
        rates=RatesConfig(**raw.get("rates", {})),
        evaluation=EvaluationConfig(**raw.get("evaluation", {})),
        storage=StorageConfig(**raw.get("storage", {})),
        server=ServerConfig(**raw.get("server", {})),
        tiers=tiers,
    )
