"""Tests for config validation."""

import pytest

from mock_interview.config import load_config
from mock_interview.errors import ConfigError


class TestConfigValidation:
    def test_valid_defaults(self):
        """Default config passes validation without raising."""
        config = load_config(None)
        assert config.llm.timeout == 60
        assert config.evaluation.persist_attempts == 2

    def test_negative_rate(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("rates:\n  speech_per_character: -0.1\n")
        with pytest.raises(ValueError, match="speech_per_character"):
            load_config(yaml)

    def test_zero_bitrate(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("rates:\n  audio_bytes_per_second: 0\n")
        with pytest.raises(ValueError, match="audio_bytes_per_second"):
            load_config(yaml)

    def test_invalid_persist_attempts(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("evaluation:\n  persist_attempts: 0\n")
        with pytest.raises(ValueError, match="persist_attempts"):
            load_config(yaml)

    def test_negative_wait(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("evaluation:\n  contention_wait_seconds: -1\n")
        with pytest.raises(ValueError, match="contention_wait_seconds"):
            load_config(yaml)

    def test_unknown_buffer_backend(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("storage:\n  buffer_backend: redis\n")
        with pytest.raises(ConfigError, match="buffer_backend"):
            load_config(yaml)

    def test_invalid_timeout(self, tmp_path):
        """timeout of 0 (below minimum of 1) raises ValueError."""
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("llm:\n  timeout: 0\n")
        with pytest.raises(ValueError, match="timeout"):
            load_config(yaml)
