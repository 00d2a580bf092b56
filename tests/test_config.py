"""Tests for Settings loading from YAML and the environment."""

from pathlib import Path

import pytest

from grading_consensus.config import Settings


class TestFromYaml:
    def test_env_var_substitution(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_OPENAI_KEY", "sk-test")
        config = tmp_path / "config.yaml"
        config.write_text(
            "oracle:\n"
            "  provider: openai\n"
            "  openai:\n"
            "    api_key: $TEST_OPENAI_KEY\n"
            "    model: gpt-4o-mini\n"
            "consensus:\n"
            "  oracle_timeout_seconds: 15\n"
            "  include_narrative: false\n"
        )

        settings = Settings.from_yaml(config)

        assert settings.oracle.openai.api_key == "sk-test"
        assert settings.oracle.openai.model == "gpt-4o-mini"
        assert settings.consensus.oracle_timeout_seconds == 15
        assert settings.consensus.include_narrative is False

    def test_unset_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISSING_KEY_FOR_TEST", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("oracle:\n  gemini:\n    api_key: $MISSING_KEY_FOR_TEST\n")

        with pytest.raises(ValueError, match="MISSING_KEY_FOR_TEST"):
            Settings.from_yaml(config)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("")

        settings = Settings.from_yaml(config)

        assert settings.oracle is None
        assert settings.consensus.oracle_timeout_seconds == 60.0


class TestFromEnv:
    def test_openai_preferred(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        monkeypatch.setenv("GEMINI_API_KEY", "gm-key")
        settings = Settings.from_env()
        assert settings.oracle.provider == "openai"

    def test_gemini_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "gm-key")
        settings = Settings.from_env()
        assert settings.oracle.provider == "gemini"
        assert settings.oracle.gemini.api_key == "gm-key"

    def test_no_keys_disables_oracle(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert Settings.from_env().oracle is None
