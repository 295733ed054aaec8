import pytest
from pydantic import ValidationError

from query_pattern_doctor.config import AnalysisSettings, get_settings


class TestAnalysisSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("QPD_BURST_THRESHOLD", raising=False)
        settings = AnalysisSettings(_env_file=None)

        assert settings.burst_threshold == 3
        assert settings.slow_threshold_ms == 100.0
        assert settings.disabled_detectors == []
        assert settings.supabase_base_url == "https://api.supabase.com"
        assert settings.log_lookback_minutes == 5

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QPD_BURST_THRESHOLD", "10")
        monkeypatch.setenv("QPD_DISABLED_DETECTORS", '["unused_join"]')
        monkeypatch.setenv("QPD_SUPABASE_PROJECT_REF", "abcdefgh")

        settings = AnalysisSettings(_env_file=None)

        assert settings.burst_threshold == 10
        assert settings.disabled_detectors == ["unused_join"]
        assert settings.supabase_project_ref == "abcdefgh"

    def test_burst_threshold_must_be_at_least_two(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisSettings(burst_threshold=1)

    def test_get_settings_is_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        get_settings.cache_clear()
        monkeypatch.setenv("QPD_SLOW_THRESHOLD_MS", "250")
        try:
            first = get_settings()
            assert first.slow_threshold_ms == 250.0
            assert get_settings() is first
        finally:
            get_settings.cache_clear()
