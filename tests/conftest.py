import pytest

from easing_probe.utils.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    """Fresh settings per test, writing under tmp_path."""
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "results"))
    monkeypatch.setenv("LOG_TO_FILE", "false")
    monkeypatch.setenv("COLORIZED_OUTPUT", "false")
    monkeypatch.delenv("SITES_FILE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every pause and delay zeroed."""
    return Settings(
        ANIMATION_WAIT_MS=0,
        SCROLL_PAUSE_MS=0,
        HOVER_PAUSE_MS=0,
        HOVER_TIMEOUT_MS=0,
        NAV_BACKOFF_MS=0,
        NAV_TIMEOUT_MS=1000,
        NAV_MAX_ATTEMPTS=2,
        INTER_SITE_DELAY_MS=0,
    )
