# easing_probe/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for easing-probe.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in project root
      3) Defaults below
    """

    # ---- Browser configuration ----
    HEADLESS: bool = Field(default=True, description="Run the browser headless")
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chromium, description="Playwright browser")
    VIEWPORT_WIDTH: int = Field(default=1920, ge=320, le=7680)
    VIEWPORT_HEIGHT: int = Field(default=1080, ge=320, le=4320)
    SLOW_MO: int = Field(default=0, ge=0, description="Slow down actions (ms) for debugging")
    USER_AGENT: Optional[str] = Field(default=DEFAULT_USER_AGENT)
    DEFAULT_TIMEOUT_MS: int = Field(default=90000, ge=1000, description="Default timeout for page operations")

    # ---- Navigation ----
    NAV_TIMEOUT_MS: int = Field(default=60000, ge=1000, description="Per-attempt navigation timeout")
    NAV_MAX_ATTEMPTS: int = Field(default=4, ge=1)
    NAV_BACKOFF_MS: int = Field(default=3000, ge=0, description="Linear backoff step between attempts")
    NAV_BACKOFF_CEILING_MS: int = Field(default=20000, ge=0, description="Cap on total backoff per site")

    # ---- Instrumentation ----
    HOOK_POLL_INTERVAL_MS: int = Field(default=250, ge=10)
    HOOK_POLL_WINDOW_MS: int = Field(default=15000, ge=0)
    ANIMATION_WAIT_MS: int = Field(default=3000, ge=0, description="Time allowed for libraries to load after navigation")

    # ---- Interaction ----
    SCROLL_PAUSE_MS: int = Field(default=1000, ge=0)
    HOVER_PAUSE_MS: int = Field(default=200, ge=0)
    HOVER_LIMIT: int = Field(default=5, ge=0)
    HOVER_TIMEOUT_MS: int = Field(default=2000, ge=0)

    # ---- Network evidence ----
    MAX_CAPTURED_SCRIPTS: int = Field(default=40, ge=0)
    MAX_SAMPLED_NON_HINT_SCRIPTS: int = Field(default=15, ge=0)
    MAX_CAPTURED_SCRIPT_BYTES: int = Field(default=4 * 1024 * 1024, ge=0)
    BLOCKED_RESOURCE_TYPES: str = Field(default="image,font,media", description="Comma-separated Playwright resource types to abort")

    # ---- Batch ----
    INTER_SITE_DELAY_MS: int = Field(default=2000, ge=0)

    # ---- Output ----
    OUTPUT_DIR: Path = Field(default=Path("./results"))
    SITES_FILE: Optional[Path] = Field(default=None, description="Category file; defaults to the bundled sites.yaml")

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./easing-probe.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    # ---- Proxies ----
    PROXY_SERVER: Optional[str] = None
    PROXY_USERNAME: Optional[str] = None
    PROXY_PASSWORD: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown envs to keep things flexible
    )

    # Normalize path-like fields to absolute paths
    @field_validator("OUTPUT_DIR", "LOG_FILE", "SITES_FILE", mode="before")
    @classmethod
    def _coerce_to_path(cls, v):
        if isinstance(v, Path) or v is None:
            return v
        return Path(str(v))

    @field_validator("OUTPUT_DIR", "LOG_FILE", "SITES_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Optional[Path], info):
        if v is None:
            return v
        return v if v.is_absolute() else Path.cwd() / v

    @property
    def blocked_resource_types(self) -> List[str]:
        return [part.strip().lower() for part in self.BLOCKED_RESOURCE_TYPES.split(",") if part.strip()]

    def ensure_dirs(self) -> None:
        """Create required directories (idempotent)."""
        for p in {self.OUTPUT_DIR, self.LOG_FILE.parent}:
            p.mkdir(parents=True, exist_ok=True)

    # Convenience: Playwright launch options dict
    def playwright_launch_kwargs(self) -> dict:
        kwargs = {
            "headless": self.HEADLESS,
            "slow_mo": self.SLOW_MO,
        }
        if self.BROWSER_TYPE == BrowserType.chromium:
            kwargs["args"] = ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"]
        # proxy
        if self.PROXY_SERVER:
            proxy = {"server": self.PROXY_SERVER}
            if self.PROXY_USERNAME and self.PROXY_PASSWORD:
                proxy["username"] = self.PROXY_USERNAME
                proxy["password"] = self.PROXY_PASSWORD
            kwargs["proxy"] = proxy
        return kwargs

    # Convenience: Playwright new_context kwargs
    def playwright_context_kwargs(self) -> dict:
        viewport = {"width": self.VIEWPORT_WIDTH, "height": self.VIEWPORT_HEIGHT}
        ctx = {"viewport": viewport}
        if self.USER_AGENT:
            ctx["user_agent"] = self.USER_AGENT
        return ctx


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    return Settings()
