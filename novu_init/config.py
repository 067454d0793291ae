"""Defaults for the setup wizard.

Tunables live on :class:`Settings` and can be overridden with ``NOVU_INIT_*``
environment variables, e.g. ``NOVU_INIT_DEFAULT_PORT=5000``. Settings are
loaded on first use through :func:`get_settings`.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ValidationError

# -- Fixed values --------------------------------------------------------------

ENV_FILENAME = ".env.local"
INSTALL_CMD = ["npm", "install"]
DEV_SERVER_CMD = ["npm", "run", "dev", "--", "-p", "{port}"]

API_URLS = {
    "EU": "https://eu.api.novu.co",
    "US": "https://api.novu.co",
}

DASHBOARD_URLS = {
    "EU": "https://eu.dashboard.novu.co",
    "US": "https://dashboard.novu.co",
}

REGIONS = list(API_URLS)
UTM_PARAMS = "utm_source=cli&utm_medium=onboarding&utm_campaign=cli_onboarding"


class Settings(BaseSettings):
    """novu-init configuration, read from ``NOVU_INIT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NOVU_INIT_",
        extra="ignore",
    )

    # ── Starter project ───────────────────────────────────────────────
    repo_url: str = "https://github.com/iampearceman/novu-nextjs-init.git"
    install_timeout: int = Field(default=600, gt=0)

    # ── Local server ──────────────────────────────────────────────────
    default_port: int = Field(default=4000, ge=1, le=65535)
    default_route: str = "/api/novu"
    port_scan_limit: int = Field(default=1000, ge=1)
    dev_server_timeout: float = Field(default=60, gt=0)
    dev_server_ready_marker: str = "Ready in"
    readiness_attempts: int = Field(default=30, ge=1)
    readiness_interval: float = Field(default=1, ge=0)

    # ── Tunnel ────────────────────────────────────────────────────────
    tunnel_issuer_url: str = "https://novu.sh/api/tunnels"
    tunnel_issuer_token: str = "12345"
    relay_connect_timeout: float = Field(default=2, gt=0)
    relay_max_retries: int = Field(default=30, ge=0, description="0 retries forever")
    relay_cached_retries: int = Field(default=1, ge=1, description="Retries for a cached relay URL")
    relay_retry_delay: float = Field(default=1, ge=0)

    health_attempts: int = Field(default=30, ge=1)
    health_interval: float = Field(default=1, ge=0)
    health_hint_after: int = Field(default=10, ge=1)
    check_timeout: float = Field(default=2, gt=0, description="Per-request timeout of readiness and health checks")

    # ── Novu platform ─────────────────────────────────────────────────
    api_url: Optional[str] = Field(default=None, description="Overrides the regional API URL")
    request_timeout: float = Field(default=30, gt=0)
    trigger_workflow: str = "Inbox Demo"
    reload_delay: float = Field(default=5, ge=0)

    # ── Local state ───────────────────────────────────────────────────
    config_dir: Path = Path.home() / ".novu-init"

    @property
    def tunnel_cache_file(self) -> Path:
        return self.config_dir / "tunnels.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once.

    Raises:
        ValidationError: If a ``NOVU_INIT_*`` variable holds an invalid value.
    """
    try:
        return Settings()
    except PydanticValidationError as e:
        problems = "; ".join(
            f"NOVU_INIT_{'_'.join(str(p) for p in err['loc']).upper()}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid configuration: {problems}")


def api_url_for(region: str) -> str:
    """Return the API base URL for a region (``EU`` or ``US``)."""
    override = get_settings().api_url
    if override:
        return override
    return API_URLS.get((region or "US").upper(), API_URLS["US"])


def dashboard_url_for(region: str) -> str:
    """Return the dashboard base URL for a region."""
    return DASHBOARD_URLS.get((region or "US").upper(), DASHBOARD_URLS["US"])
