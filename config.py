from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml
from dotenv import load_dotenv

USER_CONFIG_PATH = Path.home() / ".webvizio_mcp_config.yaml"
DEFAULT_BASE_URL = "https://app.webvizio.com/api/mcp/v1/"
REQUEST_TIMEOUT_SECONDS = 30.0
API_KEY_ENV = "WEBVIZIO_API_KEY"
INSECURE_TLS_ENV = "WEBVIZIO_INSECURE_TLS"
LOG_LEVEL_ENV = "WEBVIZIO_LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class WebvizioConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    verify_tls: bool = True
    timeout: float = REQUEST_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not (self.api_key or "").strip():
            raise ConfigError(f"{API_KEY_ENV} environment variable is required")

    def __repr__(self) -> str:
        return (
            f"WebvizioConfig(api_key='***', base_url={self.base_url!r}, "
            f"verify_tls={self.verify_tls!r}, timeout={self.timeout!r})"
        )


def _load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or USER_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def get_user_api_key(path: Optional[Path] = None) -> str:
    return str(_load_config(path).get("api_key", "") or "").strip()


def parse_assignments(args: Sequence[str]) -> Dict[str, str]:
    """Collect ``NAME=value`` command line arguments (``webvizio-mcp WEBVIZIO_API_KEY=...``)."""
    out: Dict[str, str] = {}
    for arg in args or []:
        name, sep, value = str(arg).partition("=")
        if sep and name.strip():
            out[name.strip()] = value.strip()
    return out


def _is_truthy(value: Any) -> bool:
    return str(value or "").strip().lower() in _TRUTHY


def load_config(
    *,
    api_key: Optional[str] = None,
    assignments: Optional[Mapping[str, str]] = None,
    insecure: bool = False,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    dotenv_path: Optional[Path] = None,
) -> WebvizioConfig:
    """Resolve the process configuration once at start-up.

    API key precedence: explicit ``api_key`` / ``NAME=value`` assignment,
    then the environment (a ``.env`` file is loaded first without overriding
    existing variables), then ``api_key`` from the YAML user config.

    TLS verification stays on unless ``insecure`` is passed or the
    environment / YAML config opts out explicitly.
    """
    if environ is None:
        load_dotenv(dotenv_path or Path.cwd() / ".env", override=False)
        environ = os.environ
    assignments = dict(assignments or {})
    user_cfg = _load_config(config_path)

    key = (
        (api_key or "").strip()
        or assignments.get(API_KEY_ENV, "").strip()
        or str(environ.get(API_KEY_ENV, "") or "").strip()
        or str(user_cfg.get("api_key", "") or "").strip()
    )
    if not key:
        raise ConfigError(f"{API_KEY_ENV} environment variable is required")

    insecure = (
        insecure
        or _is_truthy(assignments.get(INSECURE_TLS_ENV))
        or _is_truthy(environ.get(INSECURE_TLS_ENV))
        or user_cfg.get("verify_tls", True) is False
    )
    return WebvizioConfig(api_key=key, verify_tls=not insecure)


def resolve_log_level(explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    level = (explicit or environ.get(LOG_LEVEL_ENV) or "INFO").strip().upper()
    return level or "INFO"
