"""Gateway settings: YAML file, ${VAR} expansion, typed dataclasses."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("copilot-gateway")

# Relative to the project root
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4141
DEFAULT_TIMEOUT = 600.0
DEFAULT_VSCODE_VERSION = "1.104.1"

DEFAULT_TOOL_SURCHARGES = {"claude": 346, "grok": 480}
DEFAULT_MULTIPLIERS = {"claude": 1.15, "grok": 1.03}

_ACCOUNT_TYPE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class ServerSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


@dataclass(frozen=True)
class CopilotSettings:
    """Upstream Copilot connection settings.

    ``token`` is a ready Copilot bearer token; obtaining and refreshing it is
    left to external tooling.
    """

    token: str = ""
    account_type: str = "individual"
    base_url: Optional[str] = None
    vscode_version: str = DEFAULT_VSCODE_VERSION
    timeout: float = DEFAULT_TIMEOUT

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.account_type == "individual":
            return "https://api.githubcopilot.com"
        return f"https://api.{self.account_type}.githubcopilot.com"


@dataclass(frozen=True)
class TokenCountSettings:
    """Empirical corrections applied by the token count endpoint.

    Keys are model id prefixes (vendor families).
    """

    tool_surcharges: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_TOOL_SURCHARGES))
    multipliers: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_MULTIPLIERS))
    placeholder: int = 1


@dataclass(frozen=True)
class GatewaySettings:
    server: ServerSettings = field(default_factory=ServerSettings)
    copilot: CopilotSettings = field(default_factory=CopilotSettings)
    token_counting: TokenCountSettings = field(default_factory=TokenCountSettings)
    enable_responses_endpoint: bool = True
    log_level: str = "INFO"
    model_configs: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    model_variants: Mapping[str, frozenset[str]] = field(default_factory=dict)


CONFIG_PATH_ENV = "COPILOT_GATEWAY_CONFIG"
_PROJECT_ROOT = Path(__file__).parent.parent


def resolve_config_path(path: str) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    candidate = Path(path)
    return candidate if candidate.is_absolute() else _PROJECT_ROOT / candidate


def _read_env_file(config_path: Path, env_path: Optional[str]) -> dict[str, str]:
    # A .env beside the config is picked up automatically; os.environ is left alone.
    env_file = resolve_config_path(env_path) if env_path else config_path.with_name(".env")
    if not env_file.is_file():
        return {}
    logger.info("Reading substitution values from %s", env_file)
    return {name: value for name, value in dotenv_values(env_file).items() if value is not None}


def load_config(
    path: Optional[str] = None,
    env_path: Optional[str] = None,
    substitute_env: bool = True,
) -> dict:
    """Read the gateway YAML config.

    Args:
        path: Config file; defaults to $COPILOT_GATEWAY_CONFIG, then
              configs/config_default.yaml under the project root.
        env_path: .env file used for ${VAR} substitution (default: next to the config).
        substitute_env: Set to False to keep placeholders verbatim.

    Raises:
        RuntimeError: the config file does not exist.
    """
    config_path = resolve_config_path(path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    if not config_path.is_file():
        logger.error("Config file not found: %s", config_path)
        raise RuntimeError(f"Config file not found: {config_path}")

    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if substitute_env:
        data = _substitute_env_vars(data, _read_env_file(config_path, env_path))

    logger.info("Loaded gateway config from %s", config_path)
    return data


def _substitute_env_vars(obj: Any, env_values: Optional[Mapping[str, str]] = None) -> Any:
    """Expand ``${NAME}`` and ``$NAME`` inside every string of a parsed config.

    .env values shadow the process environment. Unknown names stay as written
    and are logged.
    """
    lookup = env_values or {}

    def expand(match: "re.Match[str]") -> str:
        name = match.group(1) or match.group(2)
        value = lookup.get(name, os.environ.get(name))
        if value is None:
            logger.warning("Environment variable %s is not set; keeping %s", name, match.group(0))
            return match.group(0)
        return value

    if isinstance(obj, str):
        return _ENV_PATTERN.sub(expand, obj)
    if isinstance(obj, dict):
        return {key: _substitute_env_vars(value, lookup) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, lookup) for item in obj]
    return obj


def _to_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer config value %r, using %s", value, default)
        return default


def _to_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid number config value %r, using %s", value, default)
        return default


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def build_settings(config: Mapping[str, Any]) -> GatewaySettings:
    """Turn a raw config mapping into typed settings.

    Environment variables COPILOT_GATEWAY_HOST / COPILOT_GATEWAY_PORT take
    priority over ``proxy_settings.server``.

    Raises:
        ConfigurationError: ``copilot.account_type`` cannot form an API host name.
    """
    proxy_settings = config.get("proxy_settings") or {}
    server_cfg = proxy_settings.get("server") or {}
    logging_cfg = proxy_settings.get("logging") or {}

    host = os.getenv("COPILOT_GATEWAY_HOST") or str(server_cfg.get("host", DEFAULT_HOST))
    port = _to_int(os.getenv("COPILOT_GATEWAY_PORT") or server_cfg.get("port"), DEFAULT_PORT)

    copilot_cfg = config.get("copilot") or {}
    account_type = str(copilot_cfg.get("account_type") or "individual").strip().lower()
    if not _ACCOUNT_TYPE_PATTERN.match(account_type):
        raise ConfigurationError(f"Invalid copilot.account_type: {account_type!r}")
    copilot = CopilotSettings(
        token=str(copilot_cfg.get("token") or ""),
        account_type=account_type,
        base_url=copilot_cfg.get("base_url") or None,
        vscode_version=str(copilot_cfg.get("vscode_version") or DEFAULT_VSCODE_VERSION),
        timeout=_to_float(copilot_cfg.get("timeout"), DEFAULT_TIMEOUT),
    )

    token_cfg = config.get("token_counting") or {}
    surcharges = dict(DEFAULT_TOOL_SURCHARGES)
    for prefix, value in (token_cfg.get("tool_surcharges") or {}).items():
        surcharges[str(prefix)] = _to_int(value, surcharges.get(str(prefix), 0))
    multipliers = dict(DEFAULT_MULTIPLIERS)
    for prefix, value in (token_cfg.get("multipliers") or {}).items():
        multipliers[str(prefix)] = _to_float(value, multipliers.get(str(prefix), 1.0))
    token_counting = TokenCountSettings(
        tool_surcharges=surcharges,
        multipliers=multipliers,
        placeholder=_to_int(token_cfg.get("placeholder"), 1),
    )

    model_variants = {
        str(model_id): frozenset(str(v) for v in (suffixes or []))
        for model_id, suffixes in (config.get("model_variants") or {}).items()
    }

    return GatewaySettings(
        server=ServerSettings(host=host, port=port),
        copilot=copilot,
        token_counting=token_counting,
        enable_responses_endpoint=_parse_bool(
            proxy_settings.get("enable_responses_endpoint"), default=True
        ),
        log_level=str(logging_cfg.get("level") or "INFO").upper(),
        model_configs=dict(config.get("model_configs") or {}),
        model_variants=model_variants,
    )
