"""Runtime configuration helpers."""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG_PATH = "config.json"
MAX_PORT = 65535


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    enable_rate_limit: bool = True
    min_seconds_after_last_request: int = 10
    trust_forward_header: bool = False
    count_from_start: bool = True
    forward_header_index: int = 1
    update_interval: int = 10
    ip_request_count_reset_minutes: int = 60
    max_history_length: int = 60


def positive_int(value: Any, default: int, name: str) -> int:
    """Floor ``value`` to a positive integer, falling back to ``default`` with a warning."""
    if value is None:
        logging.warning("Config %s missing; using default %s", name, default)
        return default
    if isinstance(value, bool):
        logging.warning("Config %s=%r is not a number; using default %s", name, value, default)
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logging.warning("Config %s=%r is not a number; using default %s", name, value, default)
        return default
    if not math.isfinite(number) or math.floor(number) < 1:
        logging.warning("Config %s=%r must be a positive integer; using default %s", name, value, default)
        return default
    return int(math.floor(number))


def port_number(value: Any, default: int, name: str) -> int:
    """Validate a TCP port, falling back to ``default`` with a warning."""
    port = positive_int(value, default, name)
    if port > MAX_PORT:
        logging.warning("Config %s=%r exceeds %s; using default %s", name, value, MAX_PORT, default)
        return default
    return port


def _flag(value: Any, default: bool, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        logging.warning("Config %s missing; using default %s", name, default)
    else:
        logging.warning("Config %s=%r is not a boolean; using default %s", name, value, default)
    return default


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name)
    if isinstance(section, dict):
        return section
    if section is not None:
        logging.warning("Config section %s is not an object; using defaults", name)
    return {}


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read the JSON config file, returning an empty mapping when unusable."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logging.warning("Config file %s not found; using defaults", path)
        return {}
    except (OSError, ValueError) as exc:
        logging.warning("Config file %s could not be read (%s); using defaults", path, exc)
        return {}
    if not isinstance(raw, dict):
        logging.warning("Config file %s does not hold an object; using defaults", path)
        return {}
    return raw


def build_settings(raw: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Settings:
    """Validate a parsed config mapping plus environment overrides into ``Settings``."""
    env = os.environ if environ is None else environ
    defaults = Settings()
    server = _section(raw, "server")
    client_ip = _section(raw, "getClientIp")
    stats = _section(raw, "systemStats")

    port = port_number(server.get("port"), defaults.port, "server.port")
    port_override = env.get("HOST_STATUS_PORT")
    if port_override:
        port = port_number(port_override, port, "HOST_STATUS_PORT")

    return Settings(
        host=env.get("HOST_STATUS_HOST", defaults.host),
        port=port,
        log_level=env.get("HOST_STATUS_LOG_LEVEL", defaults.log_level).lower(),
        enable_rate_limit=_flag(
            server.get("enableRateLimit"), defaults.enable_rate_limit, "server.enableRateLimit"
        ),
        min_seconds_after_last_request=positive_int(
            server.get("minSecondsAfterLastRequest"),
            defaults.min_seconds_after_last_request,
            "server.minSecondsAfterLastRequest",
        ),
        trust_forward_header=_flag(
            client_ip.get("getIpByXFF"), defaults.trust_forward_header, "getClientIp.getIpByXFF"
        ),
        count_from_start=_flag(
            client_ip.get("getIpByXFFFromStart"),
            defaults.count_from_start,
            "getClientIp.getIpByXFFFromStart",
        ),
        forward_header_index=positive_int(
            client_ip.get("getIpByXFFCount"),
            defaults.forward_header_index,
            "getClientIp.getIpByXFFCount",
        ),
        update_interval=positive_int(
            stats.get("updateInterval"),
            defaults.update_interval,
            "systemStats.updateInterval",
        ),
        ip_request_count_reset_minutes=positive_int(
            stats.get("ipRequestCountSaveMinutes"),
            defaults.ip_request_count_reset_minutes,
            "systemStats.ipRequestCountSaveMinutes",
        ),
        max_history_length=positive_int(
            stats.get("MaxHistoryLength"),
            defaults.max_history_length,
            "systemStats.MaxHistoryLength",
        ),
    )


def load_settings(path: Optional[str] = None) -> Settings:
    config_path = Path(path or os.getenv("HOST_STATUS_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()
    return build_settings(read_config_file(config_path))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the config file and environment variables with sensible defaults."""
    return load_settings()
