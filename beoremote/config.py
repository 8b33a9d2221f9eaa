"""
Configuration loader for beoremote.

Loads a single JSON config file.  Search order:
  1. $BEOREMOTE_CONFIG               (explicit override)
  2. /etc/beoremote/config.json
  3. config.json                     (CWD, handy for local dev)

Usage:
    from beoremote.config import cfg

    host     = cfg("device", "host")
    port     = cfg("device", "port", default=8080)
    interval = cfg("keepalive", "interval", default=5)
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None


def _search_paths() -> list[str]:
    paths = []
    override = os.environ.get("BEOREMOTE_CONFIG")
    if override:
        paths.append(override)
    paths += ["/etc/beoremote/config.json", "config.json"]
    return paths


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    device = config.get("device") or {}
    if not isinstance(device, dict) or not device.get("host"):
        logger.warning("Config %s: missing device.host — pass --host instead", path)
    port = device.get("port") if isinstance(device, dict) else None
    if port is not None and not isinstance(port, int):
        logger.warning("Config %s: device.port should be an integer, got %r", path, port)
    keepalive = config.get("keepalive") or {}
    interval = keepalive.get("interval") if isinstance(keepalive, dict) else None
    if interval is not None and (not isinstance(interval, (int, float)) or interval <= 0):
        logger.warning("Config %s: keepalive.interval must be a positive number", path)


def _read(path: str) -> dict | None:
    """Parse one candidate file.  None means "try the next path"."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.error("Config %s must hold a JSON object, got %s", path, type(data).__name__)
        return None
    return data


def load_config() -> dict:
    """Return the parsed config, reading it from disk on first use."""
    global _config
    if _config is None:
        for path in _search_paths():
            data = _read(path)
            if data is not None:
                logger.info("Config loaded from %s", path)
                _validate(data, path)
                _config = data
                break
        else:
            logger.warning("No config.json found — using defaults")
            _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Look up ``section`` or ``section.key``, falling back to *default*.

    cfg("device", "host")                    → "192.168.1.50"
    cfg("keepalive", "interval", default=5)  → 5 when unset
    """
    value = load_config().get(section)
    if key is not None:
        value = value.get(key) if isinstance(value, dict) else None
    return default if value is None else value


def reload_config() -> dict:
    """Drop the cached config and read it again."""
    global _config
    _config = None
    return load_config()
