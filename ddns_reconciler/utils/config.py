"""
Configuration loading and logging setup.

Configuration lives in a YAML file; every section is optional and falls
back to the defaults returned by get_default_config().
"""

import logging
import sys
from dataclasses import dataclass
from typing import Dict

import yaml

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/config.yaml"
DEFAULT_RECORD_TTL_SECONDS = 3600
DEFAULT_INTERVAL_SECONDS = 300
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_config(config_path: str) -> Dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Configuration loaded from {config_path}")
        return config
    except FileNotFoundError:
        logger.warning(f"Config file {config_path} not found, using defaults")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing config file: {e}")
        sys.exit(1)


def get_default_config() -> Dict:
    """Return default configuration."""
    return {
        "dns_providers": {"mock": {}},
        "default_provider": "mock",
        "database": {"url": "sqlite:///ddns_records.db"},
        "reconciliation": {
            "record_ttl_seconds": DEFAULT_RECORD_TTL_SECONDS,
            "interval_seconds": DEFAULT_INTERVAL_SECONDS,
            "max_workers": 1,
            "run_on_start": False,
        },
        "logging": {"level": "INFO", "file": "ddns_reconciler.log"},
    }


def config_logger(config: Dict, verbose: bool = False):
    """Configure logging."""
    logging_config = config.get("logging", None)
    if logging_config:
        log_level = "DEBUG" if verbose else logging_config.get("level", "INFO")
        log_file = logging_config.get("file")

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.insert(0, logging.FileHandler(log_file))

        logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers)
        return

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass(frozen=True)
class ReconcilerSettings:
    """Knobs consumed by the reconciliation loop."""

    record_ttl_seconds: int = DEFAULT_RECORD_TTL_SECONDS
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS
    max_workers: int = 1
    run_on_start: bool = False

    @classmethod
    def from_config(cls, config: Dict) -> "ReconcilerSettings":
        section = config.get("reconciliation") or {}
        settings = cls(
            record_ttl_seconds=_positive_int(
                section, "record_ttl_seconds", DEFAULT_RECORD_TTL_SECONDS
            ),
            interval_seconds=_positive_int(
                section, "interval_seconds", DEFAULT_INTERVAL_SECONDS
            ),
            max_workers=_positive_int(section, "max_workers", 1),
            run_on_start=bool(section.get("run_on_start", False)),
        )
        logger.debug(f"Reconciler settings: {settings}")
        return settings


def _positive_int(section: Dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(
            f"reconciliation.{key} must be a positive integer, got {value!r}"
        )
    return value
