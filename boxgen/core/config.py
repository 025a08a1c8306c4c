from __future__ import annotations

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """Get application root directory.

    Environment variable BOXGEN_HOME takes priority,
    otherwise the project directory is used.
    """
    env_dir = os.environ.get("BOXGEN_HOME")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parent.parent.parent


def _get_log_dir() -> Path:
    """Get log directory."""
    return _get_base_dir() / "logs"


BASE_DIR: Path = _get_base_dir()

LOG_DIR: Path = _get_log_dir()
CLI_LOG_FILE: Path = LOG_DIR / "boxgen_cli.log"

LOG_DIR.mkdir(parents=True, exist_ok=True)

# Blob paths, relative to BASE_DIR
DATA_DIR: str = "data"
PROFILES_FILE_PATH: str = f"{DATA_DIR}/profiles.yaml"
SUBSCRIPTIONS_FILE_PATH: str = f"{DATA_DIR}/subscribes.yaml"
RULESETS_FILE_PATH: str = f"{DATA_DIR}/rulesets.yaml"
RULESETS_DIR: str = f"{DATA_DIR}/rulesets"
KERNEL_CONFIG_FILE_PATH: str = f"{DATA_DIR}/sing-box/config.json"

# Profile store write coalescing window, seconds
SAVE_DEBOUNCE_DELAY: float = 0.1

DEFAULT_USER_AGENT: str = "boxgen/1.0 (sing-box)"
SUBSCRIPTION_TIMEOUT: int = 30

# Remote rule sets every generated route carries
RULE_SET_BASE_URL: str = "https://testingcf.jsdelivr.net/gh/MetaCubeX/meta-rules-dat@sing/geo"
GEOIP_CN: str = "built-in-geoip-cn"
GEOSITE_CN: str = "built-in-geosite-cn"
GEOSITE_NOT_CN: str = "built-in-geosite-geolocation-!cn"

BUILT_IN_RULE_SETS: dict[str, str] = {
    GEOIP_CN: f"{RULE_SET_BASE_URL}/geoip/cn.srs",
    GEOSITE_CN: f"{RULE_SET_BASE_URL}/geosite/cn.srs",
    GEOSITE_NOT_CN: f"{RULE_SET_BASE_URL}/geosite/geolocation-!cn.srs",
}


def get_profiles_file() -> Path:
    """Absolute path of the persisted profiles."""
    return BASE_DIR / PROFILES_FILE_PATH


def get_kernel_config_file() -> Path:
    """Absolute path of the generated kernel configuration."""
    return BASE_DIR / KERNEL_CONFIG_FILE_PATH
