"""
Session Configuration
Loads network policy and provider settings from .env, a JSON file and the environment
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from loguru import logger

from blockchain.networks import TESTNETS

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')

# JSON key -> environment variable
_ENV_VARS = {
    'testnet': 'WALLET_TESTNET',
    'is_production': 'WALLET_IS_PRODUCTION',
    'rpc_url': 'WALLET_RPC_URL',
    'private_key': 'WALLET_PRIVATE_KEY',
    'poll_interval': 'WALLET_POLL_INTERVAL',
    'chain_id_store_path': 'CHAIN_ID_STORE_PATH',
}


@dataclass(frozen=True)
class SessionConfig:
    testnet: str = 'ropsten'
    is_production: bool = False
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None
    poll_interval: float = 2.0
    chain_id_store_path: Optional[str] = None

    def __post_init__(self):
        if self.testnet not in TESTNETS:
            raise ValueError(f"Unknown testnet '{self.testnet}'. Available: {TESTNETS}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Invalid boolean: {value!r}")


def load_session_config(config_path: Optional[str] = None, env_file: Optional[str] = None) -> SessionConfig:
    """
    Load session configuration

    Later sources win: JSON file, then environment (including .env).

    Args:
        config_path: Optional JSON file with the same keys as SessionConfig
        env_file: Optional .env path (default: search from the working directory)

    Returns:
        SessionConfig
    """
    load_dotenv(env_file)

    values: Dict[str, Any] = {}

    if config_path:
        with open(config_path, 'r') as f:
            file_values = json.load(f)
        unknown = set(file_values) - set(_ENV_VARS)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        values.update({k: v for k, v in file_values.items() if k in _ENV_VARS})

    for key, env_var in _ENV_VARS.items():
        env_value = os.getenv(env_var)
        if env_value is not None and env_value != '':
            values[key] = env_value

    if 'is_production' in values:
        values['is_production'] = _parse_bool(values['is_production'])
    if 'poll_interval' in values:
        values['poll_interval'] = float(values['poll_interval'])

    config = SessionConfig(**values)

    logger.info(
        f"Session config loaded: testnet={config.testnet}, "
        f"production={config.is_production}"
    )
    return config
