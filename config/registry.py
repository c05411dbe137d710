# Token and provider registries
# config/registry.py

"""
Loaders for the per-network stablecoin and provider registries
(stablecoins.json and providers.json). Malformed entries fail fast with
ValueError at load time.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from stable_arb.models import Token
from stable_arb.utils.logger import get_logger

logger = get_logger('registry')

CONFIG_DIR = Path(__file__).parent
STABLECOINS_FILE = 'stablecoins.json'
PROVIDERS_FILE = 'providers.json'

ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')

PathLike = Union[str, Path]


def _resolve(config_path: Optional[PathLike], filename: str) -> Path:
    """config_path may be the file itself or a directory containing it."""
    if config_path is None:
        return CONFIG_DIR / filename
    path = Path(config_path)
    return path / filename if path.is_dir() else path


def _read_network_entries(path: Path, network: str, kind: str) -> Any:
    try:
        data: Dict[str, Any] = json.loads(path.read_text(encoding='utf-8'))
    except FileNotFoundError:
        logger.error(f"[ERROR] {kind} configuration not found at {path}")
        raise ValueError(f"{kind} configuration file not found: {path}")
    except json.JSONDecodeError as e:
        logger.error(f"[ERROR] {kind} configuration at {path} is not valid JSON: {e}")
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    key = network.strip().lower()
    if key not in data:
        logger.error(f"[ERROR] No {kind.lower()} configuration found for network: {network}")
        raise ValueError(f"No {kind.lower()} configuration found for network: {network}")

    return data[key]


def validate_stablecoins(stablecoins: List[Token]) -> bool:
    """Raise ValueError on the first malformed token; True otherwise"""
    if not stablecoins:
        raise ValueError("No stablecoins configured")

    for token in stablecoins:
        if not token.symbol or not str(token.symbol).strip():
            raise ValueError("Token symbol cannot be empty")

        if not isinstance(token.address, str) or not ADDRESS_PATTERN.match(token.address):
            raise ValueError(f"Invalid address for {token.symbol}: {token.address}")

        if not isinstance(token.decimals, int) or token.decimals <= 0 or token.decimals > 18:
            raise ValueError(f"Invalid decimals for {token.symbol}: {token.decimals}")

    return True


def load_stablecoins(network: str, chain_id: int, config_path: Optional[PathLike] = None) -> List[Token]:
    """
    Load the stablecoin candidates for a network.

    Args:
        network: Network key in stablecoins.json (e.g. 'polygon')
        chain_id: Chain id stamped on every token
        config_path: Registry file, or a directory holding stablecoins.json

    Returns:
        Tokens in registry order
    """
    path = _resolve(config_path, STABLECOINS_FILE)
    entries = _read_network_entries(path, network, 'Stablecoin')

    try:
        stablecoins = [
            Token(address=entry['address'], decimals=entry['decimals'], symbol=entry['symbol'], chain_id=chain_id)
            for entry in entries
        ]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed stablecoin entry for {network}: {e}") from e

    validate_stablecoins(stablecoins)

    logger.info(f"Loaded {len(stablecoins)} stablecoins for {network}: "
                f"{', '.join(token.symbol for token in stablecoins)}")
    return stablecoins


def validate_providers(providers: List[str]) -> bool:
    if not providers:
        raise ValueError("No providers configured")

    for provider in providers:
        if not isinstance(provider, str) or not provider.strip():
            raise ValueError("Provider name cannot be empty")

    return True


def load_providers(network: str, config_path: Optional[PathLike] = None) -> List[str]:
    """Provider names eligible on a network, in registry order"""
    path = _resolve(config_path, PROVIDERS_FILE)
    providers = _read_network_entries(path, network, 'Provider')

    if not isinstance(providers, list):
        raise ValueError(f"Provider configuration for {network} must be a list of names")

    validate_providers(providers)

    logger.debug(f"Loaded {len(providers)} providers for {network}: {', '.join(providers)}")
    return list(providers)
