# Contract addresses and network constants
# config/addresses.py

"""
Network and DEX constants: chain ids, Uniswap fee tiers, contract
addresses and API base URLs per chain
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

# =============================================================================
# NETWORKS
# =============================================================================

CHAIN_IDS: Dict[str, int] = {
    "polygon": 137,
    "ethereum": 1,
    "mainnet": 1,
    "goerli": 5,
    "sepolia": 11155111,
    "arbitrum": 42161,
    "optimism": 10,
    "base": 8453,
}

NATIVE_TOKEN_COINGECKO_IDS: Dict[int, str] = {
    1: "ethereum",
    5: "ethereum",
    11155111: "ethereum",
    10: "ethereum",
    8453: "ethereum",
    42161: "ethereum",
    137: "matic-network",
}


def get_chain_id_for_network(network: str) -> int:
    """Chain id for a network name (case-insensitive)"""
    chain_id = CHAIN_IDS.get(network.strip().lower())
    if chain_id is None:
        raise ValueError(
            f"Unknown network: {network}. Supported networks: {', '.join(CHAIN_IDS)}"
        )
    return chain_id


def get_network_for_chain_id(chain_id: int) -> str:
    """Network name for a chain id; chain 1 is reported as 'ethereum'"""
    for network, known_id in CHAIN_IDS.items():
        if known_id == chain_id:
            return "ethereum" if network == "mainnet" else network
    raise ValueError(f"Unknown chain ID: {chain_id}")


# =============================================================================
# UNISWAP
# =============================================================================

@dataclass(frozen=True)
class FeeTier:
    fee: int            # hundredths of a bip, 3000 = 0.3%
    tick_spacing: int


UNISWAP_FEE_TIERS: List[FeeTier] = [
    FeeTier(fee=500, tick_spacing=10),
    FeeTier(fee=3000, tick_spacing=60),
    FeeTier(fee=10000, tick_spacing=200),
]
DEFAULT_FEE_TIER = 3000

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_HASH = "0x" + "00" * 32

UNISWAP_V3_QUOTER = "0xb27308f9F90D607463bb33eA1BeBb41C27CE5AB6"
UNISWAP_V3_ROUTER = "0xE592427A0AEce92De3Edee1F18E0157C05861564"

# =============================================================================
# COW PROTOCOL
# =============================================================================

COWSWAP_VAULT_RELAYER = "0xC92E8bdf79f0507f65a392b0ab4667716BFE0110"
COWSWAP_SETTLEMENT = "0x9008D19f58AAbD9eD0D60971565AA8510560ab41"

COWSWAP_API_NETWORKS: Dict[int, str] = {
    1: "mainnet",
    5: "goerli",
    11155111: "sepolia",
    42161: "arbitrum_one",
    8453: "base",
    137: "polygon",
}

# =============================================================================
# PER-CHAIN DEX ADDRESSES
# =============================================================================

# Quoter (v1) and SwapRouter share addresses on these deployments
DEX_ADDRESSES: Dict[int, Dict[str, str]] = {
    chain_id: {
        "UNISWAP_V3_QUOTER": UNISWAP_V3_QUOTER,
        "UNISWAP_V3_ROUTER": UNISWAP_V3_ROUTER,
        "COWSWAP_VAULT_RELAYER": COWSWAP_VAULT_RELAYER,
        "COWSWAP_SETTLEMENT": COWSWAP_SETTLEMENT,
    }
    for chain_id in (1, 5, 137, 42161, 10)
}


def get_dex_address(chain_id: int, name: str, default: Optional[str] = None) -> Optional[str]:
    """Contract address for a chain, falling back to default"""
    return DEX_ADDRESSES.get(chain_id, {}).get(name, default)


def oneinch_api_base_url(chain_id: int) -> str:
    return f"https://api.1inch.dev/swap/v5.2/{chain_id}"


def cowswap_api_base_url(chain_id: int) -> str:
    network = COWSWAP_API_NETWORKS.get(chain_id, "mainnet")
    return f"https://api.cow.fi/{network}"
