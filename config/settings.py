# -*- coding: utf-8 -*-
# Configuration management
# config/settings.py

"""
Configuration Management for the Stablecoin Arbitrage Engine
Loads environment variables into typed sections and validates them.

Settings are built once at process start and passed down explicitly;
nothing here caches a global instance.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from config.addresses import (
    CHAIN_IDS,
    DEFAULT_FEE_TIER,
    NATIVE_TOKEN_COINGECKO_IDS,
    UNISWAP_FEE_TIERS,
    UNISWAP_V3_QUOTER,
    UNISWAP_V3_ROUTER,
    ZERO_ADDRESS,
    FeeTier,
    cowswap_api_base_url,
    get_chain_id_for_network,
    get_dex_address,
    oneinch_api_base_url,
)
from stable_arb.models import ArbitrageConfig
from stable_arb.utils.logger import get_logger

logger = get_logger('settings')

project_root = Path(__file__).parent.parent
env_path = project_root / 'config' / '.env'


def load_environment(path: Path = env_path) -> bool:
    """Load config/.env into the process environment if it exists"""
    if path.exists():
        load_dotenv(path)
        logger.info(f"[SUCCESS] Loaded environment from {path}")
        return True

    logger.debug(f"No .env file found at {path}, using process environment")
    return False


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {value}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {value}")


@dataclass
class NetworkConfig:
    """Network-specific configuration"""
    name: str
    rpc_url: str
    chain_id: int


@dataclass
class APIConfig:
    """External API configuration"""
    oneinch_api_key: Optional[str] = None
    oneinch_base_url: str = ""
    cowswap_base_url: str = ""
    cowswap_app_data: str = "trading-web3"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    native_token_id: str = "ethereum"
    request_timeout: float = 30.0
    max_retries: int = 3


@dataclass
class DEXConfig:
    """DEX contract configuration"""
    uniswap_v3_quoter: str = UNISWAP_V3_QUOTER
    uniswap_v3_router: str = UNISWAP_V3_ROUTER
    uniswap_v4_quoter: Optional[str] = None
    uniswap_v4_hooks: str = ZERO_ADDRESS
    fee_tiers: List[FeeTier] = field(default_factory=lambda: list(UNISWAP_FEE_TIERS))
    default_fee_tier: int = DEFAULT_FEE_TIER


@dataclass
class SecurityConfig:
    """Signing and safety configuration"""
    private_key: Optional[str] = None
    wallet_address: Optional[str] = None  # inspected wallet when no key is configured
    dry_run_mode: bool = False
    require_manual_approval: bool = False


class Settings:
    """
    Loads and validates all configuration sections from the environment
    """

    def __init__(self, dry_run: Optional[bool] = None, load_env_file: bool = True):
        if load_env_file:
            load_environment()

        self.project_root = project_root
        self.config_dir = project_root / 'config'

        self.network = self._load_network_config()
        self.api = self._load_api_config()
        self.dex = self._load_dex_config()
        self.security = self._load_security_config(dry_run)
        self.arbitrage = self._load_arbitrage_config()

        self._validate_configuration()

        logger.info("[CONFIG] Configuration loaded successfully")
        self._log_configuration_summary()

    def _load_network_config(self) -> NetworkConfig:
        network_name = os.getenv('NETWORK', 'polygon').strip().lower()
        chain_id = _env_int('CHAIN_ID', None)
        if chain_id is None:
            chain_id = get_chain_id_for_network(network_name)

        return NetworkConfig(
            name=network_name,
            rpc_url=os.getenv('RPC_URL', ''),
            chain_id=chain_id,
        )

    def _load_api_config(self) -> APIConfig:
        chain_id = self.network.chain_id
        return APIConfig(
            oneinch_api_key=os.getenv('ONEINCH_API_KEY') or None,
            oneinch_base_url=os.getenv('ONEINCH_API_BASE_URL') or oneinch_api_base_url(chain_id),
            cowswap_base_url=os.getenv('COWSWAP_API_BASE_URL') or cowswap_api_base_url(chain_id),
            cowswap_app_data=os.getenv('COWSWAP_APP_DATA', 'trading-web3'),
            coingecko_base_url=os.getenv('COINGECKO_API_BASE_URL', 'https://api.coingecko.com/api/v3'),
            native_token_id=NATIVE_TOKEN_COINGECKO_IDS.get(chain_id, 'ethereum'),
            request_timeout=_env_float('REQUEST_TIMEOUT', 30.0),
            max_retries=_env_int('MAX_RETRIES', 3),
        )

    def _load_dex_config(self) -> DEXConfig:
        chain_id = self.network.chain_id
        return DEXConfig(
            uniswap_v3_quoter=os.getenv('UNISWAP_V3_QUOTER_ADDRESS')
            or get_dex_address(chain_id, 'UNISWAP_V3_QUOTER', UNISWAP_V3_QUOTER),
            uniswap_v3_router=os.getenv('UNISWAP_V3_ROUTER_ADDRESS')
            or get_dex_address(chain_id, 'UNISWAP_V3_ROUTER', UNISWAP_V3_ROUTER),
            uniswap_v4_quoter=os.getenv('UNISWAP_V4_QUOTER_ADDRESS') or None,
            default_fee_tier=_env_int('DEFAULT_FEE_TIER', DEFAULT_FEE_TIER),
        )

    def _load_security_config(self, dry_run: Optional[bool]) -> SecurityConfig:
        return SecurityConfig(
            private_key=os.getenv('PRIVATE_KEY') or None,
            wallet_address=os.getenv('WALLET_ADDRESS') or None,
            dry_run_mode=_env_bool('DRY_RUN', False) if dry_run is None else dry_run,
            require_manual_approval=_env_bool('REQUIRE_MANUAL_APPROVAL', False),
        )

    def _load_arbitrage_config(self) -> ArbitrageConfig:
        return ArbitrageConfig(
            min_profit_bps=_env_int('MIN_PROFIT_BPS', 30),
            max_slippage_bps=_env_int('MAX_SLIPPAGE_BPS', 50),
            deadline_seconds=_env_int('DEADLINE_SECONDS', 300),
            check_gas_cost=_env_bool('CHECK_GAS_COST', True),
            min_balance_threshold=_env_int('MIN_BALANCE_THRESHOLD', None),
            dry_run=self.security.dry_run_mode,
            order_poll_interval=_env_float('ORDER_POLL_INTERVAL', 5.0),
            order_timeout=_env_float('ORDER_TIMEOUT', 300.0),
        )

    def _validate_configuration(self):
        """Validate configuration for critical issues"""
        errors = []
        warnings = []

        if not self.network.rpc_url:
            errors.append("RPC_URL is required")

        if self.network.chain_id not in CHAIN_IDS.values():
            warnings.append(f"Chain id {self.network.chain_id} is not a known network")

        if not self.security.private_key:
            if not self.security.dry_run_mode:
                errors.append("PRIVATE_KEY is required when not in dry run mode")
            else:
                warnings.append("PRIVATE_KEY not set - running in dry run mode only")
        elif len(self.security.private_key.replace('0x', '')) != 64:
            errors.append("PRIVATE_KEY must be 64 hex characters (32 bytes)")

        if self.dex.default_fee_tier not in [tier.fee for tier in self.dex.fee_tiers]:
            errors.append(f"DEFAULT_FEE_TIER {self.dex.default_fee_tier} is not a configured fee tier")

        if not self.api.oneinch_api_key:
            warnings.append("ONEINCH_API_KEY not set - using public tier with lower rate limits "
                            "(get a key at https://portal.1inch.dev/)")

        try:
            self.arbitrage.validate()
        except ValueError as e:
            errors.append(str(e))

        if errors:
            logger.error(f"[ERROR] Configuration errors: {', '.join(errors)}")
            raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

        for warning in warnings:
            logger.warning(f"[WARNING] {warning}")

    def _log_configuration_summary(self):
        logger.info("[CONFIG] Configuration Summary:")
        logger.info(f"  [NETWORK] {self.network.name} (chain {self.network.chain_id})")
        logger.info(f"  [PROFIT] Min profit: {self.arbitrage.min_profit_bps} bps")
        logger.info(f"  [SLIPPAGE] Max slippage: {self.arbitrage.max_slippage_bps} bps")
        logger.info(f"  [DEADLINE] {self.arbitrage.deadline_seconds}s")
        logger.info(f"  [MODE] {'DRY RUN' if self.arbitrage.dry_run else 'LIVE TRADING'}")

        if self.arbitrage.dry_run:
            logger.warning("[SAFE] DRY RUN MODE - No real trades will be executed")

    def to_dict(self) -> Dict[str, Any]:
        """Settings as a dictionary (excluding sensitive data)"""
        return {
            'network': {
                'name': self.network.name,
                'chain_id': self.network.chain_id,
            },
            'arbitrage': {
                'min_profit_bps': self.arbitrage.min_profit_bps,
                'max_slippage_bps': self.arbitrage.max_slippage_bps,
                'deadline_seconds': self.arbitrage.deadline_seconds,
                'check_gas_cost': self.arbitrage.check_gas_cost,
                'dry_run': self.arbitrage.dry_run,
            },
            'security': {
                'has_private_key': bool(self.security.private_key),
                'require_manual_approval': self.security.require_manual_approval,
            },
        }


def load_settings(dry_run: Optional[bool] = None) -> Settings:
    """Build a fresh Settings from the current environment"""
    return Settings(dry_run=dry_run)


__all__ = [
    'Settings', 'ArbitrageConfig', 'NetworkConfig', 'APIConfig', 'DEXConfig',
    'SecurityConfig', 'load_settings', 'load_environment',
]
