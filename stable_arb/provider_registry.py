# stable_arb/provider_registry.py
"""
Maps provider names from providers.json to quote sources and swap
executors built from Settings. Names match case-, space-, hyphen- and
underscore-insensitively.
"""

from typing import Callable, Dict, List, Optional

from web3 import Web3

from config.registry import load_providers
from config.settings import Settings
from .executors import (
    CowSwapExecutor,
    OneInchExecutor,
    SwapExecutor,
    UniswapV3Executor,
    UniswapV4Executor,
)
from .quote_sources import (
    CowSwapQuoteSource,
    OneInchQuoteSource,
    QuoteSource,
    UniswapV3QuoteSource,
    UniswapV4QuoteSource,
)
from .utils.helpers import normalize_provider_name
from .utils.logger import get_logger
from .utils.retry import RetryOptions

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ["Uniswap V3", "Uniswap V4", "1Inch", "CowSwap"]

# alternative spellings, already normalized
PROVIDER_ALIASES = {
    "uniswapv3": "uniswapv3",
    "univ3": "uniswapv3",
    "uniswapv4": "uniswapv4",
    "univ4": "uniswapv4",
    "1inch": "1inch",
    "oneinch": "1inch",
    "cowswap": "cowswap",
    "cow": "cowswap",
    "cowprotocol": "cowswap",
}


def _retry_options(settings: Settings) -> RetryOptions:
    return RetryOptions(max_retries=settings.api.max_retries)


def _resolve(provider_name: str, network: str, config_path: Optional[str]) -> str:
    """Canonical key for a provider listed for the network"""
    available = load_providers(network, config_path)
    normalized = normalize_provider_name(provider_name)
    key = PROVIDER_ALIASES.get(normalized, normalized)

    available_keys = set()
    for name in available:
        listed = normalize_provider_name(name)
        available_keys.add(PROVIDER_ALIASES.get(listed, listed))

    if key not in available_keys:
        raise ValueError(
            f'Provider "{provider_name}" is not available for network "{network}". '
            f'Available providers: {", ".join(available)}'
        )

    if key not in PROVIDER_ALIASES.values():
        raise ValueError(
            f'Unknown provider: {provider_name}. Supported providers: {", ".join(SUPPORTED_PROVIDERS)}'
        )
    return key


def _quote_source_factories(settings: Settings, w3: Web3) -> Dict[str, Callable[[], QuoteSource]]:
    retry_options = _retry_options(settings)
    return {
        "uniswapv3": lambda: UniswapV3QuoteSource(
            w3, settings.dex.uniswap_v3_quoter, settings.dex.fee_tiers,
            settings.dex.default_fee_tier, retry_options
        ),
        "uniswapv4": lambda: UniswapV4QuoteSource(
            w3, settings.dex.uniswap_v4_quoter, settings.dex.fee_tiers,
            settings.dex.default_fee_tier, settings.dex.uniswap_v4_hooks, retry_options
        ),
        "1inch": lambda: OneInchQuoteSource(
            settings.api.oneinch_base_url, settings.api.oneinch_api_key,
            settings.api.request_timeout, retry_options
        ),
        "cowswap": lambda: CowSwapQuoteSource(
            settings.api.cowswap_base_url, settings.api.cowswap_app_data,
            settings.api.request_timeout, retry_options
        ),
    }


def _executor_factories(settings: Settings, w3: Web3) -> Dict[str, Callable[[], SwapExecutor]]:
    retry_options = _retry_options(settings)
    return {
        "uniswapv3": lambda: UniswapV3Executor(
            w3, settings.dex.uniswap_v3_router, settings.dex.default_fee_tier, retry_options
        ),
        "uniswapv4": lambda: UniswapV4Executor(w3, retry_options),
        "1inch": lambda: OneInchExecutor(
            w3, settings.api.oneinch_base_url, settings.api.oneinch_api_key,
            settings.api.request_timeout, retry_options
        ),
        "cowswap": lambda: CowSwapExecutor(
            w3, settings.api.cowswap_base_url,
            request_timeout=settings.api.request_timeout,
            poll_interval=settings.arbitrage.order_poll_interval,
            order_timeout=settings.arbitrage.order_timeout,
            retry_options=retry_options,
        ),
    }


def get_quote_source_for_provider(provider_name: str, network: str, settings: Settings, w3: Web3,
                                  config_path: Optional[str] = None) -> QuoteSource:
    """
    Raises:
        ValueError: provider not listed for the network, or not supported
    """
    key = _resolve(provider_name, network, config_path)
    return _quote_source_factories(settings, w3)[key]()


def get_executor_for_provider(provider_name: str, network: str, settings: Settings, w3: Web3,
                              config_path: Optional[str] = None) -> SwapExecutor:
    """
    Raises:
        ValueError: provider not listed for the network, or not supported
    """
    key = _resolve(provider_name, network, config_path)
    return _executor_factories(settings, w3)[key]()


def build_quote_sources(network: str, settings: Settings, w3: Web3,
                        config_path: Optional[str] = None) -> List[QuoteSource]:
    """One quote source per provider listed for the network, in registry order"""
    sources = [
        get_quote_source_for_provider(name, network, settings, w3, config_path)
        for name in load_providers(network, config_path)
    ]
    logger.info(f"Built {len(sources)} quote sources for {network}: {', '.join(s.name for s in sources)}")
    return sources


def build_executors(network: str, settings: Settings, w3: Web3,
                    config_path: Optional[str] = None) -> Dict[str, SwapExecutor]:
    """Executors for every provider listed for the network, keyed by display name"""
    executors = {}
    for name in load_providers(network, config_path):
        executor = get_executor_for_provider(name, network, settings, w3, config_path)
        executors[executor.name] = executor

    logger.info(f"Built {len(executors)} swap executors for {network}: {', '.join(executors)}")
    return executors
