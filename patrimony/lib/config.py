"""Application configuration constants and runtime settings."""

import os
from dataclasses import dataclass
from typing import Optional

# Price resolution
QUOTE_CACHE_TTL = 10  # seconds; prices move and holdings get edited
PRICE_REFRESH_INTERVAL = 60  # seconds between whole-batch resolution passes

# Relay passthroughs, tried in this order after a direct request where allowed
CORSPROXY_URL = "https://corsproxy.io/?"
ALLORIGINS_URL = "https://api.allorigins.win/raw?url="
THINGPROXY_URL = "https://thingproxy.freeboard.io/fetch/"

# Provider endpoints
CRYPTOCOMPARE_PRICE_URL = "https://min-api.cryptocompare.com/data/price"
COINBASE_SPOT_URL = "https://api.coinbase.com/v2/prices/{symbol}-USD/spot"
COINGECKO_SEARCH_URL = "https://api.coingecko.com/api/v3/search"
COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
FINNHUB_QUOTE_URL = "https://finnhub.io/api/v1/quote"
FINNHUB_SEARCH_URL = "https://finnhub.io/api/v1/search"
YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"
YAHOO_SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_MAX_RESULTS = 10

# CoinGecko ids for the most common symbols (skips a rate-limited search call)
COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOT": "polkadot",
    "DOGE": "dogecoin",
    "AVAX": "avalanche-2",
    "MATIC": "matic-network",
    "USDT": "tether",
    "USDC": "usd-coin",
    "BNB": "binancecoin",
}

# Currencies
BASE_CURRENCY = "EUR"
EURUSD_FX_TICKER = "EURUSD=X"

# Static EUR value of one unit of each currency (bootstrap, not live)
STATIC_EXCHANGE_RATES = {
    "EUR": 1.0,
    "USD": 0.918,
    "GBP": 1.165,
    "CHF": 1.045,
    "JPY": 0.00548,
}

# Minor units quoted by some exchanges (e.g. London in pence)
MINOR_CURRENCY_UNITS = {
    "GBp": ("GBP", 100),
    "GBX": ("GBP", 100),
    "ZAc": ("ZAR", 100),
    "ILA": ("ILS", 100),
}

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "CHF": "CHF",
    "JPY": "¥",
}

# Instrument classification keywords (matched against lowercased holding names)
COMMODITY_KEYWORDS = ("gold", " or ", "silver", "physical", "commodity")
BOND_KEYWORDS = ("bond", "oblig", "treasury")

# History approximation
HISTORY_DEFAULT_LOOKBACK_DAYS = 30


@dataclass(frozen=True)
class Settings:
    """Runtime settings supplied by the settings collaborator.

    Attributes:
        finnhub_api_key: Optional credential for the Finnhub quote provider
        reporting_currency: Currency used for display conversion
        log_file: Log file path (empty string disables file logging)
    """

    finnhub_api_key: str = ""
    reporting_currency: str = BASE_CURRENCY
    log_file: Optional[str] = None

    @property
    def has_finnhub_key(self) -> bool:
        return bool(self.finnhub_api_key.strip())


def load_settings(
    finnhub_api_key: Optional[str] = None,
    reporting_currency: Optional[str] = None,
) -> Settings:
    """
    Build settings from environment variables, with explicit overrides.

    Args:
        finnhub_api_key: Overrides FINNHUB_API_KEY when given
        reporting_currency: Overrides PATRIMONY_CURRENCY when given

    Returns:
        Settings instance
    """
    key = finnhub_api_key if finnhub_api_key is not None else os.getenv("FINNHUB_API_KEY", "")
    currency = reporting_currency or os.getenv("PATRIMONY_CURRENCY", BASE_CURRENCY)

    return Settings(
        finnhub_api_key=key.strip(),
        reporting_currency=currency.strip().upper(),
        log_file=os.getenv("LOG_FILE"),
    )
