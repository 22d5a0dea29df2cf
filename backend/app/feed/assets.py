"""Selectable assets and per-asset parameters for the trade simulator."""

from __future__ import annotations

# Assets offered in the dashboard's selector, in display order
SUPPORTED_ASSETS: tuple[str, ...] = (
    "HYPE",
    "BTC",
    "ETH",
    "SOL",
    "ARB",
    "AVAX",
    "DOGE",
    "XRP",
)

DEFAULT_ASSET = "HYPE"

# Rough starting prices for the simulator (USD)
SEED_PRICES: dict[str, float] = {
    "HYPE": 38.50,
    "BTC": 97000.00,
    "ETH": 3400.00,
    "SOL": 190.00,
    "ARB": 0.75,
    "AVAX": 36.00,
    "DOGE": 0.32,
    "XRP": 2.30,
}

# Per-asset GBM parameters
# sigma: annualized volatility, mu: annualized drift
# typical_size: mean trade size in base units
ASSET_PARAMS: dict[str, dict[str, float]] = {
    "HYPE": {"sigma": 1.10, "mu": 0.10, "typical_size": 40.0},
    "BTC": {"sigma": 0.55, "mu": 0.05, "typical_size": 0.05},
    "ETH": {"sigma": 0.70, "mu": 0.05, "typical_size": 1.5},
    "SOL": {"sigma": 0.90, "mu": 0.05, "typical_size": 20.0},
    "ARB": {"sigma": 1.00, "mu": 0.00, "typical_size": 3000.0},
    "AVAX": {"sigma": 0.95, "mu": 0.00, "typical_size": 60.0},
    "DOGE": {"sigma": 1.00, "mu": 0.00, "typical_size": 8000.0},
    "XRP": {"sigma": 0.85, "mu": 0.00, "typical_size": 1000.0},
}

DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.80, "mu": 0.05, "typical_size": 10.0}


def normalize_asset(symbol: str) -> str:
    """Canonical form of a user-supplied symbol. Raises ValueError if not selectable."""
    asset = symbol.upper().strip()
    if asset not in SUPPORTED_ASSETS:
        raise ValueError(f"Unsupported asset {symbol!r}; choose one of {', '.join(SUPPORTED_ASSETS)}")
    return asset
