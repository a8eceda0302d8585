# services/portfolio/asset_classes.py
"""
Static asset-class tables used by the portfolio health score.

The ticker -> sector map is a small illustrative sample, not a maintained
sector classification. Tickers outside it fall back to the asset class
default sector, then to the asset class name itself.
"""
from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Any, Dict, List, Optional


class AssetClass(str, Enum):
    CASH = "cash"
    TERM_DEPOSIT = "term_deposit"
    BOND = "bond"
    NOTE = "note"
    MUTUAL_FUND = "mutual_fund"
    EQUITY = "equity"
    ETF = "etf"
    CEDEAR = "cedear"
    CRYPTO = "crypto"
    OTHER = "other"


class RiskTolerance(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


SECTOR_TICKERS: Dict[str, List[str]] = {
    "Technology": ["AAPL", "MSFT", "GOOGL", "META", "NVDA", "AMD", "INTC", "CSCO"],
    "Finance": ["JPM", "BAC", "WFC", "GS", "MS", "C", "BLK", "V", "MA"],
    "Healthcare": ["JNJ", "UNH", "PFE", "ABBV", "TMO", "MRK", "LLY", "DHR"],
    "Consumer": ["AMZN", "TSLA", "WMT", "HD", "MCD", "NKE", "SBUX", "TGT"],
    "Energy": ["XOM", "CVX", "COP", "SLB", "EOG", "MPC", "PSX", "VLO"],
    "Real Estate": ["AMT", "PLD", "CCI", "EQIX", "PSA", "DLR", "SPG", "O"],
    "Utilities": ["NEE", "DUK", "SO", "D", "AEP", "EXC", "SRE", "XEL"],
    "Materials": ["LIN", "APD", "ECL", "SHW", "NEM", "FCX", "NUE", "DD"],
    "Industrials": ["BA", "HON", "UNP", "UPS", "RTX", "LMT", "CAT", "GE"],
    "Communications": ["T", "VZ", "TMUS", "DIS", "CMCSA", "NFLX", "CHTR"],
}

TICKER_SECTORS: Dict[str, str] = {
    ticker: sector for sector, tickers in SECTOR_TICKERS.items() for ticker in tickers
}

# Equity and CEDEAR have no default: unknown tickers fall back to the class name.
DEFAULT_CLASS_SECTORS: Dict[AssetClass, str] = {
    AssetClass.CRYPTO: "Cryptocurrency",
    AssetClass.CASH: "Cash",
    AssetClass.BOND: "Fixed Income",
    AssetClass.NOTE: "Fixed Income",
    AssetClass.TERM_DEPOSIT: "Fixed Income",
    AssetClass.MUTUAL_FUND: "Mixed",
    AssetClass.ETF: "Mixed",
    AssetClass.OTHER: "Other",
}

DEFAULT_VOLATILITY = 2.0

VOLATILITY_WEIGHTS: Dict[AssetClass, float] = {
    AssetClass.CASH: 0.0,
    AssetClass.TERM_DEPOSIT: 0.0,
    AssetClass.BOND: 1.0,
    AssetClass.NOTE: 1.0,
    AssetClass.MUTUAL_FUND: 2.0,
    AssetClass.ETF: 2.0,
    AssetClass.EQUITY: 3.0,
    AssetClass.CEDEAR: 3.0,
    AssetClass.CRYPTO: 5.0,
    AssetClass.OTHER: DEFAULT_VOLATILITY,
}

TICKERED_CLASSES = frozenset({AssetClass.EQUITY, AssetClass.ETF, AssetClass.CEDEAR})
FIXED_INCOME_CLASSES = frozenset({AssetClass.BOND, AssetClass.NOTE, AssetClass.TERM_DEPOSIT})
ALTERNATIVE_CLASSES = frozenset({AssetClass.CRYPTO})

ASSET_CLASS_LABELS: Dict[str, Dict[AssetClass, str]] = {
    "en": {
        AssetClass.CASH: "Cash",
        AssetClass.TERM_DEPOSIT: "Term deposit",
        AssetClass.BOND: "Bond",
        AssetClass.NOTE: "Corporate note",
        AssetClass.MUTUAL_FUND: "Mutual fund",
        AssetClass.EQUITY: "Stock",
        AssetClass.ETF: "ETF",
        AssetClass.CEDEAR: "CEDEAR",
        AssetClass.CRYPTO: "Cryptocurrency",
        AssetClass.OTHER: "Other",
    },
    "es": {
        AssetClass.CASH: "Efectivo",
        AssetClass.TERM_DEPOSIT: "Plazo Fijo",
        AssetClass.BOND: "Bono",
        AssetClass.NOTE: "Obligación Negociable",
        AssetClass.MUTUAL_FUND: "Fondo Común de Inversión",
        AssetClass.EQUITY: "Acción",
        AssetClass.ETF: "ETF",
        AssetClass.CEDEAR: "CEDEAR",
        AssetClass.CRYPTO: "Criptomoneda",
        AssetClass.OTHER: "Otro",
    },
}

# Keys are accent-free, lowercased, with spaces/dashes folded to "_".
_ASSET_CLASS_ALIASES: Dict[str, AssetClass] = {
    "cash": AssetClass.CASH,
    "currency": AssetClass.CASH,
    "efectivo": AssetClass.CASH,
    "term_deposit": AssetClass.TERM_DEPOSIT,
    "deposit": AssetClass.TERM_DEPOSIT,
    "plazo_fijo": AssetClass.TERM_DEPOSIT,
    "bond": AssetClass.BOND,
    "bonds": AssetClass.BOND,
    "bono": AssetClass.BOND,
    "note": AssetClass.NOTE,
    "corporate_note": AssetClass.NOTE,
    "on": AssetClass.NOTE,
    "obligacion_negociable": AssetClass.NOTE,
    "mutual_fund": AssetClass.MUTUAL_FUND,
    "fund": AssetClass.MUTUAL_FUND,
    "fondo_comun": AssetClass.MUTUAL_FUND,
    "fondo_comun_de_inversion": AssetClass.MUTUAL_FUND,
    "fci": AssetClass.MUTUAL_FUND,
    "equity": AssetClass.EQUITY,
    "stock": AssetClass.EQUITY,
    "stocks": AssetClass.EQUITY,
    "accion": AssetClass.EQUITY,
    "acciones": AssetClass.EQUITY,
    "etf": AssetClass.ETF,
    "cedear": AssetClass.CEDEAR,
    "depositary_receipt": AssetClass.CEDEAR,
    "adr": AssetClass.CEDEAR,
    "crypto": AssetClass.CRYPTO,
    "cryptocurrency": AssetClass.CRYPTO,
    "criptomoneda": AssetClass.CRYPTO,
    "other": AssetClass.OTHER,
    "otro": AssetClass.OTHER,
}

_RISK_TOLERANCE_ALIASES: Dict[str, RiskTolerance] = {
    "conservative": RiskTolerance.CONSERVATIVE,
    "conservador": RiskTolerance.CONSERVATIVE,
    "moderate": RiskTolerance.MODERATE,
    "moderado": RiskTolerance.MODERATE,
    "aggressive": RiskTolerance.AGGRESSIVE,
    "agresivo": RiskTolerance.AGGRESSIVE,
}


def _fold(label: str) -> str:
    s = unicodedata.normalize("NFKD", label).encode("ascii", "ignore").decode("ascii")
    s = s.strip().lower().replace("-", " ")
    return "_".join(s.split())


def normalize_asset_class(label: Any) -> AssetClass:
    """Map free-text asset type labels (English or Spanish) to an AssetClass."""
    if isinstance(label, AssetClass):
        return label
    return _ASSET_CLASS_ALIASES.get(_fold(str(label or "")), AssetClass.OTHER)


def normalize_risk_tolerance(label: Any) -> Optional[RiskTolerance]:
    if label is None or isinstance(label, RiskTolerance):
        return label
    folded = _fold(str(label))
    if not folded:
        return None
    tolerance = _RISK_TOLERANCE_ALIASES.get(folded)
    if tolerance is None:
        raise ValueError(f"unknown risk tolerance: {label!r}")
    return tolerance


def sector_for(asset_class: AssetClass, ticker: Optional[str]) -> str:
    if ticker:
        sector = TICKER_SECTORS.get(ticker.upper())
        if sector:
            return sector
    return DEFAULT_CLASS_SECTORS.get(asset_class, asset_class.value)


def volatility_for(asset_class: AssetClass) -> float:
    return VOLATILITY_WEIGHTS.get(asset_class, DEFAULT_VOLATILITY)


def asset_class_label(asset_class: AssetClass, language: str = "en") -> str:
    labels = ASSET_CLASS_LABELS.get(language) or ASSET_CLASS_LABELS["en"]
    return labels.get(asset_class, asset_class.value)


def asset_class_catalog(language: str = "en") -> List[Dict[str, Any]]:
    """Catalogue of supported asset classes for dropdowns and filtering."""
    return [
        {
            "value": ac.value,
            "label": asset_class_label(ac, language),
            "tickered": ac in TICKERED_CLASSES,
            "fixed_income": ac in FIXED_INCOME_CLASSES,
            "alternative": ac in ALTERNATIVE_CLASSES,
            "default_sector": DEFAULT_CLASS_SECTORS.get(ac, ac.value),
            "volatility_weight": volatility_for(ac),
        }
        for ac in AssetClass
    ]
