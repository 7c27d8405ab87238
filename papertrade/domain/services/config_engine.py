"""
CONFIG ENGINE
Load, validate, and expose analytics configuration

RESPONSIBILITIES:
- Load the analytics YAML file
- Validate thresholds
- Expose a read-only typed object

RULES:
✅ Fail fast on invalid config
✅ Deterministic output
"""

import yaml
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from papertrade.domain.models import DEFAULT_SECTOR, SortDirection, SortKey


@dataclass(frozen=True)
class AnalyticsConfig:
    """Analytics thresholds - Immutable"""
    overweight_threshold_pct: Decimal = Decimal("30")
    dominant_threshold_pct: Decimal = Decimal("50")
    max_score: Decimal = Decimal("10")
    min_score: Decimal = Decimal("0")
    overweight_penalty: Decimal = Decimal("1")
    dominant_penalty: Decimal = Decimal("1")
    freshness_window: timedelta = timedelta(seconds=60)
    quote_expiry: timedelta = timedelta(days=1)
    max_future_skew: timedelta = timedelta(seconds=60)
    nav_tolerance_pct: Decimal = Decimal("0.5")
    default_sector: str = DEFAULT_SECTOR
    default_directions: Dict[SortKey, SortDirection] = field(
        default_factory=lambda: {
            SortKey.ALPHABETIC: SortDirection.ASC,
            SortKey.GAIN_LOSS_PERCENT: SortDirection.DESC,
            SortKey.WEIGHT: SortDirection.DESC,
        }
    )

    def __post_init__(self):
        if not Decimal("0") < self.overweight_threshold_pct <= Decimal("100"):
            raise ValueError("Overweight threshold must be within (0, 100]")
        if self.dominant_threshold_pct < self.overweight_threshold_pct:
            raise ValueError("Dominant threshold cannot be below overweight threshold")
        if self.min_score < Decimal("0") or self.max_score <= self.min_score:
            raise ValueError("Score range must satisfy 0 <= min < max")
        if self.overweight_penalty < Decimal("0") or self.dominant_penalty < Decimal("0"):
            raise ValueError("Penalties cannot be negative")
        if self.freshness_window <= timedelta(0):
            raise ValueError("Freshness window must be positive")
        if self.quote_expiry < self.freshness_window:
            raise ValueError("Quote expiry must not be shorter than the freshness window")
        if self.max_future_skew < timedelta(0):
            raise ValueError("Future clock skew cannot be negative")
        if self.nav_tolerance_pct < Decimal("0"):
            raise ValueError("NAV tolerance cannot be negative")
        if not self.default_sector:
            raise ValueError("Default sector cannot be empty")


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for analytics configuration
    """

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)
        self._analytics: Optional[AnalyticsConfig] = None

    def load_all(self) -> None:
        """Load and validate the analytics file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Analytics config not found: {self.config_path}")

        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        self._analytics = self.parse(data)

    @staticmethod
    def parse(data: Dict[str, Any]) -> AnalyticsConfig:
        """Build AnalyticsConfig from a decoded YAML mapping"""
        concentration = data.get("concentration", {}) or {}
        diversification = data.get("diversification", {}) or {}
        quotes = data.get("quotes", {}) or {}
        nav = data.get("nav", {}) or {}
        holdings = data.get("holdings", {}) or {}
        ranking = data.get("ranking", {}) or {}

        defaults = AnalyticsConfig()
        directions = dict(defaults.default_directions)
        for key, direction in (ranking.get("default_directions", {}) or {}).items():
            directions[SortKey(key)] = SortDirection(str(direction).lower())

        def _dec(section: Dict[str, Any], key: str, fallback: Decimal) -> Decimal:
            value = section.get(key)
            return fallback if value is None else Decimal(str(value))

        return AnalyticsConfig(
            overweight_threshold_pct=_dec(
                concentration, "overweight_threshold_pct", defaults.overweight_threshold_pct
            ),
            dominant_threshold_pct=_dec(
                concentration, "dominant_threshold_pct", defaults.dominant_threshold_pct
            ),
            max_score=_dec(diversification, "max_score", defaults.max_score),
            min_score=_dec(diversification, "min_score", defaults.min_score),
            overweight_penalty=_dec(diversification, "overweight_penalty", defaults.overweight_penalty),
            dominant_penalty=_dec(diversification, "dominant_penalty", defaults.dominant_penalty),
            freshness_window=timedelta(
                seconds=int(quotes.get("freshness_window_seconds", defaults.freshness_window.total_seconds()))
            ),
            quote_expiry=timedelta(
                seconds=int(quotes.get("expiry_seconds", defaults.quote_expiry.total_seconds()))
            ),
            max_future_skew=timedelta(
                seconds=int(quotes.get("max_future_skew_seconds", defaults.max_future_skew.total_seconds()))
            ),
            nav_tolerance_pct=_dec(nav, "tolerance_pct", defaults.nav_tolerance_pct),
            default_sector=str(holdings.get("default_sector", defaults.default_sector)),
            default_directions=directions,
        )

    @property
    def analytics(self) -> AnalyticsConfig:
        if self._analytics is None:
            raise RuntimeError("ConfigEngine.load_all() must be called first")
        return self._analytics
