from .general import StrEnum


class FeatureCol(StrEnum):
    """Feature names referenced by the default domain tables."""

    # Technical
    RSI = "rsi"
    MACD = "macd"
    MOMENTUM = "momentum"
    PRICE_MOMENTUM = "price_momentum"
    VOLUME = "volume"
    VOLUME_TREND = "volume_trend"
    TECHNICAL_INDICATORS = "technical_indicators"

    # Risk
    VOLATILITY = "volatility"
    BETA = "beta"
    SHORT_INTEREST = "short_interest"

    # Fundamental
    MARKET_CAP = "market_cap"
    PE_RATIO = "pe_ratio"
    DIVIDEND_YIELD = "dividend_yield"
    FUNDAMENTAL_RATIOS = "fundamental_ratios"
    SECTOR_PERFORMANCE = "sector_performance"

    # Sentiment / Flow
    SENTIMENT = "sentiment"
    ANALYST_RATING = "analyst_rating"
    INSIDER_BUYING = "insider_buying"


class DataCol(StrEnum):
    """Structural columns of historical and temporal datasets."""

    TIME = "time"
    TARGET = "target"
