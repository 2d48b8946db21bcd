"""Development market catalog served when no DFLOW_API_KEY is configured."""

from src.lf_common.enums import MarketStatus
from src.lf_market.domain.models import MarketSummary

DEFAULT_RULES = "Market resolves YES if the condition is met by the expiration date."
DEFAULT_RESOLUTION_SOURCE = "Kalshi Official Resolution via DFlow"

DEV_MARKETS: tuple[MarketSummary, ...] = (
    MarketSummary(
        id="btc-100k-2025",
        ticker="BTC100K",
        title="Will Bitcoin reach $100,000 by end of Q1 2025?",
        description="Resolves YES if Bitcoin reaches $100,000 USD on any major exchange.",
        category="Crypto",
        status=MarketStatus.OPEN.value,
        expires_at="2025-03-31T23:59:59Z",
        yes_price=720_000,
        no_price=280_000,
        volume_24h=1_500_000_000_000,
        open_interest=5_000_000_000_000,
        yes_mint="BTC100K_YES_MOCK_MINT",
        no_mint="BTC100K_NO_MOCK_MINT",
    ),
    MarketSummary(
        id="fed-rate-jan",
        ticker="FEDJAN",
        title="Will the Fed cut rates in January 2025?",
        description="Resolves YES if the Federal Reserve announces a rate cut at the January FOMC meeting.",
        category="Economics",
        status=MarketStatus.OPEN.value,
        expires_at="2025-01-29T19:00:00Z",
        yes_price=150_000,
        no_price=850_000,
        volume_24h=800_000_000_000,
        open_interest=2_500_000_000_000,
        yes_mint="FEDJAN_YES_MOCK_MINT",
        no_mint="FEDJAN_NO_MOCK_MINT",
    ),
    MarketSummary(
        id="eth-5k-q1-2025",
        ticker="ETH5K",
        title="Will Ethereum reach $5,000 by Q1 2025?",
        description="Resolves YES if ETH/USD reaches $5,000 on major exchanges.",
        category="Crypto",
        status=MarketStatus.OPEN.value,
        expires_at="2025-03-31T23:59:59Z",
        yes_price=380_000,
        no_price=620_000,
        volume_24h=920_000_000_000,
        open_interest=3_100_000_000_000,
        yes_mint="ETH5K_YES_MOCK_MINT",
        no_mint="ETH5K_NO_MOCK_MINT",
    ),
    MarketSummary(
        id="inflation-below-3",
        ticker="CPI3",
        title="Will US CPI inflation fall below 3% by March 2025?",
        description="Resolves YES if the 12-month CPI reading is below 3.0%.",
        category="Economics",
        status=MarketStatus.OPEN.value,
        expires_at="2025-04-10T12:00:00Z",
        yes_price=550_000,
        no_price=450_000,
        volume_24h=420_000_000_000,
        open_interest=1_800_000_000_000,
        yes_mint="CPI3_YES_MOCK_MINT",
        no_mint="CPI3_NO_MOCK_MINT",
    ),
    MarketSummary(
        id="sol-300-2025",
        ticker="SOL300",
        title="Will Solana reach $300 by end of Q2 2025?",
        description="Resolves YES if SOL/USD reaches $300 on major exchanges.",
        category="Crypto",
        status=MarketStatus.OPEN.value,
        expires_at="2025-06-30T23:59:59Z",
        yes_price=420_000,
        no_price=580_000,
        volume_24h=650_000_000_000,
        open_interest=2_200_000_000_000,
        yes_mint="SOL300_YES_MOCK_MINT",
        no_mint="SOL300_NO_MOCK_MINT",
    ),
    MarketSummary(
        id="gdp-q4-2024",
        ticker="GDPQ4",
        title="Will Q4 2024 US GDP growth exceed 3%?",
        description="Resolves YES if the final estimate of Q4 2024 GDP growth is above 3%.",
        category="Economics",
        status=MarketStatus.OPEN.value,
        expires_at="2025-02-28T12:00:00Z",
        yes_price=480_000,
        no_price=520_000,
        volume_24h=350_000_000_000,
        open_interest=1_200_000_000_000,
        yes_mint="GDPQ4_YES_MOCK_MINT",
        no_mint="GDPQ4_NO_MOCK_MINT",
    ),
)
