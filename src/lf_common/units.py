"""Fixed-point integer arithmetic for USDC amounts and fund shares.

All amounts, share counts and share prices are int micro-units:
  1 USDC  = 1_000_000 micro-USDC
  1 share = 1_000_000 micro-shares
  share_price = micro-USDC per whole share (1_000_000 == 1.00 USDC)

No float, no Decimal. Every fee is floor division (the investor never
pays more than the exact bps fraction).
"""

import re

USDC_SCALE = 1_000_000
BPS_DENOMINATOR = 10_000
INITIAL_SHARE_PRICE = USDC_SCALE
MAX_MICRO_UNITS = 2**63 - 1  # PostgreSQL BIGINT

_DECIMAL_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")


def bps_of(amount: int, bps: int) -> int:
    """floor(amount * bps / 10000)."""
    if amount == 0 or bps == 0:
        return 0
    return (amount * bps) // BPS_DENOMINATOR


def shares_for_amount(net_amount: int, share_price: int) -> int:
    """Micro-shares bought by `net_amount` micro-USDC at `share_price`, truncated."""
    if share_price <= 0:
        raise ValueError(f"share_price must be positive, got {share_price}")
    return (net_amount * USDC_SCALE) // share_price


def amount_for_shares(shares: int, share_price: int) -> int:
    """Micro-USDC value of `shares` micro-shares at `share_price`, truncated."""
    return (shares * share_price) // USDC_SCALE


def share_price_of(nav: int, total_shares: int, fallback: int) -> int:
    """nav / total_shares in micro-USDC per share; `fallback` when no shares exist."""
    if total_shares <= 0:
        return fallback
    return (nav * USDC_SCALE) // total_shares


def parse_units(value: str) -> int:
    """Parse a human decimal string to micro-units: '1.5' -> 1500000.

    At most 6 fractional digits; negative numbers and exponents rejected.
    """
    match = _DECIMAL_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid number format: {value!r}")
    integer_part, fraction = match.group(1), match.group(2) or ""
    if len(fraction) > 6:
        raise ValueError(
            f"Precision mismatch: {len(fraction)} decimals provided, max 6 allowed"
        )
    return int(integer_part) * USDC_SCALE + int(fraction.ljust(6, "0"))


def units_to_display(units: int) -> str:
    """Format micro-units: 9900000000 -> '9,900.000000', -61500000 -> '-61.500000'."""
    if units < 0:
        return "-" + units_to_display(-units)
    return f"{units // USDC_SCALE:,}.{units % USDC_SCALE:06d}"
