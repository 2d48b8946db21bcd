"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class FundStage(str, Enum):
    OPEN = "Open"
    TRADING = "Trading"
    SETTLEMENT = "Settlement"
    CLOSED = "Closed"


class SnapshotSource(str, Enum):
    """What produced a snapshot row."""
    GENESIS = "GENESIS"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    INDEXER = "INDEXER"
    FINALIZE = "FINALIZE"


class WithdrawalStatus(str, Enum):
    PENDING = "Pending"
    PARTIALLY_FILLED = "PartiallyFilled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class OutcomeSide(str, Enum):
    YES = "YES"
    NO = "NO"


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"


class PrincipalRole(str, Enum):
    INVESTOR = "investor"
    INDEXER = "indexer"
