"""Per-fund asyncio locks shared by every service that mutates fund state.

In-process serialization only. Across processes the fund row lock
(SELECT ... FOR UPDATE) and UNIQUE(fund_id, version) on fund_snapshots apply.
"""

import asyncio
from collections import defaultdict


class FundLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def for_fund(self, fund_id: str) -> asyncio.Lock:
        return self._locks[fund_id]


fund_locks = FundLocks()
