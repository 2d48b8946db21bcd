"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Fund / share accounting
  3xxx: Market / external venues
  5xxx: Position
  9xxx: System

Every error carries a taxonomy `kind` that is returned to the caller next to
the numeric code. Messages never include internal state beyond the amounts
the caller already supplied or owns.
"""


class AppError(Exception):
    """Base application error."""

    kind: str = "Internal"
    retryable: bool = False

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    kind = "Unauthorized"

    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    kind = "Unauthorized"

    def __init__(self, detail: str) -> None:
        super().__init__(1002, f"Forbidden: {detail}", 403)


# --- 2xxx: Fund ---

class ValidationError(AppError):
    kind = "ValidationError"

    def __init__(self, detail: str) -> None:
        super().__init__(2001, detail, 422)


class InvalidStageTransitionError(AppError):
    kind = "InvalidStageTransition"

    def __init__(self, current: str, operation: str, required: str) -> None:
        super().__init__(
            2002,
            f"Cannot {operation}: fund must be in {required} stage (current: {current})",
            409,
        )


class StageOperationNotAllowedError(AppError):
    kind = "StageOperationNotAllowed"

    def __init__(self, operation: str, stage: str) -> None:
        super().__init__(2003, f"{operation} not allowed during {stage} stage", 409)


class InsufficientSharesError(AppError):
    kind = "InsufficientShares"

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            2004,
            f"Insufficient shares: requested {requested}, available {available}",
            422,
        )


class InsufficientBalanceError(AppError):
    kind = "InsufficientBalance"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2005,
            f"Insufficient fund balance: required {required}, available {available}",
            422,
        )


class PerfFeeAlreadyPaidError(AppError):
    kind = "PerfFeeAlreadyPaid"

    def __init__(self, fund_id: str) -> None:
        super().__init__(2006, f"Performance fee already paid for fund {fund_id}", 409)


class FundExistsError(AppError):
    kind = "Conflict"

    def __init__(self, detail: str) -> None:
        super().__init__(2007, f"Fund already exists: {detail}", 409)


class ConcurrentModificationError(AppError):
    kind = "Conflict"
    retryable = True

    def __init__(self, fund_id: str) -> None:
        super().__init__(2008, f"Fund {fund_id} was modified concurrently, retry", 409)


class InsufficientBufferError(AppError):
    kind = "InsufficientBuffer"

    def __init__(self, payout: int, buffer_required: int, available: int) -> None:
        super().__init__(
            2009,
            f"Insufficient liquidity buffer: payout {payout} plus buffer {buffer_required} "
            f"exceeds available {available}; queue a withdrawal request instead",
            422,
        )


class WithdrawalRequestInactiveError(AppError):
    kind = "WithdrawalRequestInactive"

    def __init__(self, request_id: int | None, status: str) -> None:
        super().__init__(2010, f"Withdrawal request {request_id} is {status}", 409)


class CannotCancelPartialWithdrawalError(AppError):
    kind = "CannotCancelPartialWithdrawal"

    def __init__(self, request_id: int | None) -> None:
        super().__init__(
            2011,
            f"Withdrawal request {request_id} is partially filled and cannot be cancelled",
            409,
        )


class EpochNotReadyError(AppError):
    kind = "EpochNotReady"
    retryable = True

    def __init__(self, next_epoch_at: str) -> None:
        super().__init__(2012, f"Withdrawal epoch not ready until {next_epoch_at}", 409)


class FundNotFoundError(AppError):
    kind = "NotFound"

    def __init__(self, fund_id: str) -> None:
        super().__init__(2101, f"Fund not found: {fund_id}", 404)


class DepositorNotFoundError(AppError):
    kind = "NotFound"

    def __init__(self, wallet: str) -> None:
        super().__init__(2102, f"Depositor not found: {wallet}", 404)


class WithdrawalRequestNotFoundError(AppError):
    kind = "NotFound"

    def __init__(self, request_id: int) -> None:
        super().__init__(2103, f"Withdrawal request not found: {request_id}", 404)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    kind = "NotFound"

    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class AdapterUnavailableError(AppError):
    kind = "AdapterUnavailable"
    retryable = True

    def __init__(self, venue: str, detail: str) -> None:
        super().__init__(3002, f"{venue} temporarily unavailable: {detail}", 503)


# --- 5xxx: Position ---

class InsufficientPositionError(AppError):
    kind = "InsufficientPosition"

    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Insufficient position: {detail}", 422)


class PositionNotFoundError(AppError):
    kind = "NotFound"

    def __init__(self, market_id: str, side: str) -> None:
        super().__init__(5002, f"Position not found: {market_id} {side}", 404)


class DuplicateTradeError(AppError):
    kind = "Conflict"

    def __init__(self, tx_sig: str) -> None:
        super().__init__(5003, f"Trade already recorded: {tx_sig}", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
