"""Tests for lf_common.errors and lf_common.response."""

from src.lf_common.errors import (
    AdapterUnavailableError,
    AppError,
    CannotCancelPartialWithdrawalError,
    ConcurrentModificationError,
    DuplicateTradeError,
    EpochNotReadyError,
    FundExistsError,
    FundNotFoundError,
    InsufficientBalanceError,
    InsufficientBufferError,
    InsufficientSharesError,
    InvalidStageTransitionError,
    StageOperationNotAllowedError,
    ValidationError,
    WithdrawalRequestInactiveError,
    WithdrawalRequestNotFoundError,
)
from src.lf_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert err.kind == "Internal"
        assert err.retryable is False

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestErrorTaxonomy:
    def test_validation(self) -> None:
        err = ValidationError("bad amount")
        assert (err.code, err.http_status, err.kind) == (2001, 422, "ValidationError")

    def test_invalid_stage_transition(self) -> None:
        err = InvalidStageTransitionError("Trading", "start trading", "Open")
        assert err.code == 2002
        assert err.http_status == 409
        assert err.kind == "InvalidStageTransition"
        assert "Trading" in err.message and "Open" in err.message

    def test_stage_operation_not_allowed(self) -> None:
        err = StageOperationNotAllowedError("Deposit", "Trading")
        assert err.kind == "StageOperationNotAllowed"
        assert err.message == "Deposit not allowed during Trading stage"

    def test_insufficient_shares(self) -> None:
        err = InsufficientSharesError(requested=500, available=100)
        assert err.kind == "InsufficientShares"
        assert "500" in err.message and "100" in err.message

    def test_insufficient_balance(self) -> None:
        err = InsufficientBalanceError(required=10, available=5)
        assert err.kind == "InsufficientBalance"
        assert err.http_status == 422

    def test_not_found(self) -> None:
        err = FundNotFoundError("f-1")
        assert (err.http_status, err.kind) == (404, "NotFound")

    def test_conflicts(self) -> None:
        assert FundExistsError("f-1").kind == "Conflict"
        assert DuplicateTradeError("sig").code == 5003
        concurrent = ConcurrentModificationError("f-1")
        assert concurrent.kind == "Conflict"
        assert concurrent.retryable is True

    def test_insufficient_buffer(self) -> None:
        err = InsufficientBufferError(payout=95, buffer_required=90, available=150)
        assert (err.code, err.http_status, err.kind) == (2009, 422, "InsufficientBuffer")
        assert "withdrawal request" in err.message

    def test_withdrawal_queue_errors(self) -> None:
        assert WithdrawalRequestNotFoundError(7).http_status == 404
        inactive = WithdrawalRequestInactiveError(7, "Completed")
        assert inactive.kind == "WithdrawalRequestInactive"
        assert "Completed" in inactive.message
        assert CannotCancelPartialWithdrawalError(7).code == 2011
        epoch = EpochNotReadyError("2026-10-19T00:00:00+00:00")
        assert epoch.kind == "EpochNotReady"
        assert epoch.retryable is True

    def test_adapter_unavailable_is_retryable(self) -> None:
        err = AdapterUnavailableError("DFlow", "request timed out")
        assert err.http_status == 503
        assert err.retryable is True
        assert err.message.startswith("DFlow")


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"key": "value"})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"key": "value"}
        assert resp.request_id.startswith("req_")

    def test_error_response_carries_kind(self) -> None:
        resp = error_response(2004, "Insufficient shares", "InsufficientShares")
        assert resp.code == 2004
        assert resp.data == {"kind": "InsufficientShares", "retryable": False}

    def test_error_response_without_kind(self) -> None:
        assert error_response(9002, "boom").data is None

    def test_serialization(self) -> None:
        dumped = ApiResponse(data=[1, 2]).model_dump()
        assert set(dumped) == {"code", "message", "data", "timestamp", "request_id"}
