"""Tests for sim_common.errors and sim_common.response."""
from unittest.mock import MagicMock

from src.sim_common.errors import (
    AppError,
    DomainInvariantError,
    ForbiddenError,
    InsufficientFundsError,
    InsufficientInventoryError,
    NotFoundError,
    OptimisticLockConflictError,
)
from src.sim_common.response import (
    ApiResponse,
    error_response,
    request_id_of,
    success_response,
)


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=1001, message="conflict", http_status=409)
        assert err.http_status == 409

    def test_str_is_message(self) -> None:
        assert str(AppError(code=1, message="boom")) == "boom"


class TestSpecificErrors:
    def test_domain_invariant(self) -> None:
        err = DomainInvariantError("quantity must be a positive integer")
        assert err.code == 4001
        assert err.http_status == 422

    def test_insufficient_funds_is_domain_error(self) -> None:
        err = InsufficientFundsError()
        assert isinstance(err, DomainInvariantError)
        assert err.code == 2001
        assert err.http_status == 422

    def test_insufficient_inventory_is_domain_error(self) -> None:
        err = InsufficientInventoryError("need 5")
        assert isinstance(err, DomainInvariantError)
        assert err.code == 2002
        assert err.message == "need 5"

    def test_not_found(self) -> None:
        err = NotFoundError("order o-1 not found")
        assert err.http_status == 404

    def test_forbidden(self) -> None:
        assert ForbiddenError("nope").http_status == 403

    def test_optimistic_lock_conflict(self) -> None:
        err = OptimisticLockConflictError()
        assert err.http_status == 409
        assert "retry" in err.message

    def test_kinds_are_distinct(self) -> None:
        assert not isinstance(NotFoundError("x"), DomainInvariantError)
        assert not isinstance(OptimisticLockConflictError(), DomainInvariantError)


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "abc"})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": "abc"}

    def test_error(self) -> None:
        resp = error_response(2001, "insufficient available cash")
        assert resp.code == 2001
        assert resp.data is None

    def test_request_id_passed_through(self) -> None:
        resp = success_response({}, request_id="req_abc")
        assert resp.request_id == "req_abc"

    def test_request_id_generated_when_missing(self) -> None:
        resp = error_response(4040, "missing")
        assert resp.request_id.startswith("req_")

    def test_serialization(self) -> None:
        d = ApiResponse(data={"tick": 3}).model_dump()
        assert set(d) == {"code", "message", "data", "timestamp", "request_id"}

    def test_request_id_of_reads_state(self) -> None:
        request = MagicMock()
        request.state.request_id = "req_123"
        assert request_id_of(request) == "req_123"

    def test_request_id_of_without_middleware(self) -> None:
        request = MagicMock()
        request.state = object()
        assert request_id_of(request) is None
