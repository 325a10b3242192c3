import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from valet.errors import (
    AppError,
    CheckerErrorMapper,
    DatabaseErrorMapper,
    Err,
    ErrorCode,
    Ok,
    checker_timeout,
    dispatch_cancelled,
    map_errors,
)
from valet.validation.coercion import ExplicitCoercion, FormattedDateTime, coerce
from valet.validation.errors import ErrorMap, GroupFailure, InfrastructureFailure, ValidationErrors


# =============================================================================
# Result
# =============================================================================

def test_ok_and_err_combinators():
    assert Ok(2).map(lambda v: v * 2) == Ok(4)
    assert Ok(2).and_then(lambda v: Err("odd") if v % 2 else Ok(v)) == Ok(2)
    assert Err("boom").map(lambda v: v * 2) == Err("boom")
    assert Err("boom").map_err(str.upper) == Err("BOOM")
    assert Err("boom").unwrap_or(0) == 0
    assert Ok(1).match(ok=lambda v: f"ok {v}", err=lambda e: f"err {e}") == "ok 1"
    assert list(Ok(1)) == [1]
    assert list(Err("x")) == []


def test_unwrap_on_the_wrong_variant_raises():
    with pytest.raises(ValueError):
        Err("boom").unwrap()
    with pytest.raises(ValueError):
        Ok(1).unwrap_err()


# =============================================================================
# AppError
# =============================================================================

def test_app_error_is_immutable_and_serializable():
    error = AppError(ErrorCode.E1011_CHECKER_ERROR, "checker failed")
    enriched = error.with_metadata(table="users").chain(ConnectionError("down"))

    assert error.metadata == {}
    assert enriched.metadata == {"table": "users"}
    assert isinstance(enriched.cause, ConnectionError)
    assert enriched.context.correlation_id == error.context.correlation_id

    payload = enriched.to_dict()["error"]
    assert payload["code"] == "E1011_CHECKER_ERROR"
    assert payload["code_num"] == 1011
    assert payload["category"] == "checker"
    assert str(error).startswith("[E1011_CHECKER_ERROR] checker failed")


def test_error_code_categories():
    assert ErrorCode.E1002_TIMEOUT.category == "checker"
    assert ErrorCode.E2030_NOT_EXISTS.category == "validation"
    assert ErrorCode.E4001_CONNECTION_FAILED.category == "database"
    assert ErrorCode.E9001_UNEXPECTED_ERROR.category == "internal"
    assert ErrorCode.E1014_CANCELLED.is_infrastructure
    assert not ErrorCode.E2031_ALREADY_EXISTS.is_infrastructure


def test_checker_builders_carry_resource_metadata():
    timeout = checker_timeout("users", "email", 0.5).error
    assert timeout.code is ErrorCode.E1002_TIMEOUT
    assert timeout.metadata == {"table": "users", "column": "email", "timeout_seconds": 0.5}

    cancelled = dispatch_cancelled("users", "email", origin="dispatch").error
    assert cancelled.code is ErrorCode.E1014_CANCELLED
    assert cancelled.context.origin == "dispatch"


# =============================================================================
# Boundary mappers
# =============================================================================

def test_database_mapper_classifies_operational_errors():
    mapper = DatabaseErrorMapper("sql_checker")

    refused = mapper.map_exception(OperationalError("SELECT 1", {}, Exception("unable to connect to server")))
    assert refused.code is ErrorCode.E4001_CONNECTION_FAILED

    missing = mapper.map_exception(OperationalError("SELECT 1", {}, Exception("no such table: users")))
    assert missing.code is ErrorCode.E4002_QUERY_FAILED
    assert "no such table" in missing.message
    assert missing.context.origin == "sql_checker"
    assert isinstance(missing.cause, OperationalError)


def test_database_mapper_other_errors():
    mapper = DatabaseErrorMapper()
    assert mapper.map_exception(IntegrityError("INSERT", {}, Exception("dup"))).code is ErrorCode.E4002_QUERY_FAILED
    assert mapper.map_exception(RuntimeError("odd")).code is ErrorCode.E9001_UNEXPECTED_ERROR


def test_checker_mapper():
    mapper = CheckerErrorMapper("dispatch")
    error = mapper.map_exception(ConnectionError("socket closed"))
    assert error.code is ErrorCode.E1011_CHECKER_ERROR
    assert error.message == "External checker raised ConnectionError: socket closed"

    storage = mapper.map_exception(OperationalError("SELECT 1", {}, Exception("no such table: t")))
    assert storage.code is ErrorCode.E4002_QUERY_FAILED


def test_map_errors_decorator():
    @map_errors(CheckerErrorMapper("lookups"))
    async def flaky(fail: bool):
        if fail:
            raise TimeoutError("slow")
        return Err(AppError(ErrorCode.E1000_CHECKER_GENERIC, "soft failure"))

    raised = asyncio.run(flaky(True))
    returned = asyncio.run(flaky(False))
    assert raised.unwrap_err().code is ErrorCode.E1011_CHECKER_ERROR
    assert returned.unwrap_err().context.origin == "lookups"
    assert flaky.__name__ == "flaky"


# =============================================================================
# Validation outcome
# =============================================================================

def failure(code=ErrorCode.E1011_CHECKER_ERROR, paths=("email",)):
    return GroupFailure(
        signature="unique|users|email|", resource="users", attribute="email", mode="unique",
        paths=paths, error=AppError(code, "checker failed"),
    )


def test_error_map_keeps_insertion_order():
    errors = ErrorMap()
    errors.add("b", "first")
    errors.add("a", "second")
    errors.add("b", "third")
    assert list(errors) == ["b", "a"]
    assert errors == {"b": ["first", "third"], "a": ["second"]}
    assert errors.get("missing") == []


def test_from_map_returns_none_when_nothing_to_report():
    assert ValidationErrors.from_map(ErrorMap()) is None
    assert ValidationErrors.from_map(ErrorMap(), InfrastructureFailure()) is None
    assert ValidationErrors.from_map(ErrorMap({"x": ["bad"]})).errors == {"x": ["bad"]}


def test_validation_errors_helpers():
    single = ValidationErrors({"email": ["email is required"]})
    assert str(single) == "email: email is required"
    assert single.first("email") == "email is required"
    assert single.first("name") is None

    many = ValidationErrors({"a": ["a1", "a2"], "b": ["b1"]})
    assert str(many) == "Validation failed (2 fields)"
    assert many.all() == ["a1", "a2", "b1"]
    assert many.to_app_error().code is ErrorCode.E2000_VALIDATION_GENERIC
    assert many.to_app_error().metadata["error_count"] == 2


def test_validation_errors_with_infrastructure():
    outcome = ValidationErrors({}, InfrastructureFailure((failure(),)))
    assert not outcome.has_errors()
    assert outcome.unverified_paths() == ("email",)
    assert outcome.to_dict() == {
        "errors": {},
        "infrastructure": {
            "cancelled": False,
            "failures": [{
                "resource": "users", "attribute": "email", "mode": "unique",
                "paths": ["email"], "code": "E1011_CHECKER_ERROR", "message": "checker failed",
            }],
        },
    }
    assert "checker failed" in str(outcome)


def test_infrastructure_failure_aggregation():
    single = InfrastructureFailure((failure(),))
    assert single.to_app_error() is single.failures[0].error

    several = InfrastructureFailure((failure(), failure(ErrorCode.E1002_TIMEOUT, ("items.0.id", "email"))))
    aggregated = several.to_app_error()
    assert aggregated.code is ErrorCode.E1011_CHECKER_ERROR
    assert aggregated.metadata["unverified_paths"] == ["email", "items.0.id"]

    cancelled = InfrastructureFailure((failure(ErrorCode.E1014_CANCELLED),), cancelled=True)
    assert cancelled.to_app_error().code is ErrorCode.E1014_CANCELLED
    assert InfrastructureFailure(cancelled=True)


# =============================================================================
# Coercion
# =============================================================================

def test_coerce_numbers():
    assert coerce("123", int) == Ok(123)
    assert coerce(" 3.0 ", int) == Ok(3)
    assert coerce("1.5", float) == Ok(1.5)
    assert coerce("1.5", int).unwrap_err().code is ErrorCode.E2004_INVALID_TYPE
    assert coerce(True, int).is_err()


def test_coerce_booleans():
    assert coerce("yes", bool) == Ok(True)
    assert coerce("OFF", bool) == Ok(False)
    assert coerce(1, bool) == Ok(True)
    assert coerce("maybe", bool).is_err()


def test_coerce_datetimes():
    parsed = coerce("2024-05-01T12:30:00Z", datetime).unwrap()
    assert parsed == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    dated = ExplicitCoercion().add_rule(FormattedDateTime("%d/%m/%Y"))
    assert dated.coerce("01/05/2024", datetime) == Ok(datetime(2024, 5, 1))
