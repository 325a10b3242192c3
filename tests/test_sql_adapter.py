import asyncio

import pytest

from valet import Array, Int, Object, SQLAlchemyChecker, String, validate_with_checker, where, where_eq
from valet.config import get_settings
from valet.errors import Err, ErrorCode, Ok


def run_with_engine(factory, scenario):
    async def main():
        engine = await factory()
        try:
            return await scenario(SQLAlchemyChecker(engine))
        finally:
            await engine.dispose()

    return asyncio.run(main())


def test_check_existence_maps_rows_back_to_values(catalog_engine):
    async def scenario(checker):
        return await checker.check_existence(None, "products", "id", [1, 2, 99], [])

    assert run_with_engine(catalog_engine, scenario) == {1: True, 2: True, 99: False}


def test_filters_narrow_the_lookup(catalog_engine):
    async def scenario(checker):
        active = await checker.check_existence(None, "products", "id", [1, 2], [where_eq("active", 1)])
        sku = await checker.check_existence(None, "products", "id", [1, 2, 3], [where("sku", "like", "C-%")])
        return active, sku

    active, sku = run_with_engine(catalog_engine, scenario)
    assert active == {1: True, 2: False}
    assert sku == {1: False, 2: False, 3: True}


def test_empty_value_list_skips_the_query(catalog_engine):
    async def scenario(checker):
        return await checker.check_existence(None, "no_such_table", "id", [], [])

    assert run_with_engine(catalog_engine, scenario) == {}


def test_statement_targets_table_and_column():
    checker = SQLAlchemyChecker(engine=None)
    sql = str(checker.statement("catalog.products", "id", [1, 2], [where_eq("active", 1)]))
    assert "FROM catalog.products" in sql
    assert "id IN" in sql
    assert "active =" in sql


def test_lookup_returns_result(catalog_engine):
    async def scenario(checker):
        found = await checker.lookup("users", "email", ["taken@example.com", "free@example.com"])
        missing = await checker.lookup("no_such_table", "id", [1])
        return found, missing

    found, missing = run_with_engine(catalog_engine, scenario)
    assert found == Ok({"taken@example.com": True, "free@example.com": False})
    match missing:
        case Err(error):
            assert error.code is ErrorCode.E4002_QUERY_FAILED
            assert error.context.origin == "sql_checker"
        case _:
            pytest.fail("expected Err")


def test_end_to_end_with_sqlite(catalog_engine):
    schema = {
        "email": String().required().email().unique("users", "email"),
        "items": Array().of(Object().shape({
            "product_id": Int().required().exists("products", "id", where_eq("active", 1)),
        })),
    }
    data = {
        "email": "taken@example.com",
        "items": [{"product_id": 1}, {"product_id": 2}, {"product_id": 3}, {"product_id": 42}],
    }

    async def scenario(checker):
        return await validate_with_checker(data, schema, checker, max_concurrency=1)

    result = run_with_engine(catalog_engine, scenario)
    assert result.errors == {
        "email": ["email already exists"],
        "items.1.product_id": ["product_id does not exist"],
        "items.3.product_id": ["product_id does not exist"],
    }
    assert result.infrastructure is None


def test_storage_errors_become_infrastructure_failures(catalog_engine):
    schema = {"tag": String().exists("tags", "name"), "product_id": Int().exists("products", "id")}

    async def scenario(checker):
        return await validate_with_checker({"tag": "python", "product_id": 77}, schema, checker,
            max_concurrency=1)

    result = run_with_engine(catalog_engine, scenario)
    assert result.errors == {"product_id": ["product_id does not exist"]}
    [failure] = result.infrastructure.failures
    assert failure.error.code is ErrorCode.E4002_QUERY_FAILED
    assert failure.paths == ("tag",)


def test_from_settings_requires_database_url():
    with pytest.raises(ValueError):
        SQLAlchemyChecker.from_settings()


def test_from_settings_builds_engine(monkeypatch):
    monkeypatch.setenv("VALET_DATABASE_URL", "sqlite+aiosqlite://")
    get_settings.cache_clear()
    checker = SQLAlchemyChecker.from_settings()
    assert checker.engine.url.drivername == "sqlite+aiosqlite"
    asyncio.run(checker.dispose())
