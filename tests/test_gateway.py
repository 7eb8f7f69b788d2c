"""
Tests for PersistenceGateway and backend selection.

Backend-level behavior lives in test_embedded_backend / test_remote_backend;
these tests cover what the gateway adds on top: construction from
settings, failure logging with statement context, uniform results across
both backends, and the async context-manager lifecycle.
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetdb.db import (
    DatabaseBackend,
    DatabaseConfigError,
    EmbeddedBackend,
    ExecutionResult,
    LibsqlBackend,
    PersistenceGateway,
    QueryResult,
    RemoteBackend,
    create_gateway,
)
from fleetdb.settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _mock_backend() -> MagicMock:
    backend = MagicMock()
    backend.name = "mock"
    backend.initialize = AsyncMock(return_value=None)
    backend.run = AsyncMock(return_value=ExecutionResult(rows_affected=1))
    backend.exec = AsyncMock(return_value=[QueryResult(["n"], [(1,)])])
    backend.persist = AsyncMock(return_value=None)
    backend.close = AsyncMock(return_value=None)
    backend.handle = MagicMock(return_value="native-handle")
    return backend


# -----------------------------------------------------------------------
# Backend selection
# -----------------------------------------------------------------------


class TestCreateGateway:
    """Mode is chosen once, from settings.environment."""

    def test_development_selects_embedded(self, tmp_path: Path) -> None:
        gateway = create_gateway(
            _settings(environment="development", dev_db_path=tmp_path / "v.db")
        )
        assert isinstance(gateway.backend, EmbeddedBackend)
        assert gateway.mode == "development"
        assert gateway.backend.db_path == tmp_path / "v.db"

    def test_unknown_environment_selects_embedded(self, tmp_path: Path) -> None:
        gateway = create_gateway(
            _settings(environment="staging", dev_db_path=tmp_path / "v.db")
        )
        assert isinstance(gateway.backend, EmbeddedBackend)
        assert gateway.mode == "development"

    @pytest.mark.asyncio
    async def test_production_sqlalchemy_url_selects_remote(self, tmp_path: Path) -> None:
        gateway = create_gateway(
            _settings(
                environment="production",
                database_url=f"sqlite+aiosqlite:///{tmp_path / 'remote.db'}",
            )
        )
        try:
            assert isinstance(gateway.backend, RemoteBackend)
            assert gateway.mode == "production"
        finally:
            await gateway.close()

    @pytest.mark.parametrize(
        "url", ["libsql://fleet.example.io", "https://fleet.example.io"]
    )
    def test_production_libsql_url_selects_libsql(self, url) -> None:
        gateway = create_gateway(
            _settings(
                environment="production",
                database_url=url,
                database_auth_token="secret",
            )
        )
        assert isinstance(gateway.backend, LibsqlBackend)
        assert gateway.backend.url == url
        assert gateway.mode == "production"

    @pytest.mark.parametrize(
        "url, token, missing",
        [
            (None, "secret", "DATABASE_URL"),
            ("libsql://fleet.example.io", None, "DATABASE_AUTH_TOKEN"),
            (None, None, "DATABASE_URL, DATABASE_AUTH_TOKEN"),
        ],
    )
    def test_production_requires_credentials(self, url, token, missing) -> None:
        with pytest.raises(DatabaseConfigError, match=missing):
            create_gateway(
                _settings(
                    environment="production",
                    database_url=url,
                    database_auth_token=token,
                )
            )

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(DatabaseConfigError, ValueError)

    def test_backends_satisfy_protocol(self, tmp_path: Path) -> None:
        assert isinstance(EmbeddedBackend(tmp_path / "v.db"), DatabaseBackend)
        assert isinstance(LibsqlBackend(url="libsql://fleet.example.io"), DatabaseBackend)


# -----------------------------------------------------------------------
# Delegation and failure logging
# -----------------------------------------------------------------------


class TestGatewayDelegation:
    """Gateway forwards to its backend and logs failures."""

    @pytest.mark.asyncio
    async def test_operations_delegate(self) -> None:
        backend = _mock_backend()
        gateway = PersistenceGateway(backend)

        await gateway.initialize_database()
        run_result = await gateway.run_query("DELETE FROM history WHERE id = ?", [7])
        exec_result = await gateway.exec_query("SELECT 1 AS n")
        await gateway.save_database()

        backend.initialize.assert_awaited_once()
        backend.run.assert_awaited_once_with("DELETE FROM history WHERE id = ?", [7])
        backend.exec.assert_awaited_once_with("SELECT 1 AS n", ())
        backend.persist.assert_awaited_once()
        assert run_result.rows_affected == 1
        assert exec_result[0].values == [(1,)]
        assert gateway.get_db() == "native-handle"

    @pytest.mark.asyncio
    async def test_run_failure_logged_and_reraised(self, caplog) -> None:
        backend = _mock_backend()
        backend.run.side_effect = RuntimeError("constraint failed")
        gateway = PersistenceGateway(backend)

        with caplog.at_level(logging.ERROR, logger="fleetdb.db.gateway"):
            with pytest.raises(RuntimeError, match="constraint failed"):
                await gateway.run_query("INSERT INTO drivers VALUES (?, ?, ?)", ["1", "a", "b"])

        [record] = caplog.records
        assert "Error running query" in record.getMessage()
        assert record.statement == "INSERT INTO drivers VALUES (?, ?, ?)"
        assert record.params == ["1", "a", "b"]
        assert record.exc_info is not None

    @pytest.mark.asyncio
    async def test_exec_failure_logged_and_reraised(self, caplog) -> None:
        backend = _mock_backend()
        backend.exec.side_effect = ValueError("no such table: cars")
        gateway = PersistenceGateway(backend)

        with caplog.at_level(logging.ERROR, logger="fleetdb.db.gateway"):
            with pytest.raises(ValueError):
                await gateway.exec_query("SELECT * FROM cars")

        assert "Error executing query: SELECT * FROM cars" in caplog.text

    @pytest.mark.asyncio
    async def test_scalar_params_do_not_mask_backend_error(self, caplog) -> None:
        """A non-sequence params value is logged as its repr; the backend error still propagates."""
        backend = _mock_backend()
        backend.run.side_effect = RuntimeError("backend down")
        gateway = PersistenceGateway(backend)

        with caplog.at_level(logging.ERROR, logger="fleetdb.db.gateway"):
            with pytest.raises(RuntimeError, match="backend down"):
                await gateway.run_query("SELECT ?", 5)

        [record] = caplog.records
        assert record.statement == "SELECT ?"
        assert record.params == "5"
        assert "params=5" in record.getMessage()

    @pytest.mark.asyncio
    async def test_context_manager_closes_backend(self) -> None:
        backend = _mock_backend()

        async with PersistenceGateway(backend) as gateway:
            await gateway.exec_query("SELECT 1")

        backend.close.assert_awaited_once()


# -----------------------------------------------------------------------
# Uniform behavior across real backends
# -----------------------------------------------------------------------


def _embedded_gateway(tmp_path: Path) -> PersistenceGateway:
    return create_gateway(_settings(dev_db_path=tmp_path / "vehicles.db"))


def _remote_gateway(tmp_path: Path) -> PersistenceGateway:
    backend = RemoteBackend(url=f"sqlite+aiosqlite:///{tmp_path / 'remote.db'}")
    return PersistenceGateway(backend, mode="production")


@pytest.fixture(params=["embedded", "remote"])
def gateway_factory(request):
    return _embedded_gateway if request.param == "embedded" else _remote_gateway


class TestUniformResults:
    """Both backends present the same result shape and seed data."""

    @pytest.mark.asyncio
    async def test_select_shape(self, gateway_factory, tmp_path: Path) -> None:
        async with gateway_factory(tmp_path) as db:
            await db.initialize_database()

            results = await db.exec_query("SELECT id, model FROM vehicles")

            assert len(results) == 1
            assert results[0].columns == ["id", "model"]
            assert len(results[0].values) == 4
            assert all(len(row) == 2 for row in results[0].values)

    @pytest.mark.asyncio
    async def test_checkout_and_return_cycle(self, gateway_factory, tmp_path: Path) -> None:
        async with gateway_factory(tmp_path) as db:
            await db.initialize_database()

            checkout = await db.run_query(
                "INSERT INTO history (vehicleId, driverId) VALUES (?, ?)",
                ["QKE1B6", "2"],
            )
            await db.run_query(
                "UPDATE vehicles SET isCheckedOut = TRUE, currentDriver = ? WHERE id = ?",
                ["2", "QKE1B6"],
            )
            await db.run_query(
                "UPDATE history SET returnTime = datetime(checkoutTime, '+1 hour') WHERE id = ?",
                [checkout.last_insert_id],
            )
            await db.save_database()

            [row] = await db.exec_query(
                "SELECT h.driverId, v.isCheckedOut, v.currentDriver, "
                "h.returnTime >= h.checkoutTime AS ordered "
                "FROM history h JOIN vehicles v ON v.id = h.vehicleId"
            )
            assert row.rows_as_dicts() == [
                {"driverId": "2", "isCheckedOut": 1, "currentDriver": "2", "ordered": 1}
            ]

    @pytest.mark.asyncio
    async def test_admin_password_not_plaintext(self, gateway_factory, tmp_path: Path) -> None:
        async with gateway_factory(tmp_path) as db:
            await db.initialize_database()

            [result] = await db.exec_query("SELECT password FROM users WHERE username = ?", ["admin"])

            assert result.values[0][0] != "admin123"
            assert result.values[0][0].startswith("$2")
