from unittest.mock import MagicMock

from caresync.services.advisory_lock import AdvisoryLockService


def _pg_engine(acquired: bool):
    engine = MagicMock()
    engine.dialect.name = "postgresql"
    conn = engine.connect.return_value.execution_options.return_value.__enter__.return_value
    conn.execute.return_value.scalar.return_value = acquired
    return engine, conn


class TestLocalLock:
    def test_runs_operation_when_free(self, engine):
        operation = MagicMock()

        assert AdvisoryLockService(engine).try_run_exclusively("TEST_LOCK_FREE", operation) is True
        operation.assert_called_once_with()

    def test_held_lock_skips_operation(self, engine):
        service = AdvisoryLockService(engine)
        inner = MagicMock()
        nested = []

        def outer():
            nested.append(service.try_run_exclusively("TEST_LOCK_HELD", inner))

        assert service.try_run_exclusively("TEST_LOCK_HELD", outer) is True
        assert nested == [False]
        inner.assert_not_called()

    def test_lock_is_released_when_operation_fails(self, engine):
        service = AdvisoryLockService(engine)

        def boom():
            raise RuntimeError("boom")

        try:
            service.try_run_exclusively("TEST_LOCK_RELEASE", boom)
        except RuntimeError:
            pass
        operation = MagicMock()
        assert service.try_run_exclusively("TEST_LOCK_RELEASE", operation) is True
        operation.assert_called_once_with()


class TestPostgresLock:
    def test_acquired_runs_and_unlocks(self):
        engine, conn = _pg_engine(acquired=True)
        operation = MagicMock()

        assert AdvisoryLockService(engine).try_run_exclusively("PG_LOCK", operation) is True

        operation.assert_called_once_with()
        statements = [str(call.args[0]) for call in conn.execute.call_args_list]
        assert statements == ["SELECT pg_try_advisory_lock(:k)", "SELECT pg_advisory_unlock(:k)"]
        engine.connect.return_value.execution_options.assert_called_once_with(isolation_level="AUTOCOMMIT")

    def test_not_acquired_skips(self):
        engine, conn = _pg_engine(acquired=False)
        operation = MagicMock()

        assert AdvisoryLockService(engine).try_run_exclusively("PG_LOCK", operation) is False

        operation.assert_not_called()
        assert conn.execute.call_count == 1
