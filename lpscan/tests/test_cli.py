"""Tests for the command-line entry point."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from lpscan import cli
from lpscan.config import ConfigManager
from lpscan.core.storage import FileCursorStore


@pytest.fixture
def config():
    return ConfigManager()


class TestParser:

    def test_defaults(self):
        args = cli.build_parser(["bsc", "ethereum"]).parse_args([])

        assert args.mode == "fleet"
        assert args.chain is None
        assert args.batch_size is None
        assert args.init_schema is False

    def test_options(self):
        args = cli.build_parser(["bsc", "ethereum"]).parse_args(
            ["--mode", "single", "--chain", "ethereum", "--batch-size", "25",
             "--start-block", "100", "--max-iterations", "2"]
        )

        assert (args.mode, args.chain, args.batch_size) == ("single", "ethereum", 25)
        assert (args.start_block, args.max_iterations) == (100, 2)

    def test_unknown_mode_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--mode", "cluster"])


class TestBuildWorker:

    @pytest.mark.asyncio
    async def test_single_mode_wiring(self, config, tmp_path):
        config.database.CURSOR_DIR = str(tmp_path)
        args = cli.build_parser().parse_args(
            ["--mode", "single", "--chain", "bsc", "--batch-size", "25", "--start-block", "7"]
        )

        with patch("lpscan.cli.PostgresStorage") as storage_cls:
            storage_cls.return_value.connect = AsyncMock()
            worker = await cli.build_worker(args, config)

        supervisor = worker.supervisor
        assert supervisor.batch_size == 25
        store = supervisor.allocator.store
        assert isinstance(store, FileCursorStore)
        assert store.path == tmp_path / "next_block_bsc.json"
        assert supervisor.allocator.start_block == 7
        assert supervisor.ledger.metadata.shared_cache is None
        assert worker.connections == [storage_cls.return_value, store]

    @pytest.mark.asyncio
    async def test_fleet_mode_shares_redis(self, config):
        args = cli.build_parser().parse_args([])

        with patch("lpscan.cli.PostgresStorage") as storage_cls, \
                patch("lpscan.cli.RedisStorage") as redis_cls:
            storage_cls.return_value.connect = AsyncMock()
            redis_cls.return_value.connect = AsyncMock()
            worker = await cli.build_worker(args, config)

        redis = redis_cls.return_value
        assert worker.supervisor.allocator.store is redis
        assert worker.supervisor.ledger.metadata.shared_cache is redis
        assert redis_cls.call_args.args[0]["cursor_key"] == config.database.REDIS_BLOCK_KEY

    @pytest.mark.asyncio
    async def test_failed_connect_releases_opened_storage(self, config):
        args = cli.build_parser().parse_args([])

        with patch("lpscan.cli.PostgresStorage") as storage_cls, \
                patch("lpscan.cli.RedisStorage") as redis_cls:
            storage_cls.return_value.connect = AsyncMock()
            storage_cls.return_value.disconnect = AsyncMock()
            redis_cls.return_value.connect = AsyncMock(side_effect=OSError("refused"))

            with pytest.raises(OSError):
                await cli.build_worker(args, config)

        storage_cls.return_value.disconnect.assert_awaited_once()


class TestMain:

    @pytest.mark.asyncio
    async def test_init_schema(self, config):
        with patch("lpscan.cli.get_config", return_value=config), \
                patch("lpscan.cli.init_schema", new_callable=AsyncMock) as init_schema, \
                patch("lpscan.cli.build_worker", new_callable=AsyncMock) as build_worker:
            assert await cli.main(["--init-schema"]) == 0

        init_schema.assert_awaited_once_with(config)
        build_worker.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_runs_worker_and_closes_connections(self, config):
        supervisor = MagicMock()
        supervisor.run_forever = AsyncMock()
        connection = MagicMock()
        connection.disconnect = AsyncMock()
        worker = cli.Worker(supervisor=supervisor, connections=[connection])

        with patch("lpscan.cli.get_config", return_value=config), \
                patch("lpscan.cli.build_worker", AsyncMock(return_value=worker)):
            assert await cli.main(["--max-iterations", "3"]) == 0

        supervisor.run_forever.assert_awaited_once_with(max_iterations=3)
        connection.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_worker_failure_exit_code(self, config):
        supervisor = MagicMock()
        supervisor.run_forever = AsyncMock(side_effect=RuntimeError("boom"))
        connection = MagicMock()
        connection.disconnect = AsyncMock()
        worker = cli.Worker(supervisor=supervisor, connections=[connection])

        with patch("lpscan.cli.get_config", return_value=config), \
                patch("lpscan.cli.build_worker", AsyncMock(return_value=worker)):
            assert await cli.main([]) == 1

        connection.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejects_non_positive_batch_size(self, config):
        with patch("lpscan.cli.get_config", return_value=config):
            with pytest.raises(SystemExit):
                await cli.main(["--batch-size", "0"])
