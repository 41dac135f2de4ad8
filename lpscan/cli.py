#!/usr/bin/env python3
"""
Command-line interface for the pool ledger scanner.

Usage:
    python -m lpscan --chain bsc
    python -m lpscan --mode single --start-block 38000000 --max-iterations 10
    python -m lpscan --init-schema
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional

from .config import ConfigManager, get_config
from .core.orchestrator import BlockRangeAllocator, WorkerSupervisor
from .core.storage import FileCursorStore, PostgresStorage, RedisStorage, StorageBase
from .fetchers import ChainClient, LogFetcher, build_filter_sets
from .processors import EventClassifier, PairAnalyzer, PoolLedger, TokenMetadataCache

logger = logging.getLogger(__name__)


@dataclass
class Worker:
    """A wired supervisor plus the storage connections it holds open."""
    supervisor: WorkerSupervisor
    connections: List[StorageBase] = field(default_factory=list)

    async def close(self) -> None:
        for connection in self.connections:
            await connection.disconnect()


def build_parser(chains: Optional[List[str]] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lpscan",
        description="Scan DEX pool events into the pool ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Join a fleet of workers sharing the Redis cursor
  python -m lpscan --chain bsc

  # One standalone worker from a fixed block
  python -m lpscan --mode single --start-block 38000000

  # Create the ledger table and exit
  python -m lpscan --init-schema
        """,
    )
    parser.add_argument(
        "--mode",
        choices=["fleet", "single"],
        default="fleet",
        help="fleet: shared Redis cursor; single: cursor file under CURSOR_DIR (default: fleet)",
    )
    parser.add_argument("--chain", choices=chains, help="Chain to scan (default: DEFAULT_CHAIN)")
    parser.add_argument("--batch-size", type=int, help="Blocks per claimed range (default: BATCH_SIZE)")
    parser.add_argument(
        "--start-block", type=int, help="First block when no cursor is stored (default: START_BLOCK)"
    )
    parser.add_argument("--max-iterations", type=int, help="Stop after this many iterations")
    parser.add_argument(
        "--init-schema", action="store_true", help="Create the pool ledger table and exit"
    )
    return parser


async def build_worker(args: argparse.Namespace, config: ConfigManager) -> Worker:
    """Connect storage and wire every pipeline component for one worker."""
    chain = args.chain or config.chains.DEFAULT_CHAIN
    chain_settings = config.chains
    batch_size = args.batch_size or chain_settings.BATCH_SIZE
    start_block = args.start_block if args.start_block is not None else chain_settings.START_BLOCK
    connections: List[StorageBase] = []

    try:
        pool_storage = PostgresStorage(config.database.get_postgres_connection_kwargs())
        await pool_storage.connect()
        connections.append(pool_storage)

        if args.mode == "fleet":
            redis_config = config.database.get_redis_connection_kwargs()
            redis_config["cursor_key"] = config.database.REDIS_BLOCK_KEY
            redis_storage = RedisStorage(redis_config)
            await redis_storage.connect()
            connections.append(redis_storage)
            cursor_store = redis_storage
            shared_cache = redis_storage
        else:
            cursor_store = FileCursorStore(config.database.get_cursor_file_kwargs(chain))
            await cursor_store.connect()
            connections.append(cursor_store)
            shared_cache = None
    except Exception:
        for connection in connections:
            await connection.disconnect()
        raise

    client = ChainClient(
        rpc_url=chain_settings.get_rpc_url(chain),
        max_retries=chain_settings.MAX_RETRY_ATTEMPTS,
        request_timeout=chain_settings.REQUEST_TIMEOUT,
    )
    protocols = config.protocols
    factories = [protocols.get_factory_address(p, chain) for p in protocols.supported_protocols]

    ledger = PoolLedger(
        storage=pool_storage,
        client=client,
        analyzer=PairAnalyzer(config.get_reference_registry(chain)),
        metadata=TokenMetadataCache(
            client, shared_cache=shared_cache, key_prefix=config.database.TOKEN_META_PREFIX
        ),
    )
    allocator = BlockRangeAllocator(
        cursor_store,
        head_source=client.get_block_number,
        start_block=start_block,
        start_offset=chain_settings.START_OFFSET,
        head_wait_delay=chain_settings.HEAD_WAIT_DELAY,
        claim_retry_delay=chain_settings.CLAIM_RETRY_DELAY,
    )
    supervisor = WorkerSupervisor(
        allocator=allocator,
        fetcher=LogFetcher(client, build_filter_sets(protocols, chain)),
        classifier=EventClassifier(protocols.get_event_topics(chain), factories),
        ledger=ledger,
        batch_size=batch_size,
        iteration_timeout=chain_settings.ITERATION_TIMEOUT,
        error_retry_delay=chain_settings.ERROR_RETRY_DELAY,
    )

    logger.info(f"Worker ready: chain={chain} mode={args.mode} batch_size={batch_size}")
    return Worker(supervisor=supervisor, connections=connections)


async def init_schema(config: ConfigManager) -> None:
    async with PostgresStorage(config.database.get_postgres_connection_kwargs()) as storage:
        await storage.ensure_schema()
    logger.info(f"Pool ledger table {config.database.pools_table_name} is ready")


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    config = get_config()
    parser = build_parser(list(config.chains.supported_chains))
    args = parser.parse_args(argv)

    if args.batch_size is not None and args.batch_size <= 0:
        parser.error("--batch-size must be positive")
    if args.max_iterations is not None and args.max_iterations <= 0:
        parser.error("--max-iterations must be positive")

    try:
        if args.init_schema:
            await init_schema(config)
            return 0

        worker = await build_worker(args, config)
        try:
            await worker.supervisor.run_forever(max_iterations=args.max_iterations)
        finally:
            await worker.close()
        return 0

    except KeyboardInterrupt:
        logger.info("Scanner interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
