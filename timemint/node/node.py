"""
TimeMint Node
Main node orchestrator: host environment, contract, storage and API.
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from timemint import __version__
from timemint.contract import TimeMint
from timemint.core.events import EventLog
from timemint.core.types import Address
from timemint.host.environment import Environment
from timemint.node.config import NodeConfig, setup_logging
from timemint.state.storage import StateStorage

logger = logging.getLogger(__name__)


@dataclass
class NodeStatus:
    """Node status information."""
    started: bool = False
    total_supply: int = 0
    events: int = 0
    calls: int = 0
    reverted: int = 0
    uptime_seconds: int = 0
    start_time: float = 0.0


@dataclass
class Node:
    """
    TimeMint node.

    Hosts one contract deployment and exposes it over JSON-RPC.
    """
    config: NodeConfig

    env: Environment = field(init=False)
    contract: TimeMint = field(init=False)
    storage: Optional[StateStorage] = None
    api_server: Any = None

    status: NodeStatus = field(default_factory=NodeStatus)
    _running: bool = False

    def __post_init__(self):
        self.env = Environment(
            events=EventLog(max_events=self.config.host.max_events),
            max_call_depth=self.config.host.max_call_depth,
        )
        self.contract = TimeMint.from_config(
            self.config.contract_address, self.env, self.config.contract
        )
        self.env.deploy(self.contract.address, self.contract, primary=True)

        for account, amount in self.config.host.genesis_balances.items():
            self.env.fund(Address.from_hex(account), amount)

    async def start(self) -> None:
        """Start the node."""
        if self._running:
            return

        setup_logging(self.config.log)

        logger.info(f"Starting TimeMint node: {self.config.name} (v{__version__})")
        logger.info(f"Contract: {self.contract.address.hex()}")

        errors = self.config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        if self.config.storage.load_on_start or self.config.storage.save_on_stop:
            Path(self.config.storage.data_dir).mkdir(parents=True, exist_ok=True)
            self.storage = StateStorage(str(self.config.db_path))
            self.storage.connect()

        if self.config.storage.load_on_start:
            state = self.storage.load_latest(self.contract.address.hex())
            if state is not None:
                self.import_state(state)
            else:
                logger.info("No snapshot found, starting from empty state")

        if self.config.api.enabled:
            from timemint.api.server import APIServer

            self.api_server = APIServer(
                node=self,
                host=self.config.api.host,
                port=self.config.api.port,
                cors_origins=list(self.config.api.cors_origins),
                max_batch_size=self.config.api.max_batch_size,
            )
            await self.api_server.start()

        self._running = True
        self.status.started = True
        self.status.start_time = time.time()

        logger.info("Node started successfully")

    async def stop(self) -> None:
        """Stop the node."""
        if not self._running:
            return

        logger.info("Stopping node...")
        self._running = False

        if self.api_server is not None:
            await self.api_server.stop()

        if self.storage is not None:
            if self.config.storage.save_on_stop:
                logger.info("Saving state...")
                self.storage.save_snapshot(self.export_state(), label="shutdown")
                self.storage.prune(self.config.storage.max_snapshots)
            self.storage.close()

        self.status.started = False
        logger.info("Node stopped")

    def export_state(self) -> Dict[str, Any]:
        """Contract ledgers plus host value balances."""
        return {
            "contract": self.contract.to_dict(),
            "host": self.env.to_dict(),
        }

    def import_state(self, state: Dict[str, Any]) -> None:
        self.contract.load_dict(state.get("contract", {}))
        self.env.load_dict(state.get("host", {}))

    def compact_events(self) -> int:
        """Trim the event log between calls."""
        return self.env.events.compact()

    def get_status(self) -> dict:
        self.status.total_supply = self.contract.total_supply()
        self.status.events = len(self.env.events)
        self.status.calls = self.env.stats.calls
        self.status.reverted = self.env.stats.reverted
        if self.status.started:
            self.status.uptime_seconds = int(time.time() - self.status.start_time)

        return {
            "name": self.config.name,
            "version": __version__,
            "testnet": self.config.testnet,
            "contract": self.contract.address.hex(),
            "started": self.status.started,
            "total_supply": self.status.total_supply,
            "events": self.status.events,
            "calls": self.status.calls,
            "reverted": self.status.reverted,
            "uptime_seconds": self.status.uptime_seconds,
        }


async def run_node(config: NodeConfig) -> None:
    """Run a node until cancelled."""
    node = Node(config)
    await node.start()
    try:
        while True:
            await asyncio.sleep(60)
            dropped = node.compact_events()
            if dropped:
                logger.debug(f"Compacted {dropped} events")
    finally:
        await node.stop()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="TimeMint slot-booking node")
    parser.add_argument("--config", "-c", type=str, help="Path to JSON configuration file")
    parser.add_argument("--testnet", action="store_true", help="Use testnet defaults")
    parser.add_argument("--local", action="store_true", help="Use local development defaults")
    parser.add_argument("--port", type=int, help="Override API port")
    parser.add_argument("--data-dir", type=str, help="Override data directory")
    parser.add_argument("--log-level", type=str, help="Override log level")
    args = parser.parse_args(argv)

    if args.config:
        config = NodeConfig.load(args.config)
    elif args.testnet:
        config = NodeConfig.default_testnet()
    elif args.local:
        config = NodeConfig.default_local()
    else:
        config = NodeConfig()

    if args.port:
        config.api.port = args.port
    if args.data_dir:
        config.storage.data_dir = args.data_dir
    if args.log_level:
        config.log.level = args.log_level

    try:
        asyncio.run(run_node(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
