"""
TimeMint Node Configuration
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional

from timemint.constants import (
    CREATOR_SHARE_PERCENT,
    DEFAULT_API_PORT,
    DEFAULT_CONTRACT_ADDRESS,
    MAX_EVENT_LOG,
    PERCENT_DENOMINATOR,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    TOKEN_URI_BASE,
)
from timemint.core.types import Address

logger = logging.getLogger(__name__)


@dataclass
class ContractConfig:
    """Contract deployment configuration."""
    address: str = DEFAULT_CONTRACT_ADDRESS
    token_name: str = TOKEN_NAME
    token_symbol: str = TOKEN_SYMBOL
    token_uri_base: str = TOKEN_URI_BASE
    creator_share_percent: int = CREATOR_SHARE_PERCENT
    # Mint, record and index the token on booking (off = allocate id only)
    materialize_bookings: bool = False


@dataclass
class HostConfig:
    """Execution environment configuration."""
    max_call_depth: int = 64
    max_events: int = MAX_EVENT_LOG
    genesis_balances: Dict[str, int] = field(default_factory=dict)


@dataclass
class StorageConfig:
    """Storage configuration."""
    data_dir: str = "./data"
    db_name: str = "timemint_state.db"
    load_on_start: bool = True
    save_on_stop: bool = True
    max_snapshots: int = 100


@dataclass
class APIConfig:
    """API server configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = DEFAULT_API_PORT
    cors_origins: List[str] = field(default_factory=list)
    max_batch_size: int = 100


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class NodeConfig:
    """
    Complete node configuration.

    All settings for running a TimeMint node.
    """
    # Identity
    name: str = "timemint-node"
    testnet: bool = False

    # Sub-configurations
    contract: ContractConfig = field(default_factory=ContractConfig)
    host: HostConfig = field(default_factory=HostConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def data_path(self) -> Path:
        """Get data directory path."""
        return Path(self.storage.data_dir)

    @property
    def db_path(self) -> Path:
        """Get database file path."""
        return self.data_path / self.storage.db_name

    @property
    def contract_address(self) -> Address:
        return Address.from_hex(self.contract.address)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Contract validation
        try:
            if self.contract_address.is_zero():
                errors.append("Contract address cannot be the zero address")
        except ValueError:
            errors.append(f"Invalid contract address: {self.contract.address}")

        if not 0 <= self.contract.creator_share_percent <= PERCENT_DENOMINATOR:
            errors.append(
                f"creator_share_percent must be within 0..{PERCENT_DENOMINATOR}"
            )

        # Host validation
        if self.host.max_call_depth < 1:
            errors.append("max_call_depth must be at least 1")

        for account, amount in self.host.genesis_balances.items():
            try:
                Address.from_hex(account)
            except ValueError:
                errors.append(f"Invalid genesis account: {account}")
            if amount < 0:
                errors.append(f"Negative genesis balance for {account}")

        # Storage validation
        if not self.storage.data_dir:
            errors.append("data_dir cannot be empty")

        # API validation
        if self.api.enabled:
            if self.api.port < 1 or self.api.port > 65535:
                errors.append(f"Invalid API port: {self.api.port}")

        return errors

    def save(self, path: str) -> None:
        """Save configuration to file."""
        config_dict = {
            "name": self.name,
            "testnet": self.testnet,
            "contract": asdict(self.contract),
            "host": asdict(self.host),
            "storage": asdict(self.storage),
            "api": asdict(self.api),
            "log": asdict(self.log),
        }

        with open(path, 'w') as f:
            json.dump(config_dict, f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> "NodeConfig":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            name=data.get("name", "timemint-node"),
            testnet=data.get("testnet", False),
        )

        if "contract" in data:
            config.contract = ContractConfig(**data["contract"])

        if "host" in data:
            config.host = HostConfig(**data["host"])

        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])

        if "api" in data:
            config.api = APIConfig(**data["api"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    @classmethod
    def default_testnet(cls) -> "NodeConfig":
        """Create default testnet configuration."""
        config = cls(
            name="timemint-testnet-node",
            testnet=True,
        )

        config.storage.data_dir = "./data-testnet"
        config.api.port = DEFAULT_API_PORT + 1
        config.contract.materialize_bookings = True

        return config

    @classmethod
    def default_local(cls) -> "NodeConfig":
        """In-memory style configuration for development: nothing persisted."""
        config = cls(name="timemint-local-node")

        config.storage.load_on_start = False
        config.storage.save_on_stop = False
        config.log.level = "DEBUG"

        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            "name": self.name,
            "testnet": self.testnet,
            "contract": asdict(self.contract),
            "host": asdict(self.host),
            "storage": asdict(self.storage),
            "api": asdict(self.api),
            "log": asdict(self.log),
        }


def setup_logging(config: LogConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )
