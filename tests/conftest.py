"""
TimeMint Test Fixtures
"""

import pytest

from timemint.contract import TimeMint
from timemint.core.events import EventLog
from timemint.core.types import Address
from timemint.host.environment import Environment
from timemint.node.config import ContractConfig, NodeConfig


CONTRACT_ADDRESS = Address.from_int(0x71E7)


@pytest.fixture
def alice() -> Address:
    return Address.from_int(0xA11CE)


@pytest.fixture
def bob() -> Address:
    return Address.from_int(0xB0B)


@pytest.fixture
def carol() -> Address:
    return Address.from_int(0xCA201)


@pytest.fixture
def admin() -> Address:
    return Address.from_int(0xAD)


@pytest.fixture
def creator() -> Address:
    return Address.from_int(0xC2EA7)


@pytest.fixture
def receiver_address() -> Address:
    """Address for deploying receiver contracts."""
    return Address.from_int(0x2EC)


@pytest.fixture
def env() -> Environment:
    """Empty host environment."""
    return Environment(events=EventLog())


def deploy_contract(env: Environment, materialize: bool = False) -> TimeMint:
    """Deploy a TimeMint contract as the environment's primary contract."""
    config = ContractConfig(materialize_bookings=materialize)
    contract = TimeMint.from_config(CONTRACT_ADDRESS, env, config)
    env.deploy(contract.address, contract, primary=True)
    return contract


@pytest.fixture
def contract(env) -> TimeMint:
    """Contract with reference booking behaviour (no materialization)."""
    return deploy_contract(env)


@pytest.fixture
def minting_contract(env) -> TimeMint:
    """Contract that mints and indexes a token for every booking."""
    return deploy_contract(env, materialize=True)


@pytest.fixture
def token(contract, alice) -> int:
    """A token owned by alice."""
    return contract.registry.mint(alice)


@pytest.fixture
def booking_setup(env, contract, admin, creator, bob):
    """
    Initialized contract with fee 100 and site "alice-cal".

    bob is funded with 1000 to pay for bookings.
    """
    env.call(admin, "init", admin)
    env.call(admin, "set_booking_fee", 100)
    env.call(creator, "register_site", "alice-cal", creator)
    env.fund(bob, 1000)
    return contract


@pytest.fixture
def local_config(tmp_path) -> NodeConfig:
    """Local node configuration writing under a temporary directory."""
    config = NodeConfig.default_local()
    config.storage.data_dir = str(tmp_path / "data")
    config.api.enabled = False
    return config
