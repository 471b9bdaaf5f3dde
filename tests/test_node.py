"""
TimeMint Node, Configuration and Storage Tests
"""

import json

import pytest

from timemint.core.types import Address
from timemint.node.config import NodeConfig
from timemint.node.node import Node
from timemint.state.storage import StateStorage


class TestNodeConfig:
    """Tests for NodeConfig."""

    def test_default_valid(self):
        assert NodeConfig().validate() == []

    def test_save_load(self, tmp_path):
        """Test JSON round trip of every section."""
        config = NodeConfig.default_testnet()
        config.host.genesis_balances = {Address.from_int(1).hex(): 500}
        path = tmp_path / "node.json"

        config.save(str(path))
        loaded = NodeConfig.load(str(path))

        assert loaded.to_dict() == config.to_dict()
        assert loaded.contract.materialize_bookings is True

    def test_presets(self):
        testnet = NodeConfig.default_testnet()
        assert testnet.testnet
        assert testnet.api.port == 8548
        assert testnet.contract.materialize_bookings

        local = NodeConfig.default_local()
        assert not local.storage.load_on_start
        assert not local.storage.save_on_stop
        assert local.log.level == "DEBUG"

    def test_invalid_values(self):
        """Test validation collects every problem."""
        config = NodeConfig()
        config.contract.address = "0x" + "00" * 20
        config.contract.creator_share_percent = 101
        config.api.port = 70000
        config.host.genesis_balances = {"0x1234": 5}

        errors = config.validate()
        assert len(errors) == 4

    def test_malformed_address(self):
        config = NodeConfig()
        config.contract.address = "not-an-address"
        assert any("Invalid contract address" in e for e in config.validate())

    def test_paths(self, tmp_path):
        config = NodeConfig()
        config.storage.data_dir = str(tmp_path)
        assert config.db_path == tmp_path / "timemint_state.db"


class TestStateStorage:
    """Tests for SQLite snapshot storage."""

    def test_save_and_load(self):
        state = {"contract": {"address": "0xabc", "registry": {"total_supply": 3}}}
        with StateStorage(":memory:") as storage:
            snapshot_id = storage.save_snapshot(state, label="test")
            assert storage.load_latest("0xabc") == state
            assert storage.load_snapshot(snapshot_id) == state
            assert storage.load_latest("0xdef") is None

    def test_latest_wins(self):
        with StateStorage(":memory:") as storage:
            for supply in range(3):
                storage.save_snapshot({"contract": {"address": "0xabc", "n": supply}})
            assert storage.load_latest("0xabc")["contract"]["n"] == 2

    def test_list_and_prune(self):
        """Test listing headers and pruning old snapshots."""
        with StateStorage(":memory:") as storage:
            for i in range(5):
                storage.save_snapshot(
                    {"contract": {"address": "0xabc", "registry": {"total_supply": i}}},
                    label=f"s{i}",
                )

            headers = storage.list_snapshots()
            assert [h["label"] for h in headers] == ["s4", "s3", "s2", "s1", "s0"]
            assert headers[0]["total_supply"] == 4

            assert storage.prune(2) == 3
            assert len(storage.list_snapshots()) == 2

    def test_schema_version_mismatch(self, tmp_path):
        db_path = str(tmp_path / "state.db")
        with StateStorage(db_path) as storage:
            storage._conn.execute("UPDATE schema_info SET value = '99' WHERE key = 'version'")

        with pytest.raises(RuntimeError):
            StateStorage(db_path).connect()


class TestNode:
    """Tests for the node orchestrator."""

    def test_contract_deployed(self, local_config):
        node = Node(local_config)
        assert node.env.contract is node.contract
        assert node.contract.address == local_config.contract_address

    def test_genesis_balances(self, local_config, alice):
        local_config.host.genesis_balances = {alice.hex(): 250}
        node = Node(local_config)
        assert node.env.value_balance(alice) == 250

    def test_export_import(self, local_config, admin, creator, bob):
        """Exported state is JSON-serializable and restores every ledger."""
        local_config.contract.materialize_bookings = True
        node = Node(local_config)
        env = node.env
        env.call(admin, "init", admin)
        env.call(admin, "set_booking_fee", 100)
        env.call(creator, "register_site", "alice-cal", creator)
        env.fund(bob, 300)
        env.call(bob, "book_slot", "alice-cal", 10, 20, value=100)
        token_id = env.call(bob, "book_slot", "alice-cal", 30, 40, value=100)
        env.call(bob, "approve", creator, token_id)
        env.call(bob, "set_approval_for_all", admin, True)

        state = json.loads(json.dumps(node.export_state()))

        restored = Node(local_config)
        restored.import_state(state)

        assert restored.export_state() == node.export_state()
        assert restored.contract.owner_of(token_id) == bob
        assert restored.contract.get_approved(token_id) == creator
        assert restored.contract.is_approved_for_all(bob, admin)
        assert restored.contract.slot_metadata(token_id) == (creator, 30, 40)
        assert restored.contract.owner_slot_entries(bob) == [0, 1]
        assert restored.contract.user_balance(creator) == 190
        assert restored.env.value_balance(bob) == 100

    def test_status(self, local_config):
        status = Node(local_config).get_status()
        assert status["started"] is False
        assert status["total_supply"] == 0
        assert status["contract"] == local_config.contract.address

    @pytest.mark.asyncio
    @pytest.mark.timeout(30)
    async def test_snapshot_across_restart(self, local_config, admin, creator, bob):
        """State saved on stop is loaded on the next start."""
        local_config.storage.load_on_start = True
        local_config.storage.save_on_stop = True

        node = Node(local_config)
        await node.start()
        node.env.call(admin, "init", admin)
        node.env.call(creator, "register_site", "alice-cal", creator)
        node.env.call(bob, "book_slot", "alice-cal", 1, 2)
        await node.stop()

        restarted = Node(local_config)
        await restarted.start()
        try:
            assert restarted.contract.admin() == admin
            assert restarted.contract.total_supply() == 1
            assert restarted.contract.creator_of_site("alice-cal") == creator
        finally:
            await restarted.stop()

    @pytest.mark.asyncio
    @pytest.mark.timeout(30)
    async def test_start_rejects_invalid_config(self, local_config):
        local_config.contract.creator_share_percent = 150
        node = Node(local_config)
        with pytest.raises(ValueError):
            await node.start()
