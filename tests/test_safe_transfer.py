"""
TimeMint Safe Transfer Tests

Caller-facing transfers executed through the host, including receiver
callbacks and rollback of refused transfers.
"""

import pytest

from timemint.constants import ERC721_RECEIVER_MAGIC, RECEIVER_CALL_FAILED
from timemint.core.types import ZERO_ADDRESS
from timemint.errors import (
    InvalidTokenError,
    NotApprovedError,
    NotOwnerError,
    ReceiverRefusedError,
    TransferToZeroError,
)
from timemint.host.receivers import (
    AcceptingReceiver,
    CallbackReceiver,
    FailingReceiver,
    RejectingReceiver,
)


class TestTransferFrom:
    """Tests for transfer_from."""

    def test_owner_transfer(self, env, contract, token, alice, bob):
        env.call(alice, "transfer_from", alice, bob, token)

        assert contract.owner_of(token) == bob
        assert contract.balance_of(alice) == 0
        assert contract.balance_of(bob) == 1

    def test_to_zero_rejected(self, env, contract, token, alice):
        """Transfers to the zero address are refused before any check."""
        with pytest.raises(TransferToZeroError):
            env.call(alice, "transfer_from", alice, ZERO_ADDRESS, token)
        assert contract.owner_of(token) == alice

    def test_missing_token(self, env, contract, alice, bob):
        with pytest.raises(InvalidTokenError):
            env.call(alice, "transfer_from", alice, bob, 99)

    @pytest.mark.parametrize("token_id", [-1, 2**256])
    def test_out_of_range_token(self, env, contract, token, alice, bob, token_id):
        with pytest.raises(InvalidTokenError):
            env.call(alice, "transfer_from", alice, bob, token_id)
        assert contract.balance_of(alice) == 1
        assert contract.balance_of(bob) == 0

    def test_wrong_from(self, env, contract, token, alice, bob, carol):
        with pytest.raises(NotOwnerError):
            env.call(bob, "transfer_from", bob, carol, token)

    def test_unapproved_caller(self, env, contract, token, alice, bob, carol):
        with pytest.raises(NotApprovedError):
            env.call(bob, "transfer_from", alice, carol, token)
        assert contract.owner_of(token) == alice

    def test_approved_spender_clears_approval(self, env, contract, token, alice, bob, carol):
        """Approved spender can move the token once; the approval is cleared."""
        env.call(alice, "approve", bob, token)
        env.call(bob, "transfer_from", alice, carol, token)

        assert contract.owner_of(token) == carol
        assert contract.get_approved(token) == ZERO_ADDRESS

        with pytest.raises(NotApprovedError):
            env.call(bob, "transfer_from", carol, alice, token)

    def test_operator(self, env, contract, token, alice, bob, carol):
        """Operator can move tokens until revoked."""
        env.call(alice, "set_approval_for_all", bob, True)
        env.call(bob, "transfer_from", alice, carol, token)
        assert contract.owner_of(token) == carol

        second = contract.registry.mint(alice)
        env.call(alice, "set_approval_for_all", bob, False)
        with pytest.raises(NotApprovedError):
            env.call(bob, "transfer_from", alice, carol, second)

    def test_failed_transfer_emits_nothing(self, env, contract, token, alice, bob, carol):
        before = len(env.events)
        with pytest.raises(NotApprovedError):
            env.call(bob, "transfer_from", alice, carol, token)
        assert len(env.events) == before


class TestBurn:
    """Tests for caller-facing burn."""

    def test_owner_burn(self, env, contract, token, alice):
        env.call(alice, "burn", alice, token)

        with pytest.raises(InvalidTokenError):
            contract.owner_of(token)
        assert contract.balance_of(alice) == 0
        assert contract.total_supply() == 1

    def test_operator_burn(self, env, contract, token, alice, bob):
        env.call(alice, "set_approval_for_all", bob, True)
        env.call(bob, "burn", alice, token)
        with pytest.raises(InvalidTokenError):
            contract.owner_of(token)

    def test_stranger_cannot_burn(self, env, contract, token, alice, bob):
        with pytest.raises(NotApprovedError):
            env.call(bob, "burn", alice, token)
        assert contract.owner_of(token) == alice


class TestSafeTransfer:
    """Tests for safe_transfer_from and receiver acknowledgment."""

    def test_plain_account_skips_callback(self, env, contract, token, alice, bob):
        env.call(alice, "safe_transfer_from", alice, bob, token)
        assert contract.owner_of(token) == bob

    def test_accepting_receiver(self, env, contract, token, alice, bob, receiver_address):
        """Receiver sees operator, previous owner, id and data."""
        receiver = AcceptingReceiver(receiver_address)
        env.deploy(receiver_address, receiver)

        env.call(alice, "approve", bob, token)
        env.call(bob, "safe_transfer_from", alice, receiver_address, token, b"\x01\x02")

        assert contract.owner_of(token) == receiver_address
        assert receiver.received == [(bob, alice, token, b"\x01\x02")]

    def test_rejecting_receiver_rolls_back(self, env, contract, token, alice, receiver_address):
        """A wrong acknowledgment undoes the transfer and its event."""
        env.deploy(receiver_address, RejectingReceiver(receiver_address))
        events_before = len(env.events)

        with pytest.raises(ReceiverRefusedError) as exc:
            env.call(alice, "safe_transfer_from", alice, receiver_address, token)

        assert exc.value.returned == b"\xde\xad\xbe\xef"
        assert exc.value.receiver == receiver_address
        assert contract.owner_of(token) == alice
        assert contract.balance_of(alice) == 1
        assert contract.balance_of(receiver_address) == 0
        assert len(env.events) == events_before

    def test_failing_receiver(self, env, contract, token, alice, receiver_address):
        """A receiver that raises is reported with a zero code."""
        env.deploy(receiver_address, FailingReceiver(receiver_address))

        with pytest.raises(ReceiverRefusedError) as exc:
            env.call(alice, "safe_transfer_from", alice, receiver_address, token)

        assert exc.value.returned == RECEIVER_CALL_FAILED
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert contract.owner_of(token) == alice

    def test_malformed_acknowledgment(self, env, contract, token, alice, receiver_address):
        """Non-bytes answers are treated like a failed call."""
        env.deploy(
            receiver_address,
            CallbackReceiver(receiver_address, on_receive=lambda *args: "0x150b7a02"),
        )
        with pytest.raises(ReceiverRefusedError) as exc:
            env.call(alice, "safe_transfer_from", alice, receiver_address, token)
        assert exc.value.returned == RECEIVER_CALL_FAILED

    def test_approval_restored_on_refusal(self, env, contract, token, alice, bob, receiver_address):
        env.deploy(receiver_address, RejectingReceiver(receiver_address))
        env.call(alice, "approve", bob, token)

        with pytest.raises(ReceiverRefusedError):
            env.call(bob, "safe_transfer_from", alice, receiver_address, token)

        assert contract.get_approved(token) == bob

    def test_contract_accepts_tokens(self, env, contract, token, alice):
        """The booking contract itself acknowledges tokens."""
        env.call(alice, "safe_transfer_from", alice, contract.address, token)
        assert contract.owner_of(token) == contract.address

    def test_unsafe_transfer_ignores_receiver(self, env, contract, token, alice, receiver_address):
        """transfer_from never calls the receiver hook."""
        env.deploy(receiver_address, RejectingReceiver(receiver_address))
        env.call(alice, "transfer_from", alice, receiver_address, token)
        assert contract.owner_of(token) == receiver_address


class TestReentrantReceiver:
    """Receivers calling back into the contract during the callback."""

    def test_receiver_sees_new_ownership(self, env, contract, token, alice, receiver_address):
        seen = []

        def on_receive(host, receiver, operator, from_, token_id, data):
            seen.append(host.view("owner_of", token_id))

        env.deploy(receiver_address, CallbackReceiver(receiver_address, on_receive=on_receive))
        env.call(alice, "safe_transfer_from", alice, receiver_address, token)

        assert seen == [receiver_address]

    def test_receiver_forwards_token(self, env, contract, token, alice, carol, receiver_address):
        """A receiver may move the token on before acknowledging."""
        def on_receive(host, receiver, operator, from_, token_id, data):
            host.call(receiver.address, "transfer_from", receiver.address, carol, token_id)

        env.deploy(receiver_address, CallbackReceiver(receiver_address, on_receive=on_receive))
        env.call(alice, "safe_transfer_from", alice, receiver_address, token)

        assert contract.owner_of(token) == carol
        assert contract.balance_of(receiver_address) == 0
        assert contract.balance_of(carol) == 1

    def test_forward_then_refuse_rolls_back_everything(
        self, env, contract, token, alice, carol, receiver_address
    ):
        """Nested effects of a refusing receiver are undone with the outer call."""
        def on_receive(host, receiver, operator, from_, token_id, data):
            host.call(receiver.address, "transfer_from", receiver.address, carol, token_id)
            return b"\x00\x00\x00\x01"

        env.deploy(receiver_address, CallbackReceiver(receiver_address, on_receive=on_receive))
        events_before = len(env.events)

        with pytest.raises(ReceiverRefusedError):
            env.call(alice, "safe_transfer_from", alice, receiver_address, token)

        assert contract.owner_of(token) == alice
        assert contract.balance_of(carol) == 0
        assert len(env.events) == events_before

    def test_receiver_explicit_magic(self, env, contract, token, alice, receiver_address):
        env.deploy(
            receiver_address,
            CallbackReceiver(receiver_address, on_receive=lambda *args: ERC721_RECEIVER_MAGIC),
        )
        env.call(alice, "safe_transfer_from", alice, receiver_address, token)
        assert contract.owner_of(token) == receiver_address
