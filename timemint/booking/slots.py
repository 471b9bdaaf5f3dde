"""
TimeMint Slot Index

Append-only per-account listing of token ids. Informational only: it
never gates a transfer, and ids stay listed after the token is burned or
transferred away.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from timemint.core.types import Address


@dataclass
class SlotIndex:
    """
    Counter plus positional map per account.

    Position p of account a holds positions[(a, p)]; positions never
    written read as 0. Reads through slots() skip zero entries, so token
    id 0 is indistinguishable from an empty position.
    """
    counts: Dict[Address, int] = field(default_factory=dict)
    positions: Dict[Tuple[Address, int], int] = field(default_factory=dict)

    def append(self, account: Address, token_id: int) -> int:
        """
        Record token_id at account's next position.

        Returns:
            The position written
        """
        position = self.counts.get(account, 0)
        self.positions[(account, position)] = token_id
        self.counts[account] = position + 1
        return position

    def count(self, account: Address) -> int:
        return self.counts.get(account, 0)

    def entries(self, account: Address) -> List[int]:
        """Raw positional values, zeros included."""
        return [
            self.positions.get((account, i), 0)
            for i in range(self.count(account))
        ]

    def slots(self, account: Address) -> List[int]:
        """Listed token ids, skipping unpopulated (zero) entries."""
        return [token_id for token_id in self.entries(account) if token_id != 0]

    def snapshot(self) -> "SlotIndex":
        return SlotIndex(counts=dict(self.counts), positions=dict(self.positions))

    def restore(self, snapshot: "SlotIndex") -> None:
        self.counts = dict(snapshot.counts)
        self.positions = dict(snapshot.positions)

    def to_dict(self) -> dict:
        return {acct.hex(): self.entries(acct) for acct in self.counts}

    @classmethod
    def from_dict(cls, data: dict) -> "SlotIndex":
        index = cls()
        for acct_hex, entries in data.items():
            account = Address.from_hex(acct_hex)
            for token_id in entries:
                index.append(account, token_id)
        return index
