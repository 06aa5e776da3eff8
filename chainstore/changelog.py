"""Per-register history of the block heights at which a register changed."""

from __future__ import annotations

import threading
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Optional

from chainstore.model import RegisterID

# Sentinel meaning a register was never written at or before a given height.
NOT_FOUND = (1 << 64) - 1


@dataclass
class Changelist:
    """Block heights at which a register changed value, kept in ascending order.

    The list must stay sorted for lookups to work; change it through ``add`` only.
    """

    blocks: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.blocks)

    def search_for_index(self, n: int) -> Optional[int]:
        """Return the index of the highest height <= n, or None if there is none."""
        index = bisect_right(self.blocks, n)
        if index == 0:
            return None
        return index - 1

    def search(self, n: int) -> int:
        """Return the highest height <= n, or NOT_FOUND if there is none."""
        index = self.search_for_index(n)
        if index is None:
            return NOT_FOUND
        return self.blocks[index]

    def add(self, n: int) -> None:
        """Insert a height, keeping the list sorted; existing heights are ignored."""
        if n == NOT_FOUND:
            return
        index = self.search_for_index(n)
        if index is None:
            self.blocks.insert(0, n)
            return
        if self.blocks[index] == n:
            return
        self.blocks.insert(index + 1, n)


class Changelog:
    """Change history of every register in a ledger.

    Callers hold ``lock`` around reads and writes that must be consistent.
    """

    def __init__(self) -> None:
        self._registers: dict[RegisterID, Changelist] = {}
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._registers)

    def __contains__(self, register_id: object) -> bool:
        return register_id in self._registers

    def most_recent_change(self, register_id: RegisterID, block_height: int) -> int:
        """Return the latest height <= block_height at which the register changed."""
        clist = self._registers.get(register_id)
        if clist is None:
            return NOT_FOUND
        return clist.search(block_height)

    def changelist(self, register_id: RegisterID) -> Changelist:
        """Return the register's changelist, or an empty one if it has none."""
        return self._registers.get(register_id) or Changelist()

    def set_changelist(self, register_id: RegisterID, clist: Changelist) -> None:
        """Replace the register's changelist."""
        self._registers[register_id] = clist

    def add_change(self, register_id: RegisterID, block_height: int) -> None:
        """Record a change of the register at the given height."""
        self._registers.setdefault(register_id, Changelist()).add(block_height)