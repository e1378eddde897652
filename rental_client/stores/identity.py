"""
Message identity inside the thread store.

A message is either still waiting for the server (``PendingId`` with a
locally minted id) or known to the server (``ConfirmedId``). Reconciling
an optimistic send is a swap of one for the other, never a field compare.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class PendingId:
    local_id: str

    @property
    def value(self) -> str:
        return self.local_id


@dataclass(frozen=True)
class ConfirmedId:
    server_id: str

    @property
    def value(self) -> str:
        return self.server_id


MessageId = PendingId | ConfirmedId


def new_pending_id() -> PendingId:
    return PendingId(local_id=f"local-{uuid4().hex}")
