"""In-memory protocol configuration store, seeded from config.yaml."""
from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from collections.abc import Iterable
from typing import Any

from .config import ChainConfig, validate_protocol
from .models import ProtocolConfig

logger = logging.getLogger(__name__)


class ProtocolRegistry:
    """Owns the canonical protocol list; readers only see ``enabled()``.

    Entries keep insertion order. Nothing is persisted.
    """

    def __init__(
        self,
        protocols: Iterable[ProtocolConfig] = (),
        chains: dict[str, ChainConfig] | None = None,
    ) -> None:
        self._chains = chains
        self._protocols: dict[str, ProtocolConfig] = {}
        for protocol in protocols:
            self._insert(protocol)

    def _check(self, protocol: ProtocolConfig) -> None:
        if self._chains is not None:
            validate_protocol(protocol, self._chains)

    def _insert(self, protocol: ProtocolConfig) -> None:
        self._check(protocol)
        if protocol.id in self._protocols:
            raise ValueError(f"Duplicate protocol id '{protocol.id}'")
        self._protocols[protocol.id] = protocol

    def all(self) -> list[ProtocolConfig]:
        return list(self._protocols.values())

    def enabled(self) -> list[ProtocolConfig]:
        return [p for p in self._protocols.values() if p.enabled]

    def get(self, protocol_id: str) -> ProtocolConfig:
        try:
            return self._protocols[protocol_id]
        except KeyError:
            raise KeyError(f"Unknown protocol id '{protocol_id}'") from None

    def add(self, protocol: ProtocolConfig) -> ProtocolConfig:
        """Register a protocol, assigning an id and creation time when missing."""
        changes: dict[str, Any] = {}
        if not protocol.id:
            changes["id"] = uuid.uuid4().hex
        if not protocol.added_at:
            changes["added_at"] = int(time.time())
        entry = dataclasses.replace(protocol, **changes) if changes else protocol
        self._insert(entry)
        logger.info("Added protocol %s (%s)", entry.name, entry.id)
        return entry

    def update(self, protocol_id: str, **changes: Any) -> ProtocolConfig:
        if "id" in changes and changes["id"] != protocol_id:
            raise ValueError("Protocol id cannot be changed")
        updated = dataclasses.replace(self.get(protocol_id), **changes)
        self._check(updated)
        self._protocols[protocol_id] = updated
        return updated

    def delete(self, protocol_id: str) -> None:
        self.get(protocol_id)
        del self._protocols[protocol_id]
        logger.info("Deleted protocol %s", protocol_id)

    def toggle(self, protocol_id: str) -> ProtocolConfig:
        current = self.get(protocol_id)
        return self.update(protocol_id, enabled=not current.enabled)

    def __len__(self) -> int:
        return len(self._protocols)
