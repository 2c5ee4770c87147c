from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from redis.exceptions import RedisError

from shipping_agent.app.config import AgentSettings
from shipping_agent.app.errors import ShipmentNotFoundError, StoreReadError, StoreWriteError
from shipping_agent.infrastructure.data_models import DEFAULT_SHIPMENT_STATUS, ShipmentRecord
from shipping_agent.infrastructure.redis_manager import RedisManager, build_redis_manager


class ShipmentStore(Protocol):
    """Holds shipment records. Each create is atomic; records are never deleted."""

    def create(
        self,
        origin: str,
        destination: str,
        weight: str,
        item: str,
        status: str = DEFAULT_SHIPMENT_STATUS,
    ) -> ShipmentRecord: ...

    def list(self, newest_first: bool = True) -> list[ShipmentRecord]: ...

    def update_status(self, shipment_id: str, status: str) -> ShipmentRecord: ...


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryShipmentStore:
    """Process-local store guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        # id -> (sequence, record); the sequence is the creation order
        self._records: dict[str, tuple[int, ShipmentRecord]] = {}

    def create(
        self,
        origin: str,
        destination: str,
        weight: str,
        item: str,
        status: str = DEFAULT_SHIPMENT_STATUS,
    ) -> ShipmentRecord:
        # Stamped under the lock so creation time follows the sequence
        with self._lock:
            record = ShipmentRecord(
                id=_new_id(),
                origin=origin,
                destination=destination,
                weight=weight,
                item=item,
                status=status,
                created_at=_now(),
            )
            self._records[record.id] = (next(self._sequence), record)
        return record

    def list(self, newest_first: bool = True) -> list[ShipmentRecord]:
        with self._lock:
            entries = list(self._records.values())
        entries.sort(key=lambda e: e[0], reverse=newest_first)
        return [record for _, record in entries]

    def update_status(self, shipment_id: str, status: str) -> ShipmentRecord:
        with self._lock:
            entry = self._records.get(shipment_id)
            if entry is None:
                raise ShipmentNotFoundError(shipment_id)
            sequence, record = entry
            updated = replace(record, status=status)
            self._records[shipment_id] = (sequence, updated)
        return updated


class RedisShipmentStore:
    """
    Shipment records kept in Redis.

    Each record is a JSON document under `<namespace>:shipment:<id>`. A sorted set
    `<namespace>:shipments` indexes the ids, scored by a creation counter, so listing
    newest-first is a single ZREVRANGE. The document and its index entry are written in
    one MULTI/EXEC transaction.
    """

    def __init__(self, redis_manager: RedisManager) -> None:
        self._redis = redis_manager
        self._index_key = redis_manager.key("shipments")
        self._counter_key = redis_manager.key("shipments", "sequence")

    def _record_key(self, shipment_id: str) -> str:
        return self._redis.key("shipment", shipment_id)

    def create(
        self,
        origin: str,
        destination: str,
        weight: str,
        item: str,
        status: str = DEFAULT_SHIPMENT_STATUS,
    ) -> ShipmentRecord:
        try:
            sequence = self._redis.next_sequence(self._counter_key)
            record = ShipmentRecord(
                id=_new_id(),
                origin=origin,
                destination=destination,
                weight=weight,
                item=item,
                status=status,
                created_at=_now(),
            )
            self._redis.save_indexed_json(
                self._record_key(record.id),
                record.to_dict(),
                index_key=self._index_key,
                member=record.id,
                score=sequence,
            )
        except RedisError as e:
            raise StoreWriteError(f"Could not save shipment: {e}") from e
        return record

    def list(self, newest_first: bool = True) -> list[ShipmentRecord]:
        try:
            ids = self._redis.index_members(self._index_key, newest_first=newest_first)
            documents = self._redis.get_json_many([self._record_key(i) for i in ids])
        except RedisError as e:
            raise StoreReadError(f"Could not list shipments: {e}") from e

        try:
            records = [ShipmentRecord.from_dict(doc) for doc in documents]
        except (KeyError, ValueError) as e:
            raise StoreReadError(f"Stored shipment is malformed: {e}") from e

        # Concurrent writers can take sequence numbers and timestamps in different orders.
        # The sort is stable, so equal timestamps keep the sequence order.
        records.sort(key=lambda r: r.created_at, reverse=newest_first)
        return records

    def update_status(self, shipment_id: str, status: str) -> ShipmentRecord:
        key = self._record_key(shipment_id)
        try:
            document = self._redis.get_json(key)
            if document is None:
                raise ShipmentNotFoundError(shipment_id)
            updated = replace(ShipmentRecord.from_dict(document), status=status)
            self._redis.set_json(key, updated.to_dict())
        except RedisError as e:
            raise StoreWriteError(f"Could not update shipment {shipment_id}: {e}") from e
        return updated


def build_shipment_store(settings: AgentSettings) -> ShipmentStore:
    """Create the shipment store selected by the settings."""
    if settings.shipment_store == "redis":
        redis_manager = build_redis_manager(
            settings.redis_url, namespace=settings.redis_namespace
        )
        return RedisShipmentStore(redis_manager)
    return InMemoryShipmentStore()
