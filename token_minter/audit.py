"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every committed issuance is recorded here.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord


class AuditEventType(Enum):
    """Types of audit events"""
    MINT_CREATED = "mint_created"
    HOLDING_RECORD_CREATED = "holding_record_created"
    TOKENS_ISSUED = "tokens_issued"
    AUDIT_INTEGRITY_CHECK = "audit_integrity_check"


@dataclass
class AuditEvent(StorageRecord):
    """
    Immutable audit event with hash chaining for tamper detection
    """
    event_type: AuditEventType
    entity_type: str  # mint, holding_record, ...
    entity_id: str    # Address of the affected account
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any]
    request_id: Optional[str] = None

    def __post_init__(self):
        if self.metadata:
            self._serialize_metadata()

    def _serialize_metadata(self) -> None:
        """Convert metadata values to JSON-serializable format"""
        def convert_value(value):
            if isinstance(value, datetime):
                return value.isoformat()
            elif isinstance(value, Enum):
                return value.value
            elif isinstance(value, dict):
                return {k: convert_value(v) for k, v in value.items()}
            elif isinstance(value, (list, tuple)):
                return [convert_value(v) for v in value]
            elif isinstance(value, (str, int, float, bool)) or value is None:
                return value
            else:
                # Addresses and other value objects render as their string form
                return str(value)

        self.metadata = {k: convert_value(v) for k, v in self.metadata.items()}

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'request_id': self.request_id,
            'metadata': self.metadata
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['event_type'] = self.event_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        data = dict(data)
        if isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])
        if isinstance(data['event_type'], str):
            data['event_type'] = AuditEventType(data['event_type'])

        return cls(**data)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, storage: StorageInterface, table_name: str = "audit_events"):
        self.storage = storage
        self.table_name = table_name
        self._last_hash: Optional[str] = None
        self._sequence = 0
        self._lock = threading.Lock()
        self._load_last_hash()

    def _load_last_hash(self) -> None:
        """Load the hash of the most recent audit event"""
        events = self.storage.load_all(self.table_name)
        if events:
            latest = max(events, key=lambda x: x.get('sequence', 0))
            self._last_hash = latest.get('current_hash')
            self._sequence = latest.get('sequence', 0)

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: Address of the entity
            metadata: Additional event-specific data
            request_id: Issuance request this event belongs to

        Returns:
            Created AuditEvent
        """
        with self._lock:
            now = datetime.now(timezone.utc)

            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                previous_hash=self._last_hash or "",
                current_hash="",
                request_id=request_id,
                metadata=metadata or {}
            )
            event.current_hash = event.calculate_hash()

            # Timestamps can collide, the sequence keeps chain order exact
            self._sequence += 1
            record = event.to_dict()
            record['sequence'] = self._sequence
            self.storage.save(self.table_name, event.id, record)

            self._last_hash = event.current_hash
            return event

    def _ordered_events(self) -> List[AuditEvent]:
        records = sorted(self.storage.load_all(self.table_name), key=lambda x: x.get('sequence', 0))
        events = []
        for record in records:
            record.pop('sequence', None)
            events.append(AuditEvent.from_dict(record))
        return events

    def get_events_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        """Get all audit events for a specific entity in chain order"""
        return [
            e for e in self._ordered_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_events_by_type(self, event_type: AuditEventType,
                           limit: Optional[int] = None) -> List[AuditEvent]:
        """Get audit events of one type, most recent last"""
        events = [e for e in self._ordered_events() if e.event_type == event_type]
        if limit:
            events = events[-limit:]
        return events

    def get_all_events(self) -> List[AuditEvent]:
        return self._ordered_events()

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        events = self._ordered_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for i, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash

        return result

    def count_events(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        return self._last_hash
