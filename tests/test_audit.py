"""
Test suite for audit module

Tests hash-chained audit trail, tamper detection and integrity verification.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from loanbook.storage import InMemoryStorage, SQLiteStorage
from loanbook.audit import AuditTrail, AuditEvent, AuditEventType


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_trail(storage):
    return AuditTrail(storage)


class TestAuditEvent:
    """Test AuditEvent functionality"""

    def test_hash_round_trip(self):
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id="AUDIT001",
            created_at=now,
            updated_at=now,
            event_type=AuditEventType.LOAN_CREATED,
            entity_type="loan",
            entity_id="LN-0001",
            previous_hash="",
            current_hash="",
            metadata={"principal": "12000.00"}
        )
        event.current_hash = event.calculate_hash()

        assert len(event.current_hash) == 64
        assert event.verify_hash()

        restored = AuditEvent.from_dict(event.to_dict())
        assert restored.event_type == AuditEventType.LOAN_CREATED
        assert restored.verify_hash()

    def test_modified_event_fails_verification(self):
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id="AUDIT002", created_at=now, updated_at=now,
            event_type=AuditEventType.PAYMENT_RECORDED, entity_type="payment",
            entity_id="PM-0001", previous_hash="", current_hash="",
            metadata={"amount": "100.00"}
        )
        event.current_hash = event.calculate_hash()
        event.metadata["amount"] = "1000.00"

        assert not event.verify_hash()


class TestAuditTrail:
    """Test the hash chain"""

    def test_events_are_chained(self, audit_trail):
        first = audit_trail.log_event(AuditEventType.CLIENT_CREATED, "client", "CL-1")
        second = audit_trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-1", {"client_id": "CL-1"})

        assert first.previous_hash == ""
        assert second.previous_hash == first.current_hash

        result = audit_trail.verify_integrity()
        assert result == {"valid": True, "total_events": 2, "broken_events": []}

    def test_metadata_made_json_safe(self, audit_trail):
        event = audit_trail.log_event(
            AuditEventType.PAYMENT_RECORDED, "payment", "PM-1", {"amount": Decimal('10.50')}
        )
        assert event.metadata == {"amount": "10.50"}
        assert audit_trail.verify_integrity()["valid"]

    def test_tampering_detected(self, audit_trail, storage):
        audit_trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-1")
        event = audit_trail.log_event(AuditEventType.PAYMENT_RECORDED, "payment", "PM-1", {"amount": "100.00"})
        audit_trail.log_event(AuditEventType.PAYMENT_DELETED, "payment", "PM-1")

        data = storage.load("audit_events", event.id)
        data["metadata"]["amount"] = "1.00"
        storage.save("audit_events", event.id, data)

        result = audit_trail.verify_integrity()
        assert not result["valid"]
        assert result["broken_events"] == [event.id]

    def test_deleted_event_breaks_chain(self, audit_trail, storage):
        audit_trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-1")
        middle = audit_trail.log_event(AuditEventType.LOAN_UPDATED, "loan", "LN-1")
        last = audit_trail.log_event(AuditEventType.LOAN_DELETED, "loan", "LN-1")

        storage.delete("audit_events", middle.id)

        result = audit_trail.verify_integrity()
        assert result["broken_events"] == [last.id]

    def test_events_for_entity(self, audit_trail):
        audit_trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-1")
        audit_trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-2")
        audit_trail.log_event(AuditEventType.LOAN_SETTLED, "loan", "LN-1")

        events = audit_trail.get_events_for_entity("loan", "LN-1")
        assert [e.event_type for e in events] == [AuditEventType.LOAN_CREATED, AuditEventType.LOAN_SETTLED]

    def test_disabled_trail_records_nothing(self, storage):
        trail = AuditTrail(storage, enabled=False)
        assert trail.log_event(AuditEventType.LOAN_CREATED, "loan", "LN-1") is None
        assert trail.get_all_events() == []

    def test_events_roll_back_with_transaction(self, audit_trail, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                audit_trail.log_event(AuditEventType.PAYMENT_RECORDED, "payment", "PM-1")
                raise RuntimeError("write failed")

        assert audit_trail.get_all_events() == []

    def test_sqlite_backend(self):
        storage = SQLiteStorage(":memory:")
        trail = AuditTrail(storage)
        for i in range(3):
            trail.log_event(AuditEventType.PAYMENT_RECORDED, "payment", f"PM-{i}")

        assert trail.verify_integrity()["valid"]
        storage.close()
