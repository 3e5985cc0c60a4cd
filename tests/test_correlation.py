"""
Unit tests for the correlation store and webhook receiver.
"""
import threading

from app.consultation.correlation_store import ConsultationStatus, InMemoryCorrelationStore
from app.consultation.webhook import WebhookReceiver, normalize_document_number


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


# =====================================================================
# Correlation store
# =====================================================================
class TestCorrelationStore:
    def test_mark_pending_creates_entry(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("123")
        entry = store.get("123")
        assert entry.status == ConsultationStatus.PENDING
        assert entry.result is None

    def test_resolve_finishes_entry(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("123")
        assert store.resolve("123", {"balance": "10.00"}) is True
        entry = store.get("123")
        assert entry.is_finished
        assert entry.result == {"balance": "10.00"}

    def test_resolve_unknown_is_dropped(self):
        store = InMemoryCorrelationStore()
        assert store.resolve("999", {"balance": "1"}) is False
        assert store.get("999") is None
        assert len(store) == 0

    def test_resubmission_clears_previous_result(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("123")
        store.resolve("123", {"balance": "1"})
        store.mark_pending("123")
        entry = store.get("123")
        assert entry.status == ConsultationStatus.PENDING
        assert entry.result is None

    def test_expired_entries_are_evicted(self):
        clock = FakeClock()
        store = InMemoryCorrelationStore(ttl_seconds=60, clock=clock)
        store.mark_pending("old")
        clock.now += 61
        assert store.get("old") is None
        store.mark_pending("new")
        assert len(store) == 1
        assert store.resolve("old", {"balance": "1"}) is False

    def test_entry_survives_within_ttl(self):
        clock = FakeClock()
        store = InMemoryCorrelationStore(ttl_seconds=60, clock=clock)
        store.mark_pending("123")
        clock.now += 30
        assert store.get("123").status == ConsultationStatus.PENDING

    def test_concurrent_resolve_and_read(self):
        store = InMemoryCorrelationStore()
        docs = [str(i) for i in range(200)]
        for d in docs:
            store.mark_pending(d)

        def resolver():
            for d in docs:
                store.resolve(d, {"balance": d})

        def reader():
            for _ in range(5):
                for d in docs:
                    store.get(d)

        threads = [threading.Thread(target=resolver)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(store.get(d).result == {"balance": d} for d in docs)


# =====================================================================
# Webhook receiver
# =====================================================================
class TestWebhookReceiver:
    def test_normalize(self):
        assert normalize_document_number("  123 ") == "123"
        assert normalize_document_number(12345678901) == "12345678901"
        assert normalize_document_number(None) == ""

    def test_resolves_with_remaining_fields(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("123")
        receiver = WebhookReceiver(store)
        assert receiver.on_callback({"documentNumber": " 123 ", "balance": "100.50", "extra": 1})
        assert store.get("123").result == {"balance": "100.50", "extra": 1}

    def test_numeric_document_number_matches(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("42")
        assert WebhookReceiver(store).on_callback({"documentNumber": 42, "balance": 1})

    def test_unknown_document_no_state_change(self):
        store = InMemoryCorrelationStore()
        store.mark_pending("123")
        assert WebhookReceiver(store).on_callback({"documentNumber": "999", "balance": "1"}) is False
        assert store.get("123").status == ConsultationStatus.PENDING
        assert store.get("999") is None

    def test_malformed_payloads_ignored(self):
        receiver = WebhookReceiver(InMemoryCorrelationStore())
        assert receiver.on_callback({}) is False
        assert receiver.on_callback({"documentNumber": "   "}) is False
        assert receiver.on_callback(["not", "a", "dict"]) is False
        assert receiver.on_callback(None) is False
