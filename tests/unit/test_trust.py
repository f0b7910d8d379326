import threading

import pytest

from meshtastic_link.core.enums import EventType, TrustOutcome
from meshtastic_link.link.trust import InMemoryKeyStore, NodeTrustTracker, key_fingerprint

NODE = 0x1A2B3C4D
KEY_A = bytes(range(32))
KEY_B = bytes([0xFF]) + KEY_A[1:]  # differs from KEY_A in the first byte


def test_first_key_is_recorded() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.FIRST_SEEN
    assert store.get_recorded_key(NODE) == KEY_A
    state = tracker.state(NODE)
    assert state is not None and state.trusted


def test_first_seen_key_is_trusted_on_every_later_announcement() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.FIRST_SEEN
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.TRUSTED
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.TRUSTED


def test_same_key_is_trusted_and_store_untouched() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.TRUSTED
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.TRUSTED
    assert store.get_recorded_key(NODE) == KEY_A


def test_changed_key_is_a_mismatch_and_never_overwrites() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()
    tracker.evaluate(NODE, KEY_A, store)

    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.MISMATCH
    assert store.get_recorded_key(NODE) == KEY_A
    state = tracker.state(NODE)
    assert state is not None
    assert state.trusted is False
    assert state.recorded_public_key == KEY_A
    assert state.current_public_key == KEY_B

    # Repeating the announcement does not wear the mismatch down
    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.MISMATCH
    assert store.get_recorded_key(NODE) == KEY_A


def test_mismatch_does_not_heal_when_first_key_returns() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.FIRST_SEEN
    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.MISMATCH

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.MISMATCH
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.MISMATCH
    assert store.get_recorded_key(NODE) == KEY_A
    state = tracker.state(NODE)
    assert state is not None and state.trusted is False


def test_confirming_original_key_clears_mismatch() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    tracker = NodeTrustTracker()
    tracker.evaluate(NODE, KEY_B, store)

    tracker.confirm_replacement(NODE, KEY_A, store)

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.TRUSTED


def test_removing_recorded_key_starts_over() -> None:
    keys: dict[int, bytes] = {}

    class DeletableStore(InMemoryKeyStore):
        def get_recorded_key(self, node_id: int) -> bytes | None:
            return keys.get(node_id)

        def set_recorded_key(self, node_id: int, key: bytes) -> None:
            keys[node_id] = key

    store = DeletableStore()
    tracker = NodeTrustTracker()
    tracker.evaluate(NODE, KEY_A, store)
    tracker.evaluate(NODE, KEY_B, store)

    # Node deleted from the record store
    keys.clear()

    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.FIRST_SEEN
    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.TRUSTED


def test_empty_key_with_nothing_recorded() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, b"", store) is TrustOutcome.TRUSTED
    assert store.get_recorded_key(NODE) is None
    # A real key later is still the first one seen
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.FIRST_SEEN


def test_empty_recorded_key_counts_as_unrecorded() -> None:
    store = InMemoryKeyStore({NODE: b""})
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.FIRST_SEEN


def test_empty_key_against_recorded_key_is_a_mismatch() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    tracker = NodeTrustTracker()

    assert tracker.evaluate(NODE, b"", store) is TrustOutcome.MISMATCH
    assert store.get_recorded_key(NODE) == KEY_A


def test_confirm_replacement_records_new_key() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    tracker = NodeTrustTracker()
    tracker.evaluate(NODE, KEY_B, store)

    state = tracker.confirm_replacement(NODE, KEY_B, store)

    assert state.trusted
    assert store.get_recorded_key(NODE) == KEY_B
    assert tracker.evaluate(NODE, KEY_B, store) is TrustOutcome.TRUSTED
    assert tracker.evaluate(NODE, KEY_A, store) is TrustOutcome.MISMATCH


def test_confirm_replacement_rejects_empty_key() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    with pytest.raises(ValueError):
        NodeTrustTracker().confirm_replacement(NODE, b"", store)
    assert store.get_recorded_key(NODE) == KEY_A


def test_events_carry_fingerprints_not_keys() -> None:
    events: list[dict] = []
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker(emit=events.append)

    tracker.evaluate(NODE, KEY_A, store)
    tracker.evaluate(NODE, KEY_A, store)
    tracker.evaluate(NODE, KEY_B, store)
    tracker.confirm_replacement(NODE, KEY_B, store)

    assert [e["type"] for e in events] == [
        EventType.TRUST_FIRST_SEEN,
        EventType.TRUST_MISMATCH,
        EventType.TRUST_KEY_REPLACED,
    ]
    mismatch = events[1]["data"]
    assert mismatch["node_id"] == "!1a2b3c4d"
    assert mismatch["recorded_fingerprint"] == key_fingerprint(KEY_A)
    assert mismatch["current_fingerprint"] == key_fingerprint(KEY_B)
    assert mismatch["trusted"] is False


def test_failing_observer_does_not_break_evaluation() -> None:
    def boom(_event: dict) -> None:
        raise RuntimeError("observer failed")

    tracker = NodeTrustTracker(emit=boom)
    assert tracker.evaluate(NODE, KEY_A, InMemoryKeyStore()) is TrustOutcome.FIRST_SEEN


def test_observer_may_query_tracker_for_same_node() -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    seen: list[bool] = []
    tracker: NodeTrustTracker

    def on_event(_event: dict) -> None:
        state = tracker.state(NODE)
        seen.append(state is not None and state.trusted)

    tracker = NodeTrustTracker(emit=on_event)
    outcomes: list[TrustOutcome] = []
    worker = threading.Thread(target=lambda: outcomes.append(tracker.evaluate(NODE, KEY_B, store)))
    worker.start()
    worker.join(timeout=2)

    assert not worker.is_alive()
    assert outcomes == [TrustOutcome.MISMATCH]
    assert seen == [False]


def test_mismatch_logs_warning(caplog) -> None:
    store = InMemoryKeyStore({NODE: KEY_A})
    with caplog.at_level("WARNING", logger="meshtastic_link.link.trust"):
        NodeTrustTracker().evaluate(NODE, KEY_B, store)
    assert "public key mismatch for !1a2b3c4d" in caplog.text


def test_state_is_a_copy() -> None:
    tracker = NodeTrustTracker()
    tracker.evaluate(NODE, KEY_A, InMemoryKeyStore())
    state = tracker.state(NODE)
    assert state is not None
    state.trusted = False
    assert tracker.state(NODE).trusted is True
    assert tracker.state(0x99) is None


def test_closed_tracker_refuses_calls() -> None:
    tracker = NodeTrustTracker()
    tracker.close()
    with pytest.raises(RuntimeError, match="closed"):
        tracker.evaluate(NODE, KEY_A, InMemoryKeyStore())


def test_key_fingerprint() -> None:
    assert key_fingerprint(b"") == "<none>"
    assert len(key_fingerprint(KEY_A)) == 16
    assert key_fingerprint(KEY_A) != key_fingerprint(KEY_B)


def test_concurrent_first_announcements_record_once() -> None:
    store = InMemoryKeyStore()
    tracker = NodeTrustTracker()
    outcomes: list[TrustOutcome] = []
    outcomes_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        outcome = tracker.evaluate(NODE, KEY_A, store)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert outcomes.count(TrustOutcome.FIRST_SEEN) == 1
    assert outcomes.count(TrustOutcome.TRUSTED) == 7
