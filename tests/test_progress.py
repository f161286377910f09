"""Tests for TurnProgress thread-safe progress tracking."""

import threading

from storefront.simulation.progress import TurnProgress


class TestTurnProgress:
    def test_initial_state(self):
        snap = TurnProgress().snapshot()
        assert snap["turn_number"] == 0
        assert snap["personas_total"] == 0
        assert snap["personas_done"] == 0
        assert snap["errors"] == 0
        assert snap["decision_counts"] == {}

    def test_begin_turn_resets_counters(self):
        p = TurnProgress()
        p.record_persona_done("Buy")
        p.begin_batch(4)
        p.begin_turn(turn_number=2, personas_total=20, batches_total=7)
        snap = p.snapshot()
        assert snap["turn_number"] == 2
        assert snap["personas_total"] == 20
        assert snap["batches_total"] == 7
        assert snap["batch_index"] == 0
        assert snap["personas_done"] == 0
        assert snap["decision_counts"] == {}

    def test_record_persona_done(self):
        p = TurnProgress()
        p.record_persona_done("Buy")
        p.record_persona_done("Buy")
        p.record_persona_done("Skip", error=True)
        p.record_persona_done(None)
        snap = p.snapshot()
        assert snap["personas_done"] == 4
        assert snap["errors"] == 1
        assert snap["decision_counts"] == {"Buy": 2, "Skip": 1}

    def test_snapshot_is_a_copy(self):
        p = TurnProgress()
        p.record_persona_done("Switch")
        snap = p.snapshot()
        snap["decision_counts"]["Switch"] = 99
        assert p.snapshot()["decision_counts"] == {"Switch": 1}

    def test_concurrent_updates(self):
        p = TurnProgress()

        def worker():
            for _ in range(200):
                p.record_persona_done("Buy")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert p.snapshot()["personas_done"] == 1600
        assert p.snapshot()["decision_counts"]["Buy"] == 1600
