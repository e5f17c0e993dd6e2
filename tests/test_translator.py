"""Tests for the chunk dispatcher."""

import threading
import unittest

from lingodotdev.errors import ServerError, ValidationError
from lingodotdev.segmenter import PayloadChunker
from lingodotdev.structures import Leaf, Record, to_record
from lingodotdev.translator import ChunkDispatcher, progress_percentage
from tests.fakes import RecordingClient


def _payload(count):
    return to_record({f"key{i}": f"value number {i}" for i in range(count)})


class TestProgressPercentage(unittest.TestCase):
    """Tests for progress rounding."""

    def test_rounds_half_away_from_zero(self):
        self.assertEqual(progress_percentage(1, 8), 13)
        self.assertEqual(progress_percentage(3, 8), 38)
        self.assertEqual(progress_percentage(1, 3), 33)
        self.assertEqual(progress_percentage(2, 3), 67)
        self.assertEqual(progress_percentage(3, 3), 100)


class TestSequentialDispatch(unittest.TestCase):
    """Tests for ordered dispatch with progress reporting."""

    def test_progress_fires_once_per_chunk_and_ends_at_100(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=2, ideal_words=250))
        updates = []

        result = dispatcher.localize(
            _payload(7),
            target_locale="es",
            on_progress=lambda pct, chunk, done: updates.append((pct, list(chunk), list(done))),
        )

        percentages = [pct for pct, _, _ in updates]
        self.assertEqual(percentages, [25, 50, 75, 100])
        self.assertEqual(percentages, sorted(percentages))
        self.assertEqual(updates[0][1], ["key0", "key1"])
        self.assertEqual(updates[0][2], ["key0", "key1"])
        self.assertEqual(len(result), 7)
        self.assertEqual(result["key3"], "ES:value number 3")

    def test_progress_forces_sequential_even_when_concurrent(self):
        order = []
        client = RecordingClient(delay=lambda chunk: 0.02 if "key0" in chunk.keys() else 0)
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=1, ideal_words=250))

        dispatcher.localize(
            _payload(3),
            target_locale="es",
            concurrent=True,
            on_progress=lambda pct, chunk, done: order.append(list(chunk)[0]),
        )

        self.assertEqual(order, ["key0", "key1", "key2"])
        self.assertEqual([call["keys"] for call in client.calls], [["key0"], ["key1"], ["key2"]])

    def test_one_workflow_id_per_call(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=1, ideal_words=250))

        dispatcher.localize(_payload(3), target_locale="es")
        first = {call["workflow_id"] for call in client.calls}
        dispatcher.localize(_payload(3), target_locale="es")
        second = {call["workflow_id"] for call in client.calls[3:]}

        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 1)
        self.assertNotEqual(first, second)
        self.assertEqual(len(first.pop()), 16)

    def test_call_options_reach_every_chunk(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=2, ideal_words=250))

        dispatcher.localize(
            _payload(3),
            target_locale="fr",
            source_locale="en",
            fast=True,
            reference={"tone": "formal"},
        )

        for call in client.calls:
            self.assertEqual(call["target_locale"], "fr")
            self.assertEqual(call["source_locale"], "en")
            self.assertTrue(call["fast"])
            self.assertEqual(call["reference"], {"tone": "formal"})

    def test_empty_record_makes_no_calls(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(25, 250))
        self.assertEqual(dispatcher.localize(Record(), target_locale="es"), {})
        self.assertEqual(client.calls, [])

    def test_reference_must_be_mapping(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(25, 250))
        with self.assertRaises(ValidationError):
            dispatcher.localize(_payload(2), target_locale="es", reference=["context"])
        self.assertEqual(client.calls, [])

    def test_failure_stops_remaining_chunks(self):
        client = RecordingClient(fail_on="key1", error=ServerError("boom", status_code=503))
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=1, ideal_words=250))
        with self.assertRaises(ServerError):
            dispatcher.localize(_payload(4), target_locale="es")
        self.assertEqual(len(client.calls), 2)

    def test_key_collision_later_chunk_wins(self):
        class CollidingClient(RecordingClient):
            def localize_chunk(self, chunk, **kwargs):
                return {"shared": chunk.keys()[0]}

        dispatcher = ChunkDispatcher(CollidingClient(), PayloadChunker(max_items=1, ideal_words=250))
        result = dispatcher.localize(_payload(3), target_locale="es")
        self.assertEqual(result, {"shared": "key2"})


class TestParallelDispatch(unittest.TestCase):
    """Tests for unordered parallel dispatch."""

    def test_chunks_run_concurrently(self):
        # Every chunk waits for all the others; sequential dispatch would time out.
        barrier = threading.Barrier(3, timeout=5)
        client = RecordingClient(barrier=barrier)
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=1, ideal_words=250))

        result = dispatcher.localize(_payload(3), target_locale="es", concurrent=True)

        self.assertEqual(sorted(result), ["key0", "key1", "key2"])

    def test_parallel_matches_sequential(self):
        payload = _payload(9)

        def slow_first(chunk):
            index = int(chunk.keys()[0][3:])
            return 0.005 * (9 - index)

        sequential = ChunkDispatcher(
            RecordingClient(), PayloadChunker(max_items=2, ideal_words=250)
        ).localize(payload, target_locale="es")
        parallel = ChunkDispatcher(
            RecordingClient(delay=slow_first), PayloadChunker(max_items=2, ideal_words=250)
        ).localize(payload, target_locale="es", concurrent=True)

        self.assertEqual(parallel, sequential)
        self.assertEqual(list(parallel), list(sequential))

    def test_any_failure_fails_the_call(self):
        client = RecordingClient(fail_on="key2", error=ServerError("down", status_code=500))
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=1, ideal_words=250))
        with self.assertRaises(ServerError):
            dispatcher.localize(_payload(4), target_locale="es", concurrent=True)

    def test_nested_values_are_sent_whole(self):
        client = RecordingClient()
        dispatcher = ChunkDispatcher(client, PayloadChunker(max_items=25, ideal_words=250))
        record = Record(entries={"chat": to_record({"0": "hi"}), "title": Leaf("Hello")})
        result = dispatcher.localize(record, target_locale="es", concurrent=True)
        self.assertEqual(result, {"chat": {"0": "ES:hi"}, "title": "ES:Hello"})
