"""Tests for the read-only thread graph."""

from datetime import datetime, timedelta

from threadsmith.email.graph import ThreadGraph, chronological_key
from threadsmith.email.models import EmailThread
from threadsmith.email.placeholders import ensure_placeholder_messages
from threadsmith.seeding.derive import derive_id

BASE = datetime(2024, 3, 4, 9, 0)


def _thread(parents: list[int], minutes: list[int]) -> EmailThread:
    thread = EmailThread(thread_id=derive_id("test-thread", "graph", len(parents)))
    ensure_placeholder_messages(thread, len(parents))
    messages = thread.messages
    for message, parent, offset in zip(messages, parents, minutes, strict=True):
        message.parent_email_id = messages[parent].id if parent >= 0 else None
        message.sent_date = BASE + timedelta(minutes=offset)
    return thread


class TestThreadGraph:
    def test_branching_thread(self) -> None:
        # 0 -> 1 -> 2, and 0 -> 3 as a side branch
        thread = _thread([-1, 0, 1, 0], [0, 10, 20, 15])
        ids = [m.id for m in thread.messages]
        graph = ThreadGraph.build(thread)

        assert graph.thread_id == thread.id
        assert graph.root_email_id == ids[0]
        assert graph.has_single_root
        assert graph.children_of(ids[0]) == (ids[1], ids[3])
        assert graph.children_of(ids[2]) == ()
        assert graph.chronological_order == (ids[0], ids[1], ids[3], ids[2])
        assert graph.ancestors_of(ids[2]) == [ids[1], ids[0]]
        assert graph.ancestors_of(ids[0]) == []
        assert set(graph.nodes) == set(ids)

    def test_children_sorted_by_date_then_sequence(self) -> None:
        thread = _thread([-1, 0, 0], [0, 30, 30])
        ids = [m.id for m in thread.messages]
        graph = ThreadGraph.build(thread)
        assert graph.children_by_parent[ids[0]] == (ids[1], ids[2])

    def test_multiple_parentless_falls_back_to_first(self) -> None:
        thread = _thread([-1, -1], [5, 0])
        graph = ThreadGraph.build(thread)
        assert graph.root_email_id == thread.messages[0].id
        assert graph.has_single_root is False

    def test_empty_thread(self) -> None:
        graph = ThreadGraph.build(EmailThread())
        assert graph.root_email_id is None
        assert graph.chronological_order == ()

    def test_graph_does_not_mutate_thread(self) -> None:
        thread = _thread([-1, 0], [0, 1])
        before = [m.model_dump() for m in thread.messages]
        ThreadGraph.build(thread)
        assert [m.model_dump() for m in thread.messages] == before


class TestChronologicalKey:
    def test_undated_sorts_first(self) -> None:
        thread = _thread([-1, 0], [0, 1])
        thread.messages[1].sent_date = None
        ordered = sorted(thread.messages, key=chronological_key)
        assert ordered[0].sequence_in_thread == 1

    def test_equal_date_and_sequence_falls_back_to_id(self) -> None:
        thread = _thread([-1, 0, 0], [0, 30, 30])
        first, second = thread.messages[1], thread.messages[2]
        second.sequence_in_thread = first.sequence_in_thread
        expected = sorted([first.id, second.id], key=str)

        ordered = sorted([second, first], key=chronological_key)
        graph = ThreadGraph.build(thread)

        assert [m.id for m in ordered] == expected
        assert graph.children_by_parent[thread.messages[0].id] == tuple(expected)
