"""Read-only parent/child view over a generated thread."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from uuid import UUID

from threadsmith.email.models import EmailMessage, EmailThread


def chronological_key(message: EmailMessage) -> tuple[datetime, int, str]:
    """Sort key ``(sent_date, sequence_in_thread, id)`` giving a total order.

    Messages without a send time sort first.  Ids compare by their canonical
    string form, which matches byte order for UUIDs.
    """
    return (message.sent_date or datetime.min, message.sequence_in_thread, str(message.id))


class ThreadGraph:
    """Derived adjacency and ordering for one thread.

    Build with :meth:`build`; the graph never mutates the source thread and
    must be rebuilt if the thread changes.
    """

    def __init__(
        self,
        thread_id: UUID,
        root_email_id: UUID | None,
        nodes: dict[UUID, EmailMessage],
        children_by_parent: dict[UUID, tuple[UUID, ...]],
        chronological_order: tuple[UUID, ...],
        parentless_ids: tuple[UUID, ...],
    ) -> None:
        self.thread_id = thread_id
        self.root_email_id = root_email_id
        self._nodes = nodes
        self._children_by_parent = children_by_parent
        self._chronological_order = chronological_order
        self._parentless_ids = parentless_ids

    @classmethod
    def build(cls, thread: EmailThread) -> ThreadGraph:
        """Derive the graph for *thread*.

        Children of each parent and the whole-thread ordering are sorted by
        :func:`chronological_key`.  The root is the single message without a
        parent.  When there are zero or several such messages the first
        message in insertion order is used instead; ``has_single_root``
        reports which case applied.

        Args:
            thread: The thread to read.

        Returns:
            A new ``ThreadGraph``.
        """
        messages = thread.messages
        nodes = {m.id: m for m in messages}

        children: dict[UUID, list[EmailMessage]] = {}
        for message in messages:
            if message.parent_email_id is None:
                continue
            children.setdefault(message.parent_email_id, []).append(message)

        children_by_parent = {
            parent_id: tuple(m.id for m in sorted(kids, key=chronological_key))
            for parent_id, kids in children.items()
        }
        chronological = tuple(m.id for m in sorted(messages, key=chronological_key))

        parentless = tuple(m.id for m in messages if m.parent_email_id is None)
        if len(parentless) == 1:
            root_id: UUID | None = parentless[0]
        else:
            root_id = messages[0].id if messages else None

        return cls(thread.id, root_id, nodes, children_by_parent, chronological, parentless)

    @property
    def nodes(self) -> Mapping[UUID, EmailMessage]:
        return MappingProxyType(self._nodes)

    @property
    def children_by_parent(self) -> Mapping[UUID, tuple[UUID, ...]]:
        return MappingProxyType(self._children_by_parent)

    @property
    def chronological_order(self) -> tuple[UUID, ...]:
        return self._chronological_order

    @property
    def has_single_root(self) -> bool:
        return len(self._parentless_ids) == 1

    def children_of(self, message_id: UUID) -> tuple[UUID, ...]:
        return self._children_by_parent.get(message_id, ())

    def ancestors_of(self, message_id: UUID) -> list[UUID]:
        """Return the parent chain of *message_id*, nearest first."""
        chain: list[UUID] = []
        seen = {message_id}
        current = self._nodes[message_id].parent_email_id
        while current is not None and current in self._nodes and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self._nodes[current].parent_email_id
        return chain
