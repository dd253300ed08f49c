"""Structural change detection for the editable root."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Dict, List

from bs4 import Tag

from .models import MutationBatch

logger = logging.getLogger("blog_components")

BatchCallback = Callable[[MutationBatch], None]


class MutationWatcher:
    """Diff the element set under ``root`` into batches and queue them.

    Edits are not reported as they happen. ``take_records`` compares the live
    tree with the previous snapshot, and ``flush`` queues that batch behind any
    batches already waiting and hands each one to the callback in order. Hosts
    call ``flush`` once per render tick.

    ``MutationBatch.added`` holds only the topmost inserted elements, in
    document order. ``MutationBatch.removed`` holds every element that left the
    tree, so marked descendants of a removed container are reported too.
    """

    def __init__(self, root: Tag, callback: BatchCallback) -> None:
        self.root = root
        self._callback = callback
        self._queue: Deque[MutationBatch] = deque()
        self._known: Dict[int, Tag] = {}
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pending(self) -> int:
        return len(self._queue)

    def observe(self) -> None:
        self._known = self._snapshot()
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False
        self._queue.clear()
        self._known = {}

    def _snapshot(self) -> Dict[int, Tag]:
        return {id(tag): tag for tag in self.root.find_all(True)}

    def take_records(self) -> MutationBatch:
        """Return the changes since the last call and advance the snapshot."""
        if not self._connected:
            return MutationBatch()
        current = self._snapshot()
        added_ids = {key for key, tag in current.items() if self._known.get(key) is not tag}
        added: List[Tag] = [
            tag
            for key, tag in current.items()
            if key in added_ids and id(tag.parent) not in added_ids
        ]
        removed = [
            tag for key, tag in self._known.items() if current.get(key) is not tag
        ]
        self._known = current
        return MutationBatch(added=added, removed=removed)

    def enqueue(self, batch: MutationBatch) -> None:
        if batch:
            self._queue.append(batch)

    def flush(self) -> int:
        """Deliver every queued batch to the callback; returns how many ran."""
        if not self._connected:
            return 0
        self.enqueue(self.take_records())
        delivered = 0
        while self._queue:
            batch = self._queue.popleft()
            logger.debug(
                "Reconciling mutation batch (%d added, %d removed)",
                len(batch.added),
                len(batch.removed),
            )
            self._callback(batch)
            delivered += 1
        return delivered
