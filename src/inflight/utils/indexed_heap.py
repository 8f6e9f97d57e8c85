"""Binary min-heap with removal by identifier.

Every entry remembers its own array position, updated on each swap, so an
entry can be located through the identifier index and removed in O(log n)
instead of scanning the heap.
"""

from typing import Dict, List, Optional


class _HeapEntry:
    __slots__ = ("key", "seq", "item_id", "pos")

    def __init__(self, key: int, seq: int, item_id: str, pos: int):
        self.key = key
        self.seq = seq
        self.item_id = item_id
        self.pos = pos

    def precedes(self, other: "_HeapEntry") -> bool:
        if self.key == other.key:
            return self.seq < other.seq
        return self.key < other.key


class IndexedMinHeap:
    """Min-heap of ``(key, item_id)`` pairs ordered by key, then insertion order.

    Identifiers are expected to be unique while live. A duplicate identifier is
    still accepted; ``remove_by_id`` then removes the earliest inserted entry.
    """

    def __init__(self) -> None:
        self._data: List[_HeapEntry] = []
        self._index: Dict[str, List[_HeapEntry]] = {}
        self._seq = 0

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._index

    def insert(self, item_id: str, key: int) -> None:
        """Add an entry. O(log n)."""
        entry = _HeapEntry(key, self._seq, item_id, len(self._data))
        self._seq += 1
        self._data.append(entry)
        self._index.setdefault(item_id, []).append(entry)
        self._sift_up(entry.pos)

    def peek_oldest(self) -> Optional[str]:
        """Identifier with the smallest key, or None when empty. O(1)."""
        if not self._data:
            return None
        return self._data[0].item_id

    def remove_by_id(self, item_id: str) -> bool:
        """Remove the entry for ``item_id``. Returns False if it is not present."""
        entries = self._index.get(item_id)
        if not entries:
            return False
        entry = entries.pop(0)
        if not entries:
            del self._index[item_id]

        pos = entry.pos
        last = self._data.pop()
        if pos < len(self._data):
            self._data[pos] = last
            last.pos = pos
            # the moved entry may belong above or below its new slot
            if pos > 0 and last.precedes(self._data[(pos - 1) // 2]):
                self._sift_up(pos)
            else:
                self._sift_down(pos)
        return True

    def ids(self) -> List[str]:
        """Identifiers currently held, in array order."""
        return [entry.item_id for entry in self._data]

    def _swap(self, i: int, j: int) -> None:
        data = self._data
        data[i], data[j] = data[j], data[i]
        data[i].pos = i
        data[j].pos = j

    def _sift_up(self, pos: int) -> None:
        data = self._data
        while pos > 0:
            parent = (pos - 1) // 2
            if not data[pos].precedes(data[parent]):
                break
            self._swap(pos, parent)
            pos = parent

    def _sift_down(self, pos: int) -> None:
        data = self._data
        size = len(data)
        while True:
            smallest = pos
            left = 2 * pos + 1
            right = left + 1
            if left < size and data[left].precedes(data[smallest]):
                smallest = left
            if right < size and data[right].precedes(data[smallest]):
                smallest = right
            if smallest == pos:
                return
            self._swap(pos, smallest)
            pos = smallest
