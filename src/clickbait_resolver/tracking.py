"""Identity-based bookkeeping of headline elements."""

from typing import Any, Dict


class ProcessedSet:
    """Set of page elements keyed by object identity.

    bs4 tags compare and hash by their markup, so two headlines with the same
    text would collide in a plain set. Elements are kept referenced so their
    ids cannot be reused while tracked.
    """

    def __init__(self):
        self._elements: Dict[int, Any] = {}

    def add(self, element: Any) -> None:
        self._elements[id(element)] = element

    def discard(self, element: Any) -> None:
        self._elements.pop(id(element), None)

    def clear(self) -> None:
        self._elements.clear()

    def __contains__(self, element: Any) -> bool:
        return self._elements.get(id(element)) is element

    def __len__(self) -> int:
        return len(self._elements)
