from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from config.settings import CONFIG
from utils.text import normalize_for_search


@dataclass(frozen=True)
class TypeSuggestions:
    """Worker role tags offered by the type picker.

    The set only grows. Tags are compared exactly, so "mason" and "Mason" are
    two entries. Every operation returns a new value and never mutates self.
    """

    tags: tuple[str, ...] = CONFIG.default_worker_types

    def __contains__(self, tag: object) -> bool:
        return tag in self.tags

    def __len__(self) -> int:
        return len(self.tags)

    def add_if_absent(self, tag: str | None) -> "TypeSuggestions":
        tag = (tag or "").strip()
        if not tag or tag in self.tags:
            return self
        return TypeSuggestions(self.tags + (tag,))

    def absorb(self, workers: Iterable[Mapping[str, Any]]) -> "TypeSuggestions":
        result = self
        for worker in workers:
            result = result.add_if_absent(worker.get("type"))
        return result

    def matching(self, prefix: str, limit: int | None = None) -> list[str]:
        needle = normalize_for_search(prefix) or ""
        found = [t for t in self.tags if (normalize_for_search(t) or "").startswith(needle)]
        return found[:limit] if limit else found
