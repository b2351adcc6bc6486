"""Ordered selector cascades shared by the field extractors.

Most heuristics in this package follow the same shape: try a fixed list of
CSS selectors in priority order and stop at the first one that produces a
usable result.  The two helpers below capture that loop once.
"""

from typing import Callable, Iterable, List, Optional, TypeVar

from bs4 import Tag

T = TypeVar("T")


def first_result(
    root: Tag,
    selectors: Iterable[str],
    pick: Callable[[Tag], Optional[T]],
) -> Optional[T]:
    """Return ``pick(node)`` for the first selector whose first match yields a value.

    For each selector only its first matching element is offered to *pick*.
    When *pick* returns ``None`` (or an empty string) the cascade falls
    through to the next selector.
    """
    for selector in selectors:
        node = root.select_one(selector)
        if node is None:
            continue
        value = pick(node)
        if value:
            return value
    return None


def first_nonempty(
    root: Tag,
    selectors: Iterable[str],
    collect: Callable[[List[Tag]], List[T]],
) -> List[T]:
    """Return ``collect(matches)`` for the first selector family that yields anything.

    Results of different families are never merged.
    """
    for selector in selectors:
        matches = root.select(selector)
        if not matches:
            continue
        values = collect(matches)
        if values:
            return values
    return []


def attr_of(node: Optional[Tag], *names: str) -> str:
    """Return the first non-empty attribute among *names*, stripped."""
    if node is None:
        return ""
    for name in names:
        value = node.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value and str(value).strip():
            return str(value).strip()
    return ""
