"""Caller-side card edits. The store replaces cards wholesale; rules live here."""

from collections.abc import Iterable
from dataclasses import replace

from flashmaster.domain.models import Card


def merge_tags(
    tags: Iterable[str],
    add: Iterable[str] = (),
    remove: Iterable[str] = (),
) -> tuple[str, ...]:
    """
    Add tags not already present (case-insensitive) and drop removed ones.

    Existing order is kept and new tags are appended in the order given.
    """
    merged = list(tags)
    for tag in add:
        if not any(t.lower() == tag.lower() for t in merged):
            merged.append(tag)

    dropped = {t.lower() for t in remove}
    if dropped:
        merged = [t for t in merged if t.lower() not in dropped]
    return tuple(merged)


def edit_card(
    card: Card,
    front: str | None = None,
    back: str | None = None,
    hint: str | None = None,
    clear_hint: bool = False,
    add_tags: Iterable[str] = (),
    remove_tags: Iterable[str] = (),
    suspend: bool | None = None,
) -> Card:
    """Return a copy of `card` with the requested content edits applied."""
    changes: dict = {}
    if front is not None:
        changes["front"] = front
    if back is not None:
        changes["back"] = back
    if clear_hint:
        changes["hint"] = None
    if hint is not None:
        changes["hint"] = hint

    add_tags = list(add_tags)
    remove_tags = list(remove_tags)
    if add_tags or remove_tags:
        changes["tags"] = merge_tags(card.tags, add_tags, remove_tags)

    if suspend is not None:
        changes["suspended"] = suspend

    return replace(card, **changes) if changes else card
