"""Entry-graph creation: placeholder resolution and dependency ordering."""

import copy
import logging
from typing import Any, Dict, List, Optional, Set

import httpx

from harvester.models.cms import EntryPayload, LoadReport
from harvester.services.contentful import ContentfulClient, make_link

logger = logging.getLogger(__name__)

LOCAL_REF = "_localRef"
LINK_TYPE = "_linkType"


class DependencyCycleError(ValueError):
    """Raised when ``depends_on`` edges form a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = cycle
        super().__init__("Dependency cycle: " + " -> ".join(cycle))


def local_ref(local_id: str, link_type: str = "Entry") -> dict:
    """Placeholder for a link to an entry that does not exist yet."""
    return {LOCAL_REF: local_id, LINK_TYPE: link_type}


_DROP = object()


def _resolve_value(value: Any, id_map: Dict[str, str], dropped: Set[str]) -> Any:
    if isinstance(value, dict) and LOCAL_REF in value:
        if value[LOCAL_REF] in dropped:
            return _DROP
        real_id = id_map.get(value[LOCAL_REF])
        return make_link(real_id, value.get(LINK_TYPE) or "Entry") if real_id else value
    if isinstance(value, list):
        resolved = (_resolve_value(item, id_map, dropped) for item in value)
        return [item for item in resolved if item is not _DROP]
    return value


def resolve_references(
    fields: Dict[str, Dict[str, Any]],
    id_map: Dict[str, str],
    dropped: Optional[Set[str]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Return a copy of *fields* with every known ``_localRef`` marker turned
    into a CMS link.

    Markers may appear as a locale value or as items of a list value.
    Markers whose local id is not in *id_map* are left untouched.  Markers
    naming an id in *dropped* are removed: from a list value, or together
    with the locale value (and the field once no locale is left).
    """
    dropped = dropped or set()
    resolved = {}
    for field_id, locale_values in copy.deepcopy(fields).items():
        kept = {}
        for locale, value in locale_values.items():
            value = _resolve_value(value, id_map, dropped)
            if value is not _DROP:
                kept[locale] = value
        if kept:
            resolved[field_id] = kept
    return resolved


def sort_by_dependencies(payloads: List[EntryPayload]) -> List[EntryPayload]:
    """Order *payloads* so every entry follows the entries it depends on.

    Depth-first; ties keep input order.  Dependencies naming an id outside
    *payloads* are ignored.

    Raises:
        DependencyCycleError: on a back edge in the dependency graph.
    """
    by_id = {payload.local_id: payload for payload in payloads}
    finished: Set[str] = set()
    in_progress: List[str] = []
    ordered: List[EntryPayload] = []

    def visit(payload: EntryPayload) -> None:
        if payload.local_id in finished:
            return
        if payload.local_id in in_progress:
            start = in_progress.index(payload.local_id)
            raise DependencyCycleError(in_progress[start:] + [payload.local_id])

        in_progress.append(payload.local_id)
        for dep_id in payload.depends_on + payload.links_to:
            dependency = by_id.get(dep_id)
            if dependency is not None:
                visit(dependency)
        in_progress.pop()

        finished.add(payload.local_id)
        ordered.append(payload)

    for payload in payloads:
        visit(payload)
    return ordered


async def create_and_publish(
    client: ContentfulClient,
    content_type_id: str,
    fields: Dict[str, Any],
    metadata: Dict[str, Any] | None = None,
    publish: bool = True,
) -> str:
    """Create an entry; a publish failure is logged, not raised."""
    entry_id = await client.create_entry(content_type_id, fields, metadata)
    if publish:
        try:
            await client.publish_entry(entry_id)
        except httpx.HTTPError as exc:
            logger.warning("Entry %s created but could not publish: %s", entry_id, exc)
    return entry_id


async def create_entries(
    client: ContentfulClient,
    payloads: List[EntryPayload],
    publish: bool = True,
) -> LoadReport:
    """Create *payloads* in dependency order.

    An entry whose ``depends_on`` entry failed is skipped and reported
    instead of being created with a dangling placeholder.  A failed
    ``links_to`` entry only removes that link.
    """
    report = LoadReport()
    failed: Set[str] = set()

    for payload in sort_by_dependencies(payloads):
        broken = [dep for dep in payload.depends_on if dep in failed]
        if broken:
            failed.add(payload.local_id)
            report.errors.append(
                f"{payload.local_id}: skipped, dependency failed ({', '.join(broken)})"
            )
            continue

        fields = resolve_references(payload.fields, report.id_map, failed)
        try:
            entry_id = await create_and_publish(
                client, payload.content_type_id, fields, payload.metadata, publish
            )
        except httpx.HTTPError as exc:
            failed.add(payload.local_id)
            report.errors.append(f"{payload.local_id}: {exc}")
            logger.warning("Failed to create %s (%s): %s", payload.local_id, payload.content_type_id, exc)
            continue

        report.id_map[payload.local_id] = entry_id
        report.entries_created += 1
        logger.debug("Created %s → %s", payload.local_id, entry_id)

    return report
