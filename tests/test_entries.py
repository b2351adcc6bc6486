"""Tests for harvester.services.entries (reference resolution and entry graphs)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from harvester.models.cms import EntryPayload
from harvester.services.contentful import make_link
from harvester.services.entries import (
    DependencyCycleError,
    create_and_publish,
    create_entries,
    local_ref,
    resolve_references,
    sort_by_dependencies,
)


def _payload(local_id, depends_on=(), fields=None, content_type="section"):
    return EntryPayload(
        local_id=local_id,
        content_type_id=content_type,
        fields=fields or {"title": {"en-US": local_id}},
        depends_on=list(depends_on),
    )


def _client(ids=None, fail_on=()):
    """Mock client whose create_entry hands out ids and fails for titles in *fail_on*."""
    counter = iter(ids or (f"cf-{i}" for i in range(1, 100)))

    async def create_entry(content_type_id, fields, metadata=None):
        if fields.get("title", {}).get("en-US") in fail_on:
            raise httpx.ConnectError("connection refused")
        return next(counter)

    client = MagicMock()
    client.create_entry = AsyncMock(side_effect=create_entry)
    client.publish_entry = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# resolve_references
# ---------------------------------------------------------------------------

class TestResolveReferences:
    def test_single_and_list_values(self):
        fields = {
            "hero": {"en-US": local_ref("hero")},
            "image": {"en-US": local_ref("img", "Asset")},
            "sections": {"en-US": [local_ref("s1"), local_ref("s2")]},
            "title": {"en-US": "Home"},
        }
        resolved = resolve_references(fields, {"hero": "H", "img": "A", "s1": "S1", "s2": "S2"})

        assert resolved["hero"]["en-US"] == make_link("H")
        assert resolved["image"]["en-US"] == make_link("A", "Asset")
        assert resolved["sections"]["en-US"] == [make_link("S1"), make_link("S2")]
        assert resolved["title"]["en-US"] == "Home"

    def test_unknown_reference_left_untouched(self):
        fields = {"hero": {"en-US": local_ref("missing")}}
        assert resolve_references(fields, {}) == fields

    def test_dropped_references_removed(self):
        fields = {
            "hero": {"en-US": local_ref("hero")},
            "sections": {"en-US": [local_ref("s1"), local_ref("s2")]},
            "title": {"en-US": "Home"},
        }
        resolved = resolve_references(fields, {"s2": "S2"}, dropped={"hero", "s1"})

        assert "hero" not in resolved
        assert resolved["sections"]["en-US"] == [make_link("S2")]
        assert resolved["title"]["en-US"] == "Home"

    def test_input_not_mutated(self):
        fields = {"items": {"en-US": [local_ref("a")]}}
        resolve_references(fields, {"a": "X"})
        assert fields == {"items": {"en-US": [local_ref("a")]}}


# ---------------------------------------------------------------------------
# sort_by_dependencies
# ---------------------------------------------------------------------------

class TestSortByDependencies:
    def test_dependencies_come_first(self):
        page = _payload("page", ["hero", "section-1"])
        section = _payload("section-1", ["item-1", "item-2"])
        ordered = sort_by_dependencies(
            [page, section, _payload("hero"), _payload("item-1"), _payload("item-2")]
        )
        assert [p.local_id for p in ordered] == ["hero", "item-1", "item-2", "section-1", "page"]

    def test_unknown_dependencies_ignored(self):
        ordered = sort_by_dependencies([_payload("a", ["ghost"]), _payload("b")])
        assert [p.local_id for p in ordered] == ["a", "b"]

    def test_cycle(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            sort_by_dependencies([_payload("a", ["b"]), _payload("b", ["c"]), _payload("c", ["a"])])
        assert exc_info.value.cycle == ["a", "b", "c", "a"]

    def test_self_cycle(self):
        with pytest.raises(DependencyCycleError):
            sort_by_dependencies([_payload("a", ["a"])])


# ---------------------------------------------------------------------------
# create_entries
# ---------------------------------------------------------------------------

class TestCreateEntries:
    def test_links_resolved_in_order(self):
        client = _client()
        payloads = [
            _payload(
                "page",
                ["hero"],
                fields={"title": {"en-US": "page"}, "hero": {"en-US": local_ref("hero")}},
                content_type="page",
            ),
            _payload("hero", content_type="heroSection"),
        ]

        report = asyncio.run(create_entries(client, payloads))

        assert report.entries_created == 2
        assert report.errors == []
        assert report.id_map == {"hero": "cf-1", "page": "cf-2"}
        page_call = client.create_entry.await_args_list[1]
        assert page_call.args[0] == "page"
        assert page_call.args[1]["hero"]["en-US"] == make_link("cf-1")
        assert client.publish_entry.await_count == 2

    def test_failed_dependency_skips_dependent(self):
        client = _client(fail_on=("item-1",))
        payloads = [
            _payload("item-1"),
            _payload("item-2"),
            _payload("section-1", ["item-1", "item-2"]),
            _payload("page", ["section-1"]),
            _payload("footer"),
        ]

        report = asyncio.run(create_entries(client, payloads))

        assert set(report.id_map) == {"item-2", "footer"}
        assert report.entries_created == 2
        assert len(report.errors) == 3
        assert report.errors[0].startswith("item-1: ")
        assert report.errors[1] == "section-1: skipped, dependency failed (item-1)"
        assert report.errors[2] == "page: skipped, dependency failed (section-1)"

    def test_failed_link_is_dropped_not_blocking(self):
        client = _client(fail_on=("item-1",))
        section_fields = {
            "title": {"en-US": "section-1"},
            "items": {"en-US": [local_ref("item-1"), local_ref("item-2")]},
        }
        payloads = [
            _payload("item-1"),
            _payload("item-2"),
            EntryPayload(
                local_id="section-1",
                content_type_id="section",
                fields=section_fields,
                links_to=["item-1", "item-2"],
            ),
        ]

        report = asyncio.run(create_entries(client, payloads))

        assert set(report.id_map) == {"item-2", "section-1"}
        assert len(report.errors) == 1
        assert report.errors[0].startswith("item-1: ")
        section_call = client.create_entry.await_args_list[-1]
        assert section_call.args[1]["items"]["en-US"] == [make_link(report.id_map["item-2"])]

    def test_links_to_orders_creation(self):
        ordered = sort_by_dependencies(
            [
                EntryPayload(local_id="page", content_type_id="page", fields={}, links_to=["s"]),
                _payload("s"),
            ]
        )
        assert [p.local_id for p in ordered] == ["s", "page"]

    def test_no_publish(self):
        client = _client()
        asyncio.run(create_entries(client, [_payload("a")], publish=False))
        client.publish_entry.assert_not_awaited()


class TestCreateAndPublish:
    def test_publish_failure_is_not_raised(self):
        client = _client()
        request = httpx.Request("PUT", "https://api.contentful.com/x")
        client.publish_entry.side_effect = httpx.HTTPStatusError(
            "conflict", request=request, response=httpx.Response(409, request=request)
        )

        entry_id = asyncio.run(create_and_publish(client, "page", {"title": {"en-US": "x"}}))

        assert entry_id == "cf-1"
