"""Tests for the record store client and filter building."""

from datetime import date

import httpx
import pytest

from tests.support import collection_path, page
from zenmedix.core.exceptions import NotFoundException, RecordStoreError
from zenmedix.core.record_store import (
    FULL_LIST_BATCH,
    RecordStore,
    build_filter,
    join_filters,
    quote_filter_value,
)


class TestFilters:
    """Filter literal quoting and composition."""

    def test_quote_plain_values(self):
        assert quote_filter_value("juan") == "'juan'"
        assert quote_filter_value(3) == "3"
        assert quote_filter_value(True) == "true"
        assert quote_filter_value(None) == "null"
        assert quote_filter_value(date(2025, 3, 10)) == "'2025-03-10'"

    def test_quote_escapes_quotes_and_backslashes(self):
        assert quote_filter_value("O'Brien") == "'O\\'Brien'"
        assert quote_filter_value("a\\b") == "'a\\\\b'"

    def test_build_filter_cannot_be_broken_out_of(self):
        expression = build_filter("firstName ~ {:q}", q="x' || id != '")

        assert expression == "firstName ~ 'x\\' || id != \\''"

    def test_build_filter_substitutes_every_occurrence(self):
        expression = build_filter(
            "firstName ~ {:q} || lastName ~ {:q}",
            q="ana",
        )

        assert expression == "firstName ~ 'ana' || lastName ~ 'ana'"

    def test_build_filter_leaves_unknown_placeholders(self):
        assert build_filter("a = {:a} && b = {:b}", a=1) == "a = 1 && b = {:b}"

    def test_build_filter_does_not_expand_values_twice(self):
        expression = build_filter("a = {:a} && b = {:b}", a="{:b}", b="x")

        assert expression == "a = '{:b}' && b = 'x'"

    def test_join_filters(self):
        assert join_filters(None, "") is None
        assert join_filters("a = 1") == "a = 1"
        assert join_filters("a = 1", None, "b = 2") == "(a = 1) && (b = 2)"
        assert join_filters("a = 1", "b = 2", operator="||") == "(a = 1) || (b = 2)"


def make_store(handler, token: str | None = None) -> RecordStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://records.test",
    )
    return RecordStore(client, token=token)


class TestRecordStore:
    """HTTP behavior of RecordStore and RecordCollection."""

    @pytest.mark.asyncio
    async def test_get_list_sends_query_parameters(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=page([{"id": "p1"}]))

        store = make_store(handler)
        result = await store.collection("patients").get_list(
            page=2, per_page=10, filter="dni = '1'", sort="-created", expand="doctor"
        )

        assert result["items"] == [{"id": "p1"}]
        params = seen[0].url.params
        assert seen[0].url.path == collection_path("patients")
        assert params["page"] == "2"
        assert params["perPage"] == "10"
        assert params["filter"] == "dni = '1'"
        assert params["sort"] == "-created"
        assert params["expand"] == "doctor"

    @pytest.mark.asyncio
    async def test_token_is_sent_as_authorization_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "a1"})

        anonymous = make_store(handler)
        await anonymous.collection("appointments").get_one("a1")
        await anonymous.with_token("pb-token").collection("appointments").get_one("a1")

        assert "Authorization" not in seen[0].headers
        assert seen[1].headers["Authorization"] == "pb-token"

    @pytest.mark.asyncio
    async def test_not_found_raises_not_found(self):
        store = make_store(lambda request: httpx.Response(404, json={"message": "Missing."}))

        with pytest.raises(NotFoundException) as exc_info:
            await store.collection("patients").get_one("nope")

        assert exc_info.value.message == "Missing."

    @pytest.mark.asyncio
    async def test_error_status_raises_record_store_error(self):
        store = make_store(
            lambda request: httpx.Response(400, json={"message": "Failed to authenticate."})
        )

        with pytest.raises(RecordStoreError) as exc_info:
            await store.collection("users").auth_with_password("a@b.c", "bad")

        assert exc_info.value.upstream_status == 400
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Failed to authenticate."

    @pytest.mark.asyncio
    async def test_connection_failure_raises_record_store_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler)

        with pytest.raises(RecordStoreError) as exc_info:
            await store.collection("patients").get_list()

        assert exc_info.value.upstream_status == 0

    @pytest.mark.asyncio
    async def test_delete_accepts_empty_response(self):
        store = make_store(lambda request: httpx.Response(204))

        assert await store.collection("patients").delete("p1") is True

    @pytest.mark.asyncio
    async def test_get_full_list_walks_pages(self):
        first = [{"id": f"a{i}"} for i in range(FULL_LIST_BATCH)]
        pages = {"1": first, "2": [{"id": "last"}]}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=page(pages[request.url.params["page"]]))

        store = make_store(handler)
        items = await store.collection("appointments").get_full_list()

        assert len(items) == FULL_LIST_BATCH + 1
        assert items[-1] == {"id": "last"}

    @pytest.mark.asyncio
    async def test_get_first_returns_none_without_matches(self):
        store = make_store(lambda request: httpx.Response(200, json=page([])))

        assert await store.collection("config").get_first("key = 'x'") is None

    @pytest.mark.asyncio
    async def test_health(self):
        healthy = make_store(lambda request: httpx.Response(200, json={"code": 200}))
        down = make_store(lambda request: httpx.Response(503, json={}))

        assert await healthy.health() is True
        assert await down.health() is False
