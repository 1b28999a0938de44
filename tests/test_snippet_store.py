"""
snippetbin — Snippet Store Unit Tests
=======================================

What:  Tests for SnippetStore row operations against a real SQLite file.
How:   Each test gets a fresh database under tmp_path (no HTTP involved).

What we test:
    ✅ Create assigns ids and equal timestamps
    ✅ Get round-trips payload and timestamps; bad ids are "not found"
    ✅ Update applies only the given fields and advances updated_at
    ✅ Delete is soft, returns the pre-delete image, and hides the row
    ✅ Ids keep increasing across deletes and reopen
    ✅ Open fails cleanly when the file cannot be created
    ✅ Reads are not blocked by a writer holding the lock
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

from sqlalchemy import text

from snippetbin.database import create_store_engine
from snippetbin.exceptions import NotFoundError, StoreError, StoreUnavailableError
from snippetbin.models.snippet import Snippet
from snippetbin.services.snippet_store import SnippetStore, _coerce_id


class TestSnippetStoreOpen:
    """Tests for opening and closing the store."""

    @pytest.mark.asyncio
    async def test_open_creates_database_file(self, db_path):
        assert not os.path.exists(db_path)
        store = await SnippetStore.open(db_path)
        try:
            assert os.path.exists(db_path)
            assert await store.list_snippets() == []
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_open_unwritable_location_raises(self, tmp_path):
        """A path inside a missing directory cannot be created by SQLite."""
        path = str(tmp_path / "missing" / "snippetbin.db")
        with pytest.raises(StoreUnavailableError) as exc_info:
            await SnippetStore.open(path)
        assert exc_info.value.path == path
        assert path in exc_info.value.message

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, db_path):
        store = await SnippetStore.open(db_path)
        created = await store.create_snippet({"title": "kept", "body": "on disk"})
        await store.close()

        reopened = await SnippetStore.open(db_path)
        try:
            fetched = await reopened.get_snippet(str(created.id))
            assert fetched.title == "kept"
            assert fetched.body == "on disk"
            assert fetched.created_at == created.created_at
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_ping(self, store):
        await store.ping()


class TestSnippetStoreCreateAndGet:
    """Tests for create_snippet and get_snippet."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store):
        snippet = await store.create_snippet({"title": "a", "body": "x"})

        assert snippet.id == 1
        assert snippet.title == "a"
        assert snippet.body == "x"
        assert snippet.created_at.tzinfo is not None
        assert snippet.created_at == snippet.updated_at
        assert snippet.deleted_at is None

    @pytest.mark.asyncio
    async def test_create_with_missing_fields_uses_empty_strings(self, store):
        snippet = await store.create_snippet({"title": "only a title"})
        fetched = await store.get_snippet(str(snippet.id))
        assert fetched.body == ""

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_fields(self, store):
        with pytest.raises(StoreError, match="unknown snippet field"):
            await store.create_snippet({"title": "a", "language": "go"})

    @pytest.mark.asyncio
    async def test_get_round_trips_payload_and_created_at(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})
        fetched = await store.get_snippet(str(created.id))

        assert isinstance(fetched, Snippet)
        assert fetched.id == created.id
        assert fetched.title == created.title
        assert fetched.body == created.body
        assert fetched.created_at == created.created_at
        assert fetched.updated_at == created.updated_at

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_snippet("999")
        assert exc_info.value.message == "Snippet with ID: 999 not found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["abc", "-1", "1.5", " 1", "１", "99999999999999999999"])
    async def test_get_unusable_id_raises_not_found(self, store, bad_id):
        await store.create_snippet({"title": "a", "body": "x"})
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_snippet(bad_id)
        assert exc_info.value.message == f"Snippet with ID: {bad_id} not found"

    @pytest.mark.asyncio
    async def test_list_returns_all_live_rows(self, store):
        await store.create_snippet({"title": "a", "body": "x"})
        await store.create_snippet({"title": "b", "body": "y"})

        snippets = await store.list_snippets()

        assert sorted(s.id for s in snippets) == [1, 2]
        assert {s.title for s in snippets} == {"a", "b"}


class TestSnippetStoreUpdate:
    """Tests for update_snippet partial-update semantics."""

    @pytest.mark.asyncio
    async def test_update_applies_only_given_fields(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})

        updated = await store.update_snippet(str(created.id), {"body": "x2"})

        assert updated.id == created.id
        assert updated.title == "a"
        assert updated.body == "x2"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

        fetched = await store.get_snippet(str(created.id))
        assert fetched.title == "a"
        assert fetched.body == "x2"
        assert fetched.updated_at == updated.updated_at

    @pytest.mark.asyncio
    async def test_update_with_empty_string_clears_field(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})
        updated = await store.update_snippet(str(created.id), {"title": ""})
        assert updated.title == ""
        assert updated.body == "x"

    @pytest.mark.asyncio
    async def test_empty_update_still_advances_updated_at(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})
        updated = await store.update_snippet(str(created.id), {})
        assert updated.updated_at > created.updated_at
        assert updated.title == "a"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.update_snippet("42", {"title": "nope"})

    @pytest.mark.asyncio
    async def test_update_unknown_field_raises_store_error(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})
        with pytest.raises(StoreError):
            await store.update_snippet(str(created.id), {"id": 7})

    def test_next_timestamp_is_strictly_monotonic(self):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        assert SnippetStore._next_timestamp(future) == future + timedelta(microseconds=1)

        past = datetime.now(timezone.utc) - timedelta(hours=1)
        assert SnippetStore._next_timestamp(past) > past
        assert SnippetStore._next_timestamp(None).tzinfo is not None


class TestSnippetStoreDelete:
    """Tests for delete_snippet soft-delete behaviour."""

    @pytest.mark.asyncio
    async def test_delete_returns_pre_delete_image(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})

        deleted = await store.delete_snippet(str(created.id))

        assert deleted.id == created.id
        assert deleted.title == "a"
        assert deleted.deleted_at is None

    @pytest.mark.asyncio
    async def test_deleted_row_is_hidden_from_reads(self, store):
        first = await store.create_snippet({"title": "a", "body": "x"})
        second = await store.create_snippet({"title": "b", "body": "y"})

        await store.delete_snippet(str(first.id))

        with pytest.raises(NotFoundError):
            await store.get_snippet(str(first.id))
        with pytest.raises(NotFoundError):
            await store.update_snippet(str(first.id), {"title": "zombie"})
        assert [s.id for s in await store.list_snippets()] == [second.id]

    @pytest.mark.asyncio
    async def test_delete_twice_raises_not_found(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})
        await store.delete_snippet(str(created.id))
        with pytest.raises(NotFoundError):
            await store.delete_snippet(str(created.id))

    @pytest.mark.asyncio
    async def test_concurrent_deletes_only_one_wins(self, store):
        created = await store.create_snippet({"title": "a", "body": "x"})

        results = await asyncio.gather(
            store.delete_snippet(str(created.id)),
            store.delete_snippet(str(created.id)),
            return_exceptions=True,
        )

        winners = [r for r in results if isinstance(r, Snippet)]
        losers = [r for r in results if isinstance(r, NotFoundError)]
        assert len(winners) == 1
        assert len(losers) == 1

    @pytest.mark.asyncio
    async def test_ids_are_never_reused(self, store):
        first = await store.create_snippet({"title": "a"})
        second = await store.create_snippet({"title": "b"})
        await store.delete_snippet(str(second.id))

        third = await store.create_snippet({"title": "c"})

        assert first.id < second.id < third.id


class TestSnippetStoreLocking:
    """Reads start a deferred transaction; writes take the lock up front."""

    @pytest.mark.asyncio
    async def test_reads_proceed_while_writer_holds_lock(self, db_path):
        store = await SnippetStore.open(db_path, busy_timeout=0.2)
        writer = create_store_engine(db_path)
        try:
            created = await store.create_snippet({"title": "a", "body": "x"})

            async with writer.begin() as conn:
                await conn.execute(text("UPDATE snippets SET title = 'pending' WHERE id = 1"))

                fetched = await store.get_snippet(str(created.id))
                assert fetched.title == "a"
                assert [s.id for s in await store.list_snippets()] == [created.id]
                await store.ping()

                with pytest.raises(StoreError, match="locked"):
                    await store.create_snippet({"title": "b"})
        finally:
            await writer.dispose()
            await store.close()

        reopened = await SnippetStore.open(db_path)
        try:
            assert (await reopened.get_snippet(str(created.id))).title == "pending"
        finally:
            await reopened.close()


class TestCoerceId:
    """Tests for path id → primary key coercion."""

    def test_plain_digits(self):
        assert _coerce_id("17") == 17
        assert _coerce_id("007") == 7

    def test_rejects_everything_else(self):
        for value in ["", "abc", "-3", "+3", "1e3", "2.0", "٣"]:
            assert _coerce_id(value) is None

    def test_integer_range(self):
        assert _coerce_id("9223372036854775807") == 2**63 - 1
        assert _coerce_id("9223372036854775808") is None
        assert _coerce_id("99999999999999999999") is None
