from __future__ import annotations

import json

import pytest

from mailharvest.application.extraction.cursor import FolderCursor
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import DiscoveryError, RemoteCallError, RemoteFetchError, StoreWriteError
from tests.helpers import FakeMailClient


def _cursor(cursor_store, folder: str, owner: str = "u1") -> FolderCursor:
    return FolderCursor.decode(cursor_store.get(owner, folder))


def test_end_to_end_two_folders(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"root/A": ["id1", "id2"], "root/B": ["id3"]})

    result = make_use_case(client).run("u1")

    assert [i for r in client.get_calls for i in r.item_ids] == ["id1", "id2", "id3"]
    assert list(store.rows) == [b"id1", b"id2", b"id3"]
    assert result.items_written == 3
    assert result.folders_drained == ["root/A", "root/B"]
    assert _cursor(cursor_store, "root/A") == FolderCursor(offset=2)
    assert _cursor(cursor_store, "root/B") == FolderCursor(offset=1)


def test_rows_map_headers_to_columns(make_use_case, store) -> None:
    client = FakeMailClient({"F": ["id1"]})
    make_use_case(client).run("u1")

    assert store.rows[b"id1"] == {
        b"h:Item ID": b"id1",
        b"h:Subject": b"subject of id1",
        b"h:Folder": b"F",
        b"h:Owner": b"u1",
    }


def test_rerun_with_covering_cursors_fetches_no_details(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1", "id2"], "B": ["id3"]})
    make_use_case(client).run("u1")
    puts_after_first_run = len(cursor_store.put_calls)

    rerun_client = FakeMailClient({"A": ["id1", "id2"], "B": ["id3"]})
    result = make_use_case(rerun_client).run("u1")

    assert len(rerun_client.discover_calls) == 1
    assert rerun_client.get_calls == []
    assert result.items_written == 0
    assert result.cursors_saved == []
    assert len(cursor_store.put_calls) == puts_after_first_run


def test_rerun_picks_up_only_new_items(make_use_case, store, cursor_store) -> None:
    make_use_case(FakeMailClient({"A": ["id1", "id2"]})).run("u1")

    client = FakeMailClient({"A": ["id1", "id2", "id3"]})
    result = make_use_case(client).run("u1")

    assert client.fetched_ids("A") == ["id3"]
    assert result.items_written == 1
    assert _cursor(cursor_store, "A").offset == 3


def test_write_batches_are_independent_of_detail_batches(make_use_case, store) -> None:
    ids = [f"id{i}" for i in range(7)]
    client = FakeMailClient({"A": ids})

    result = make_use_case(client, detail_batch_size=2, write_batch_size=3).run("u1")

    assert len(client.get_calls) == 4
    assert result.batches_written == 3  # 3 + 3 + 1
    assert store.flushes == 3
    assert len(store.rows) == 7


def test_cursor_waits_for_the_batch_holding_the_folders_last_item(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["a1", "a2"], "B": ["b1", "b2", "b3"]})
    store_flushes_when_cursor_saved = {}
    original_put = cursor_store.put

    def recording_put(owner, folder, cursor):
        store_flushes_when_cursor_saved[folder] = set(store.rows)
        original_put(owner, folder, cursor)

    cursor_store.put = recording_put
    make_use_case(client, write_batch_size=3).run("u1")

    assert store_flushes_when_cursor_saved["A"] >= {b"a1", b"a2"}
    assert store_flushes_when_cursor_saved["B"] >= {b"b1", b"b2", b"b3"}


def test_store_failure_does_not_advance_cursors(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1", "id2"]})
    store.fail_flush = True

    with pytest.raises(StoreWriteError):
        make_use_case(client).run("u1")

    assert cursor_store.get("u1", "A") is None
    assert store.rows == {}


def test_crash_between_write_and_cursor_duplicates_but_loses_nothing(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1", "id2"]})
    cursor_store.fail_put = True

    result = make_use_case(client).run("u1")
    assert result.cursor_failures == ["A"]
    first_rows = dict(store.rows)

    cursor_store.fail_put = False
    rerun_client = FakeMailClient({"A": ["id1", "id2"]})
    make_use_case(rerun_client).run("u1")

    assert rerun_client.fetched_ids("A") == ["id1", "id2"]
    assert store.puts == 4
    assert store.rows == first_rows
    assert _cursor(cursor_store, "A").offset == 2


def test_discovery_failure_aborts_the_run(make_use_case, store) -> None:
    client = FakeMailClient({"A": ["id1"]})
    client.fail_discover = RemoteCallError("TRANSPORT", "unreachable")

    with pytest.raises(DiscoveryError):
        make_use_case(client).run("u1")
    assert store.rows == {}


def test_fetch_failure_aborts_owner_after_committed_folders(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1"], "B": ["id2"]})
    client.fail_get["B"] = RemoteCallError("ErrorServerBusy", "try later")

    with pytest.raises(RemoteFetchError):
        make_use_case(client, write_batch_size=1).run("u1")

    assert list(store.rows) == [b"id1"]
    assert cursor_store.get("u1", "B") is None


def test_skip_policy_continues_past_failed_folder(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1"], "B": ["id2"], "C": ["id3"]})
    client.fail_get["B"] = RemoteCallError("ErrorServerBusy", "try later")

    result = make_use_case(client, on_folder_error="skip").run("u1")

    assert list(store.rows) == [b"id1", b"id3"]
    assert result.folders_failed == ["B"]
    assert cursor_store.get("u1", "B") is None
    assert cursor_store.get("u1", "C") is not None


def test_no_folders_is_not_an_error(make_use_case, store) -> None:
    result = make_use_case(FakeMailClient({})).run("u1")

    assert result.items_written == 0
    assert store.flushes == 0


def test_item_without_key_header_fails_the_batch(make_use_case, store, cursor_store) -> None:
    client = FakeMailClient({"A": ["id1"]})
    client.get_item_details = lambda request: [MailboxItem({"Subject": "x"})]

    with pytest.raises(StoreWriteError):
        make_use_case(client).run("u1")
    assert cursor_store.get("u1", "A") is None


def test_cursor_bytes_are_json(make_use_case, cursor_store) -> None:
    make_use_case(FakeMailClient({"A": ["id1"]}, change_tokens={"A": "9"})).run("u1")
    assert json.loads(cursor_store.get("u1", "A")) == {"offset": 1, "change_token": "9"}
