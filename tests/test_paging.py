from __future__ import annotations

import math

import pytest

from mailharvest.application.extraction.paging import PagedItemIdLister
from mailharvest.application.ports.remote_mail import MAX_PAGE_SIZE, PageWindow
from mailharvest.domain.errors import RemoteCallError, RemoteListError
from tests.helpers import FakeMailClient


def _drain(lister: PagedItemIdLister, folder: str, page_size: int) -> list[str]:
    ids: list[str] = []
    offset = 0
    while True:
        page = lister.list_next("u1", folder, offset, page_size)
        ids.extend(page.item_ids)
        offset = page.next_offset
        if page.is_last_page:
            return ids


@pytest.mark.parametrize("n_items,page_size", [(1, 10), (9, 10), (25, 10), (7, 3), (1001, 1000)])
def test_listing_call_count_is_ceil_n_over_p(n_items: int, page_size: int) -> None:
    ids = [f"id{i}" for i in range(n_items)]
    client = FakeMailClient({"F": ids})
    lister = PagedItemIdLister(client)

    assert _drain(lister, "F", page_size) == ids
    assert len(client.list_calls) == math.ceil(n_items / page_size)
    offsets = [r.window.offset for r in client.list_calls]
    assert offsets == sorted(offsets)


def test_full_last_page_needs_one_empty_confirmation_page() -> None:
    client = FakeMailClient({"F": [f"id{i}" for i in range(20)]})
    lister = PagedItemIdLister(client)

    _drain(lister, "F", 10)

    assert [r.window.offset for r in client.list_calls] == [0, 10, 20]


def test_last_page_is_shorter_than_requested() -> None:
    client = FakeMailClient({"F": ["a", "b", "c"]})
    page = PagedItemIdLister(client).list_next("u1", "F", 0, 2)
    assert page.item_ids == ("a", "b")
    assert not page.is_last_page

    page = PagedItemIdLister(client).list_next("u1", "F", 2, 2)
    assert page.item_ids == ("c",)
    assert page.is_last_page
    assert page.next_offset == 3


def test_empty_folder_is_a_single_last_page() -> None:
    client = FakeMailClient({"F": []})
    page = PagedItemIdLister(client).list_next("u1", "F", 0)
    assert page.item_ids == ()
    assert page.is_last_page


def test_non_positive_page_size_is_treated_as_one() -> None:
    client = FakeMailClient({"F": ["a", "b"]})
    page = PagedItemIdLister(client).list_next("u1", "F", 0, 0)
    assert client.list_calls[-1].window.max_entries == 1
    assert page.item_ids == ("a",)

    PagedItemIdLister(client).list_next("u1", "F", 0, -5)
    assert client.list_calls[-1].window.max_entries == 1


def test_negative_offset_is_treated_as_zero() -> None:
    client = FakeMailClient({"F": ["a", "b"]})
    page = PagedItemIdLister(client).list_next("u1", "F", -3, 10)
    assert client.list_calls[-1].window.offset == 0
    assert page.item_ids == ("a", "b")


def test_page_size_is_capped_at_service_maximum() -> None:
    client = FakeMailClient({"F": []})
    PagedItemIdLister(client).list_next("u1", "F", 0, 5000)
    assert client.list_calls[-1].window.max_entries == MAX_PAGE_SIZE


def test_owner_is_passed_to_every_request() -> None:
    client = FakeMailClient({"F": ["a"]})
    PagedItemIdLister(client).list_next("someone@example.test", "F", 0)
    assert client.list_calls[0].owner == "someone@example.test"


def test_remote_failure_is_wrapped_and_not_retried() -> None:
    client = FakeMailClient({"F": ["a"]})
    client.fail_list["F"] = RemoteCallError("ErrorFolderNotFound", "gone")

    with pytest.raises(RemoteListError) as excinfo:
        PagedItemIdLister(client).list_next("u1", "F", 0)

    assert excinfo.value.reason == "ErrorFolderNotFound"
    assert isinstance(excinfo.value.cause, RemoteCallError)
    assert len(client.list_calls) == 1


def test_page_window_clamping() -> None:
    assert PageWindow.clamped(-1, 0) == PageWindow(offset=0, max_entries=1)
    assert PageWindow.clamped(5, 10) == PageWindow(offset=5, max_entries=10)
    assert PageWindow.clamped(0, 10_000) == PageWindow(offset=0, max_entries=MAX_PAGE_SIZE)
