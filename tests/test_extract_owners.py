from __future__ import annotations

from mailharvest.application.extraction.writer import MailWriter
from mailharvest.application.use_cases import ExtractMailboxUseCase, run_owners
from mailharvest.domain.errors import DiscoveryError, RemoteCallError
from tests.helpers import FakeMailClient, InMemoryCursorStore, InMemoryStore


class Factory:
    def __init__(self, mailboxes: dict[str, dict[str, list[str]]], broken: set[str] = frozenset()) -> None:
        self.mailboxes = mailboxes
        self.broken = broken
        self.store = InMemoryStore()
        self.cursor_store = InMemoryCursorStore()
        self.clients: dict[str, FakeMailClient] = {}

    def __call__(self, owner: str) -> ExtractMailboxUseCase:
        client = FakeMailClient(self.mailboxes[owner])
        if owner in self.broken:
            client.fail_discover = RemoteCallError("ErrorNonExistentMailbox", owner)
        self.clients[owner] = client
        return ExtractMailboxUseCase(client, MailWriter(InMemoryStore()), self.cursor_store)


def test_one_owners_failure_does_not_stop_the_others() -> None:
    factory = Factory(
        {"u1": {"A": ["1"]}, "u2": {"A": ["2"]}, "u3": {"A": ["3"]}},
        broken={"u2"},
    )

    outcomes = run_owners(["u1", "u2", "u3"], factory)

    assert [o.owner for o in outcomes] == ["u1", "u2", "u3"]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, DiscoveryError)
    assert outcomes[0].result.items_written == 1
    assert outcomes[2].result.items_written == 1


def test_cursors_are_scoped_per_owner() -> None:
    factory = Factory({"u1": {"INBOX": ["1", "2"]}, "u2": {"INBOX": ["3"]}})

    run_owners(["u1", "u2"], factory)

    assert set(factory.cursor_store.cursors) == {("u1", "INBOX"), ("u2", "INBOX")}


def test_owners_can_run_concurrently() -> None:
    mailboxes = {f"u{i}": {"A": [f"{i}-{j}" for j in range(5)]} for i in range(6)}
    factory = Factory(mailboxes)

    outcomes = run_owners(list(mailboxes), factory, workers=3)

    assert [o.owner for o in outcomes] == list(mailboxes)
    assert all(o.ok for o in outcomes)
    assert sum(o.result.items_written for o in outcomes) == 30
    for owner, client in factory.clients.items():
        assert {r.owner for r in client.get_calls} == {owner}
