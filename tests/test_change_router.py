import asyncio
import contextlib

import pytest

from autoplaylists.core import PlaylistRecord, StorageChange, SyncAction
from autoplaylists.sync import ChangeEventRouter, build_sync_request

from .conftest import settle


def _record(local_id: str = "p1", remote_id: str | None = None, **extra) -> PlaylistRecord:
    return PlaylistRecord(userId="u1", localId=local_id, remoteId=remote_id, **extra)


def test_old_value_only_is_a_delete_with_old_remote_id() -> None:
    request = build_sync_request(StorageChange(old_value=_record(remote_id="r-9")))

    assert request.action is SyncAction.DELETE
    assert request.user_id == "u1"
    assert request.local_id == "p1"
    assert request.remote_id == "r-9"


def test_new_value_only_is_a_create() -> None:
    request = build_sync_request(StorageChange(new_value=_record(remote_id="r-1")))

    assert request.action is SyncAction.CREATE_OR_UPDATE
    assert request.local_id == "p1"
    assert request.remote_id is None
    assert request.to_message() == {
        "userId": "u1",
        "action": "create-or-update",
        "localId": "p1",
    }


def test_update_uses_new_value() -> None:
    change = StorageChange(
        old_value=_record(title="Old", remote_id="r-1"),
        new_value=_record(title="New", remote_id="r-1"),
    )

    request = build_sync_request(change)

    assert request.action is SyncAction.CREATE_OR_UPDATE
    assert request.remote_id is None


def test_plain_dict_values_are_accepted() -> None:
    change = StorageChange(old_value={"userId": "u2", "localId": "p2", "remoteId": "r-2"})

    request = build_sync_request(change)

    assert request.to_message() == {
        "userId": "u2",
        "action": "delete",
        "localId": "p2",
        "remoteId": "r-2",
    }


def test_change_without_values_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_sync_request(StorageChange())


@pytest.mark.asyncio
async def test_each_change_emits_exactly_one_request(sink) -> None:
    router = ChangeEventRouter(sink)

    await router.on_playlist_change(StorageChange(new_value=_record("a")))
    await router.on_playlist_change(StorageChange(new_value=_record("b")))

    assert [r.local_id for r in sink.requests] == ["a", "b"]


@pytest.mark.asyncio
async def test_router_follows_playlist_store_changes(playlists, sink) -> None:
    router = ChangeEventRouter(sink)
    subscription = playlists.subscribe()
    task = asyncio.ensure_future(router.run(subscription))

    await playlists.save_playlist(_record("p1"))
    await playlists.save_playlist(_record("p1", remote_id="r-1", title="Synced"))
    await playlists.delete_playlist("u1", "p1")
    await settle()

    assert [(r.action, r.remote_id) for r in sink.requests] == [
        (SyncAction.CREATE_OR_UPDATE, None),
        (SyncAction.CREATE_OR_UPDATE, None),
        (SyncAction.DELETE, "r-1"),
    ]

    subscription.close()
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
