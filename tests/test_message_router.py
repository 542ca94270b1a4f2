from typing import Any, Dict

import pytest

from autoplaylists.config import ZERO_PLAYLISTS_NOTIFICATION_ID
from autoplaylists.core import PlaylistRecord, SplaylistCache, SyncAction, Tier
from autoplaylists.sync import MessageRouter, SenderContext

from .conftest import (
    PRIMARY,
    FakeAuth,
    FakeContext,
    FakeLicense,
    FakeQueryEngine,
    RecordingReporter,
    RecordingSurfaces,
)

TRACKS = [
    {"id": "t1", "title": "Alpha", "artist": "Band", "rating": 5, "playCount": 12},
    {"id": "t2", "title": "Beta", "artist": "Band", "rating": 1, "playCount": 3},
    {"id": "t3", "title": "Gamma", "artist": "Solo", "rating": 5, "playCount": 40},
]


class Env:
    def __init__(self, router, auth, license_service, query_engine, surfaces, reporter):
        self.router = router
        self.auth = auth
        self.license_service = license_service
        self.query_engine = query_engine
        self.surfaces = surfaces
        self.reporter = reporter


def _make_env(scheduler, sessions, sink, library, playlists, *, verified=True, debug=False) -> Env:
    auth = FakeAuth(verified=verified)
    license_service = FakeLicense()
    query_engine = FakeQueryEngine(TRACKS)
    surfaces = RecordingSurfaces()
    reporter = RecordingReporter()
    router = MessageRouter(
        sessions=sessions,
        scheduler=scheduler,
        sink=sink,
        library=library,
        playlists=playlists,
        query_engine=query_engine,
        auth=auth,
        license_service=license_service,
        context=FakeContext(),
        surfaces=surfaces,
        reporter=reporter,
        debug=debug,
    )
    return Env(router, auth, license_service, query_engine, surfaces, reporter)


@pytest.fixture
def env(scheduler, sessions, sink, library, playlists) -> Env:
    return _make_env(scheduler, sessions, sink, library, playlists)


def _page_action(user_id="u1", index=0, account=PRIMARY, tier=1) -> Dict[str, Any]:
    return {
        "action": "showPageAction",
        "userId": user_id,
        "userIndex": index,
        "xt": "xt-1",
        "gaiaId": account,
        "tier": tier,
    }


@pytest.mark.asyncio
async def test_force_update_requests_full_sync(env, sink) -> None:
    response = await env.router.dispatch({"action": "forceUpdate", "userId": "u1"})

    assert response is None
    assert [(r.user_id, r.action) for r in sink.requests] == [("u1", SyncAction.UPDATE_ALL)]


@pytest.mark.asyncio
async def test_set_xsrf_updates_known_session(env, sessions, sink) -> None:
    sessions.upsert("u1", 0, 4, "old", Tier.FREE, PRIMARY)

    await env.router.dispatch({"action": "setXsrf", "userId": "u1", "xt": "new"})

    assert sessions.get("u1").xsrf_token == "new"
    assert [r.action for r in sink.requests] == [SyncAction.UPDATE_ALL]


@pytest.mark.asyncio
async def test_set_xsrf_for_unknown_user_is_a_logged_no_op(env, sink) -> None:
    await env.router.dispatch({"action": "setXsrf", "userId": "ghost", "xt": "new"})

    assert sink.requests == []
    assert env.reporter.warnings() == ["received setXsrf for unknown user"]


@pytest.mark.asyncio
async def test_show_page_action_with_falsy_user_id_aborts(env, sessions) -> None:
    response = await env.router.dispatch(_page_action(user_id=""), SenderContext(surface_id=3))
    await env.router.drain()

    assert response is None
    assert len(sessions) == 0
    assert env.surfaces.page_actions == []
    assert env.reporter.warnings() == ["received falsey user id from page action"]


@pytest.mark.asyncio
async def test_show_page_action_for_other_account_evicts_and_stops(env, sessions, library) -> None:
    sessions.upsert("old-user", 5, 3, "xt", Tier.FREE, PRIMARY)

    await env.router.dispatch(_page_action(account="not-primary"), SenderContext(surface_id=3))
    await env.router.drain()

    assert len(sessions) == 0
    assert env.surfaces.page_actions == [3]
    assert library.events == []
    assert env.surfaces.notifications == []


@pytest.mark.asyncio
async def test_show_page_action_registers_session_and_starts_syncs(
    env, sessions, scheduler, settings, library
) -> None:
    await settings.set_last_psync(0)
    await settings.set_sync_ms(0)

    await env.router.dispatch(_page_action(tier=2), SenderContext(surface_id=3))
    await env.router.drain()

    entry = sessions.get("u1")
    assert entry.surface_id == 3
    assert entry.tier is Tier.PAID
    assert entry.xsrf_token == "xt-1"

    assert env.surfaces.page_actions == [3]
    assert env.license_service.calls == [False]
    assert env.reporter.tags == {"tier": 2}
    assert "showPageAction" in env.reporter.hits
    assert env.query_engine.random_resets == 1
    assert library.events == ["init:u1", "splaylistcache:u1"]
    assert scheduler.state.started is True
    assert all(call["interactive"] is False for call in env.auth.calls)

    assert env.surfaces.notifications == [ZERO_PLAYLISTS_NOTIFICATION_ID]
    assert "zeroPlaylistsNotification" in env.reporter.hits
    await scheduler.stop()


@pytest.mark.asyncio
async def test_show_page_action_without_auth_never_prompts(
    scheduler, sessions, sink, library, playlists
) -> None:
    env = _make_env(scheduler, sessions, sink, library, playlists, verified=False)

    await env.router.dispatch(_page_action(), SenderContext(surface_id=3))
    await env.router.drain()

    assert "u1" in sessions
    assert env.auth.calls == [{"interactive": False, "reason": "userDetected"}]
    assert library.events == []
    assert scheduler.state.started is False


@pytest.mark.asyncio
async def test_show_page_action_skips_notification_when_playlists_exist(
    scheduler, sessions, sink, library, playlists
) -> None:
    env = _make_env(scheduler, sessions, sink, library, playlists, verified=False)
    await playlists.save_playlist(PlaylistRecord(userId="u1", localId="p1"))

    await env.router.dispatch(_page_action(), SenderContext(surface_id=3))
    await env.router.drain()

    assert env.surfaces.notifications == []


@pytest.mark.asyncio
async def test_query_delegates_with_session_cache(env, sessions) -> None:
    sessions.upsert("u1", 0, 3, "xt", Tier.FREE, PRIMARY)
    cache = SplaylistCache(entries={"thumbsUp": {}})
    sessions.caches["u1"] = cache
    playlist = {"userId": "u1", "localId": "p1", "rules": []}

    response = await env.router.dispatch({"action": "query", "playlist": playlist})

    assert response == {"tracks": TRACKS[:1]}
    assert env.query_engine.queries[0]["cache"] is cache
    assert env.query_engine.queries[0]["playlist"] == playlist


@pytest.mark.asyncio
async def test_query_before_setup_returns_no_tracks(env) -> None:
    response = await env.router.dispatch({"action": "query", "playlist": {"userId": "u1"}})

    assert response == {"tracks": []}
    assert env.query_engine.queries == []
    assert len(env.reporter.warnings()) == 1


@pytest.mark.asyncio
async def test_debug_query_is_ignored_outside_debug_mode(env) -> None:
    response = await env.router.dispatch(
        {"action": "debugQuery", "query": {"userId": "u1"}}
    )

    assert response is None


@pytest.mark.asyncio
async def test_debug_query_filters_tracks_in_debug_mode(
    scheduler, sessions, sink, library, playlists
) -> None:
    env = _make_env(scheduler, sessions, sink, library, playlists, debug=True)
    query = {
        "userId": "u1",
        "rules": {
            "operator": "and",
            "conditions": [{"field": "rating", "operator": "eq", "value": 5}],
        },
        "orderBy": "playCount",
        "descending": True,
    }

    response = await env.router.dispatch({"action": "debugQuery", "query": query})

    assert [t["id"] for t in response["tracks"]] == ["t3", "t1"]


@pytest.mark.asyncio
async def test_invalid_debug_query_gets_no_response(
    scheduler, sessions, sink, library, playlists
) -> None:
    env = _make_env(scheduler, sessions, sink, library, playlists, debug=True)

    response = await env.router.dispatch(
        {"action": "debugQuery", "query": {"rules": {"conditions": [{"field": "x"}]}}}
    )

    assert response is None


@pytest.mark.asyncio
async def test_get_context_delegates(env) -> None:
    response = await env.router.dispatch({"action": "getContext"})

    assert response == {"extVersion": "test", "tier": "free"}


@pytest.mark.asyncio
async def test_get_splaylistcache_without_cache_returns_empty_cache(env, sessions) -> None:
    response = await env.router.dispatch({"action": "getSplaylistcache", "userId": "u1"})

    assert isinstance(response, SplaylistCache)
    assert response.entries == {}
    assert env.reporter.warnings() == ["got getSplaylistcache, but cache not synced yet"]
    assert "u1" not in sessions.caches


@pytest.mark.asyncio
async def test_get_splaylistcache_returns_synced_cache(env, sessions) -> None:
    cache = SplaylistCache(entries={"thumbsUp": {}}, synced_at=1)
    sessions.caches["u1"] = cache

    response = await env.router.dispatch({"action": "getSplaylistcache", "userId": "u1"})

    assert response is cache
    assert env.reporter.messages == []


@pytest.mark.asyncio
async def test_unknown_action_is_reported(env, sink) -> None:
    response = await env.router.dispatch({"action": "selfDestruct"})

    assert response is None
    assert sink.requests == []
    assert env.reporter.warnings() == ["received unknown request"]


def test_deferred_actions(env) -> None:
    assert env.router.expects_async_response("query") is True
    assert env.router.expects_async_response("debugQuery") is True
    assert env.router.expects_async_response("getContext") is True
    assert env.router.expects_async_response("getSplaylistcache") is False
    assert env.router.expects_async_response("forceUpdate") is False
