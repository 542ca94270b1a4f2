"""Public façade for the autoplaylists.sync package.

This module exposes the sync coordination core: the session registry, the
periodic sync scheduler, the playlist change router, the inbound message
router, and the collaborator interfaces they depend on. Other packages should
import sync behaviour from this façade instead of the internal submodules.
"""

from .change_router import ChangeEventRouter, build_sync_request
from .collaborators import (
    AuthProvider,
    ContextProvider,
    EmptyQueryEngine,
    EnvIdentity,
    IdentityProvider,
    Library,
    LicenseService,
    LoggingReporter,
    LoggingSurfaces,
    NoAuth,
    NullLibrary,
    QueryEngine,
    Reporter,
    StaticContext,
    StaticLicense,
    Surfaces,
    SyncSink,
    report_hit,
    report_warning,
)
from .message_router import MessageRouter, SenderContext
from .query_rules import matches_rules, run_debug_query
from .scheduler import SchedulePhase, ScheduleState, SyncScheduler
from .sessions import SessionRegistry
from .sinks import HttpSyncSink, MemorySyncSink, build_sync_sink
from .timers import AsyncioTimers, TimerHandle, Timers, now_ms

__all__ = [
    "SessionRegistry",
    "SyncScheduler",
    "ScheduleState",
    "SchedulePhase",
    "ChangeEventRouter",
    "build_sync_request",
    "MessageRouter",
    "SenderContext",
    "matches_rules",
    "run_debug_query",
    "SyncSink",
    "MemorySyncSink",
    "HttpSyncSink",
    "build_sync_sink",
    "Timers",
    "TimerHandle",
    "AsyncioTimers",
    "now_ms",
    "Library",
    "QueryEngine",
    "AuthProvider",
    "LicenseService",
    "ContextProvider",
    "IdentityProvider",
    "Surfaces",
    "Reporter",
    "report_hit",
    "report_warning",
    "NullLibrary",
    "EmptyQueryEngine",
    "NoAuth",
    "StaticLicense",
    "StaticContext",
    "EnvIdentity",
    "LoggingSurfaces",
    "LoggingReporter",
]
