"""Public façade for the autoplaylists.core package.

This module exposes logging helpers, JSON file utilities, error types and the
shared models (sessions, sync requests, storage changes, debug queries).
Other packages should import these cross-cutting concerns from this façade
instead of the internal submodules.
"""

from .errors import AutoplaylistsError, DebugQueryDisabled, UnknownSessionError
from .fs_utils import read_json, write_json
from .logging_config import configure_logging
from .logging_utils import (
    log_error,
    log_info,
    log_step,
    log_success,
    log_warning,
)
from .models import (
    PlaylistRecord,
    SessionEntry,
    SplaylistCache,
    StorageChange,
    SyncAction,
    SyncRequest,
    Tier,
)
from .rules import (
    ConditionOperator,
    DebugQuery,
    LogicalOperator,
    RuleCondition,
    RuleGroup,
)

__all__ = [
    "configure_logging",
    "log_info",
    "log_step",
    "log_success",
    "log_warning",
    "log_error",
    "read_json",
    "write_json",
    "AutoplaylistsError",
    "UnknownSessionError",
    "DebugQueryDisabled",
    "PlaylistRecord",
    "SessionEntry",
    "SplaylistCache",
    "StorageChange",
    "SyncAction",
    "SyncRequest",
    "Tier",
    "ConditionOperator",
    "DebugQuery",
    "LogicalOperator",
    "RuleCondition",
    "RuleGroup",
]
