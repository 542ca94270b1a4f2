import json
import os
from pathlib import Path
import tempfile
from typing import Any, Callable, Optional


def write_json(path: str | Path, data: Any) -> None:
    """
    Persist a JSON document atomically.

    The document goes to a temporary sibling file which is fsynced and then
    moved over `path` with os.replace, so readers see either the previous
    settings/playlists file or the new one in full.
    """
    target_path = Path(path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path_str = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=target_path.name,
        suffix=".tmp",
    )
    tmp_path = Path(tmp_path_str)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target_path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def read_json(
    path: str | Path,
    default: Any = None,
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Any:
    """
    Load a JSON document, falling back to `default` when the file is missing
    or cannot be decoded (`on_error` is told about the latter).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        if on_error:
            on_error(e)
        return default
