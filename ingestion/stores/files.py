"""
File-backed checkpoint and raw page stores.

Layout:
    <checkpoint_dir>/<PROJECT>.json          {"startAt": <offset>}
    <raw_dir>/<PROJECT>/page_<offset>.json   raw search response

Writes go to a temporary file in the target directory and are moved into
place with ``os.replace``, so a crash mid-write leaves either the old file or
the new one, never a truncated page.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from core.config import settings
from core.exceptions import RawPageReadError, StorageError
from ingestion.stores.base import CheckpointStore, RawPageStore
from schemas.pages import CheckpointState

logger = logging.getLogger(__name__)

PAGE_FILE_RE = re.compile(r"^page_(\d+)\.json$")


def ensure_dir(path: Path) -> None:
    """Create a directory tree; an existing directory is not an error."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(
            f"Could not create directory {path}",
            context={"path": str(path)},
            original_exception=e
        )


def write_json_atomic(path: Path, payload: Any) -> None:
    """Durably replace ``path`` with the JSON encoding of ``payload``."""
    ensure_dir(path.parent)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False
        ) as tmp:
            tmp_name = tmp.name
            json.dump(payload, tmp, indent=2)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StorageError(
            f"Failed to write {path}",
            context={"path": str(path)},
            original_exception=e
        )


class FileCheckpointStore(CheckpointStore):
    """One JSON checkpoint file per project."""

    def __init__(self, base_dir: Union[str, Path] = settings.CHECKPOINT_DIR):
        self.base_dir = Path(base_dir)

    def path_for(self, project_key: str) -> Path:
        return self.base_dir / f"{project_key}.json"

    def get(self, project_key: str) -> int:
        path = self.path_for(project_key)
        if not path.exists():
            return 0
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CheckpointState.model_validate(data).start_at
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable checkpoint {path}: {e}")
            return 0

    def set(self, project_key: str, offset: int) -> None:
        state = CheckpointState(start_at=offset)
        write_json_atomic(self.path_for(project_key), state.model_dump(by_alias=True))
        logger.debug(f"Checkpoint for {project_key} set to startAt={offset}")


class FileRawPageStore(RawPageStore):
    """One JSON file per fetched page."""

    def __init__(self, base_dir: Union[str, Path] = settings.RAW_DIR):
        self.base_dir = Path(base_dir)

    def project_dir(self, project_key: str) -> Path:
        return self.base_dir / project_key

    def path_for(self, project_key: str, offset: int) -> Path:
        return self.project_dir(project_key) / f"page_{offset}.json"

    def write(self, project_key: str, offset: int, payload: Any) -> None:
        path = self.path_for(project_key, offset)
        write_json_atomic(path, payload)
        logger.info(f"Saved {path}")

    def read(self, project_key: str, offset: int) -> Any:
        path = self.path_for(project_key, offset)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RawPageReadError(
                f"Could not read raw page {path}",
                context={"project": project_key, "offset": offset, "path": str(path)},
                original_exception=e
            )

    def list_offsets(self, project_key: str) -> List[int]:
        directory = self.project_dir(project_key)
        if not directory.is_dir():
            return []
        offsets = []
        for entry in directory.iterdir():
            match = PAGE_FILE_RE.match(entry.name)
            if match and entry.is_file():
                offsets.append(int(match.group(1)))
        return sorted(offsets)
