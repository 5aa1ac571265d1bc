"""
============================================================================
Budget Update State - Last Applied Date Storage
============================================================================

Reliability Level: L6 Critical
Traceability: All store operations logged with correlation_id

UPDATE STATE:
    The only mutable record in the budget scaling engine:
    - last_update_date: calendar date of the last applied update (or None)

STORES:
    - InMemoryUpdateStateStore: process-scoped, lost on restart
    - JsonFileUpdateStateStore: survives restarts and short-lived processes

    Stores are not locked here; UpdateReconciler serializes access.

ERROR CODES:
    - BSE-STATE-001: State store read/write failure
============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Union
import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

ERROR_STATE_STORE_FAIL = "BSE-STATE-001"


class UpdateStateError(Exception):
    """Raised when the persisted update state cannot be read or written."""
    pass


@dataclass
class UpdateState:
    """Date of the last applied budget update."""
    last_update_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "last_update_date": (
                self.last_update_date.isoformat() if self.last_update_date else None
            )
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UpdateState":
        raw = data.get("last_update_date")
        return cls(last_update_date=date.fromisoformat(raw) if raw else None)


# =============================================================================
# Store Interface
# =============================================================================

class UpdateStateStore(ABC):
    """Holds the UpdateState between reconciler invocations."""

    @abstractmethod
    def load(self) -> UpdateState:
        ...

    @abstractmethod
    def save(self, state: UpdateState) -> None:
        ...


class InMemoryUpdateStateStore(UpdateStateStore):
    """Process-scoped state; reset only by restart."""

    def __init__(self, initial: Optional[UpdateState] = None) -> None:
        self._state = UpdateState(
            last_update_date=initial.last_update_date if initial else None
        )

    def load(self) -> UpdateState:
        return UpdateState(last_update_date=self._state.last_update_date)

    def save(self, state: UpdateState) -> None:
        self._state = UpdateState(last_update_date=state.last_update_date)


class JsonFileUpdateStateStore(UpdateStateStore):
    """
    UpdateState persisted as a small JSON document.

    A missing file is an empty state. A corrupt file raises UpdateStateError
    so the reconciler refuses to apply instead of treating it as empty.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UpdateState:
        if not self._path.exists():
            return UpdateState()

        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError(f"expected object, got {type(data).__name__}")
            return UpdateState.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.error(
                f"[{ERROR_STATE_STORE_FAIL}] Failed to read update state | "
                f"path={self._path} | error={e}"
            )
            raise UpdateStateError(f"{ERROR_STATE_STORE_FAIL}: cannot read {self._path}: {e}")

    def save(self, state: UpdateState) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(directory), prefix=".budget_state_", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(state.to_dict(), fh)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(
                f"[{ERROR_STATE_STORE_FAIL}] Failed to write update state | "
                f"path={self._path} | error={e}"
            )
            raise UpdateStateError(f"{ERROR_STATE_STORE_FAIL}: cannot write {self._path}: {e}")

        logger.debug(
            f"[BSE-STATE] Update state saved | path={self._path} | "
            f"last_update_date={state.last_update_date}"
        )


def create_update_state_store(path: Optional[str] = None) -> UpdateStateStore:
    """JSON file store when a path is configured, in-memory otherwise."""
    if path:
        return JsonFileUpdateStateStore(path)
    return InMemoryUpdateStateStore()
