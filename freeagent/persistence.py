"""
PersistenceStrategy interface for caller-side session storage.

The engine is stateless, so everything that survives between iterations
lives with the caller. This module stores two things per session:

1. Session snapshots (AgentSession), so a session can be resumed
2. Iteration records (request + response), so any iteration can be
   inspected or replayed later

Two included implementations:
1. InMemoryPersistence - Dict-based storage, data lost on exit (testing)
2. JsonPersistence - Human-readable JSON files on disk

Usage pattern:
    persistence = JsonPersistence("sessions")
    await persistence.initialize()
    await persistence.save_session(session)
    await persistence.save_iteration(record)
    await persistence.close()
"""

import asyncio
import json
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from .config import Config
from .schemas import AgentSession, IterationRecord, IterationRequest, IterationResponse


class PersistenceStrategy(ABC):
    """Abstract base class for session persistence.

    All methods are async so file or database backends never block the
    session loop. initialize() and close() manage backend lifecycle.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, open connections)."""

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def save_session(self, session: AgentSession) -> None:
        """Store the latest snapshot of a session (overwrites the previous one)."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[AgentSession]:
        """Return the latest snapshot, or None if the session is unknown."""

    @abstractmethod
    async def save_iteration(self, record: IterationRecord) -> None:
        """Store one iteration's request and response."""

    @abstractmethod
    async def get_iterations(self, session_id: str) -> List[IterationRecord]:
        """All stored iterations of a session, oldest first."""

    @abstractmethod
    async def list_sessions(self) -> List[str]:
        """Ids of all stored sessions."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Remove a session and its iteration records."""

    async def get_iteration(self, session_id: str, iteration: int) -> Optional[IterationRecord]:
        for record in await self.get_iterations(session_id):
            if record.iteration == iteration:
                return record
        return None


class InMemoryPersistence(PersistenceStrategy):
    """Dict-based persistence; everything is lost when the process exits.

    Snapshots are stored as copies so later mutation of the live session
    does not alter what was saved.
    """

    def __init__(self) -> None:
        self.sessions: Dict[str, AgentSession] = {}
        self.iterations: Dict[str, List[IterationRecord]] = {}

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def save_session(self, session: AgentSession) -> None:
        self.sessions[session.id] = session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> Optional[AgentSession]:
        session = self.sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save_iteration(self, record: IterationRecord) -> None:
        self.iterations.setdefault(record.session_id, []).append(record.model_copy(deep=True))

    async def get_iterations(self, session_id: str) -> List[IterationRecord]:
        records = self.iterations.get(session_id, [])
        return sorted(records, key=lambda record: record.iteration)

    async def list_sessions(self) -> List[str]:
        return sorted(set(self.sessions) | set(self.iterations))

    async def delete_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)
        self.iterations.pop(session_id, None)


class JsonPersistence(PersistenceStrategy):
    """File-based persistence using JSON for human-readable storage.

    Directory structure:
    ```
    {base_path}/
      {session_id}/
        session.json              # latest AgentSession snapshot
        iterations/
          00001.json              # IterationRecord for iteration 1
          00002.json
          ...
    ```

    Files use camelCase keys, the same shape the HTTP endpoint speaks, so a
    stored request can be POSTed to /free-agent unchanged. All file I/O runs
    in a worker thread.
    """

    def __init__(self, base_path: Path | str | None = None):
        self.base_path = Path(base_path) if base_path is not None else Config.SESSIONS_DIR

    async def initialize(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        # Nothing to clean up for JSON persistence
        return None

    async def save_session(self, session: AgentSession) -> None:
        path = self._session_dir(session.id) / "session.json"
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        payload = session.model_dump(mode="json", by_alias=True)
        await asyncio.to_thread(path.write_text, json.dumps(payload, indent=2), "utf-8")

    async def get_session(self, session_id: str) -> Optional[AgentSession]:
        path = self._session_dir(session_id) / "session.json"
        if not path.exists():
            return None

        payload = await asyncio.to_thread(json.loads, path.read_text("utf-8"))
        return AgentSession.model_validate(payload)

    async def save_iteration(self, record: IterationRecord) -> None:
        path = self._session_dir(record.session_id) / "iterations" / f"{record.iteration:05d}.json"
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        payload = record.model_dump(mode="json", by_alias=True)
        await asyncio.to_thread(path.write_text, json.dumps(payload, indent=2), "utf-8")

    async def get_iterations(self, session_id: str) -> List[IterationRecord]:
        directory = self._session_dir(session_id) / "iterations"
        if not directory.exists():
            return []

        def _load() -> List[IterationRecord]:
            return [
                IterationRecord.model_validate(json.loads(path.read_text("utf-8")))
                for path in sorted(directory.glob("*.json"))
            ]

        return await asyncio.to_thread(_load)

    async def list_sessions(self) -> List[str]:
        if not self.base_path.exists():
            return []
        return sorted(path.name for path in self.base_path.iterdir() if path.is_dir())

    async def delete_session(self, session_id: str) -> None:
        directory = self._session_dir(session_id)
        if directory.exists():
            await asyncio.to_thread(shutil.rmtree, directory)

    def _session_dir(self, session_id: str) -> Path:
        return self.base_path / session_id


Engine = Callable[[IterationRequest], Awaitable[IterationResponse]]


async def replay_iteration(record: IterationRecord, engine: Engine) -> IterationResponse:
    """Re-submit a stored request and return the fresh response.

    The engine is stateless, so the stored request alone reproduces the
    iteration's input exactly; only the model's answer may differ.
    """

    return await engine(record.request.model_copy(deep=True))
