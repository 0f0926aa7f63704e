"""Gemini Files API staging.

Media too large to inline (and local files, by default) are uploaded to the
Files API. A freshly uploaded file is PROCESSING until the service makes it
ACTIVE or FAILED; only ACTIVE files can be referenced from a request.

State machine per staged file::

    PENDING --(poll)--> PENDING ... --> ACTIVE   (return file reference)
                                   \\--> FAILED   (FileStagingError)
    attempts exhausted while PENDING  (FileStagingTimeoutError)
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from google.genai import types

from .shared import FileReferencePart

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class StagedFileState(Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class FileStagingError(RuntimeError):
    """Raised when the Files API reports a staged file as FAILED."""

    def __init__(self, message: str, staged_file: Optional["StagedFile"] = None):
        super().__init__(message)
        self.staged_file = staged_file


class FileStagingTimeoutError(FileStagingError):
    """Raised when a staged file never leaves PENDING within the attempt budget."""


def _state_name(raw_state: Any) -> str:
    if raw_state is None:
        return "STATE_UNSPECIFIED"
    try:
        return raw_state.name
    except AttributeError:
        return str(raw_state)


def _error_detail(raw_file: Any) -> Optional[str]:
    error = getattr(raw_file, "error", None)
    if not error:
        return None
    message = getattr(error, "message", None)
    return message or str(error)


@dataclass(frozen=True)
class StagedFile:
    """Snapshot of a Files API object; refreshed only by re-fetching it."""

    name: str
    uri: Optional[str]
    mime_type: Optional[str]
    state: StagedFileState
    error_detail: Optional[str] = None

    @classmethod
    def from_genai(cls, raw_file: Any) -> "StagedFile":
        state_name = _state_name(getattr(raw_file, "state", None)).upper()
        if state_name == "ACTIVE":
            state = StagedFileState.ACTIVE
        elif state_name == "FAILED":
            state = StagedFileState.FAILED
        else:
            # PROCESSING and STATE_UNSPECIFIED both mean "not usable yet"
            state = StagedFileState.PENDING

        return cls(
            name=raw_file.name,
            uri=getattr(raw_file, "uri", None),
            mime_type=getattr(raw_file, "mime_type", None),
            state=state,
            error_detail=_error_detail(raw_file),
        )


class GeminiFileStager:
    """Upload bytes to the Files API and wait for them to become usable.

    Args:
        client: ``google.genai.Client`` (only ``client.aio.files`` is used)
        poll_interval: Seconds between status checks, clamped to [0, 60]
        max_attempts: Maximum number of status re-fetches
        sleep: Awaitable sleep, injectable for deterministic tests
    """

    MAX_POLL_INTERVAL = 60.0

    def __init__(
        self,
        client,
        *,
        poll_interval: float = 2.0,
        max_attempts: int = 60,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._client = client
        self._poll_interval = min(max(poll_interval, 0.0), self.MAX_POLL_INTERVAL)
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep

    async def upload(self, path: Path, mime_type: str) -> StagedFile:
        raw_file = await self._client.aio.files.upload(
            file=str(path),
            config=types.UploadFileConfig(mime_type=mime_type),
        )
        staged = StagedFile.from_genai(raw_file)
        logger.info(f"Uploaded {path.name} ({mime_type}) to Files API as {staged.name} [{staged.state.value}]")
        return staged

    async def refresh(self, name: str) -> StagedFile:
        raw_file = await self._client.aio.files.get(name=name)
        return StagedFile.from_genai(raw_file)

    def _raise_failed(self, staged: StagedFile) -> None:
        detail = staged.error_detail or "no error detail reported"
        raise FileStagingError(f"Gemini file processing failed for {staged.name}: {detail}", staged)

    async def wait_until_active(self, staged: StagedFile) -> StagedFile:
        """Poll ``staged`` until ACTIVE.

        Raises:
            FileStagingError: The service reported FAILED
            FileStagingTimeoutError: Still PENDING after ``max_attempts`` re-fetches
        """
        current = staged
        if current.state is StagedFileState.ACTIVE:
            return current
        if current.state is StagedFileState.FAILED:
            self._raise_failed(current)

        for attempt in range(1, self._max_attempts + 1):
            await self._sleep(self._poll_interval)
            current = await self.refresh(current.name)
            logger.debug(f"Files API status for {current.name}: {current.state.value} (poll {attempt})")

            if current.state is StagedFileState.ACTIVE:
                return current
            if current.state is StagedFileState.FAILED:
                self._raise_failed(current)

        waited = self._max_attempts * self._poll_interval
        raise FileStagingTimeoutError(
            f"Gemini file {current.name} did not become ACTIVE after {self._max_attempts} status checks "
            f"(~{waited:.0f}s); last state: {current.state.value}",
            current,
        )

    async def stage(self, path: Path, mime_type: str) -> FileReferencePart:
        """Upload ``path`` and return a file reference once it is ACTIVE."""
        staged = await self.upload(path, mime_type)
        active = await self.wait_until_active(staged)
        if not active.uri:
            raise FileStagingError(f"Gemini file {active.name} is ACTIVE but has no URI", active)
        return FileReferencePart(uri=active.uri, mime_type=active.mime_type or mime_type)
