"""Streaming ingestion of a session log with pause, resume and abort.

The controller walks the text line by line, parses each line, and flushes
parsed records downstream in batches of ``config.BATCH_SIZE``. After every
full batch it yields to the event loop, which is the only suspension point
apart from an explicit pause. Consumers receive each flush through an
``on_batch`` callback and rebuild their derived state from the accumulated
record list.

State machine::

    idle --start--> running --pause--> paused --resume--> running
      ^                |                  |
      +---complete-----+                  |
                       +--abort--> aborted <--abort--+
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from cc_timeline import config
from cc_timeline.indexer import derive_snapshot
from cc_timeline.models import Record, RecentSession, SessionMeta, Snapshot
from cc_timeline.parser import parse_line

logger = logging.getLogger(__name__)

EMPTY_INPUT = "empty input"
NO_VALID_RECORDS = "no valid records found"


class IngestionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Batch:
    """Records and skip count accepted since the previous flush."""

    records: list[Record]
    skipped: int = 0


@dataclass(frozen=True)
class IngestionOutcome:
    """Completion signal of a run that was not aborted."""

    ok: bool
    record_count: int = 0
    error: str | None = None
    meta: SessionMeta | None = None


BatchCallback = Callable[[Batch], None]


class IngestionController:
    """Drive the line parser over a whole log, one run at a time.

    ``next_line`` is the continuation point: the index of the next line to
    process. Resuming after a pause continues from there. A new ``start()``
    supersedes any run still in flight.
    """

    def __init__(self, on_batch: BatchCallback | None = None, batch_size: int | None = None):
        self.on_batch = on_batch
        self.batch_size = batch_size or config.BATCH_SIZE
        self.next_line = 0
        self._status = IngestionStatus.IDLE
        self._run_id = 0
        self._aborted = False
        self._pause_requested = False
        self._resume_event: asyncio.Event | None = None

    @property
    def status(self) -> IngestionStatus:
        return self._status

    async def start(self, text: str, meta: SessionMeta | None = None) -> IngestionOutcome | None:
        """Ingest ``text`` and report success or failure.

        Returns None when the run is aborted or superseded; batches flushed
        before that point remain valid.
        """
        # Wake a previous run parked on pause so it can notice it is stale
        if self._resume_event is not None:
            self._resume_event.set()

        self._run_id += 1
        run_id = self._run_id
        self._aborted = False
        self._pause_requested = False
        self._resume_event = asyncio.Event()
        self._status = IngestionStatus.RUNNING
        self.next_line = 0

        lines = text.split("\n")
        pending: list[Record] = []
        skipped = 0
        total = 0

        logger.debug("Ingestion run %d started: %d lines", run_id, len(lines))

        while self.next_line < len(lines):
            if self._is_stale(run_id):
                return None

            if self._pause_requested:
                self._flush(pending, skipped)
                pending, skipped = [], 0
                if not await self._wait_for_resume(run_id):
                    return None

            line = lines[self.next_line]
            self.next_line += 1

            record = parse_line(line)
            if record is not None:
                pending.append(record)
                total += 1
            elif line.strip():
                skipped += 1

            if len(pending) >= self.batch_size:
                self._flush(pending, skipped)
                pending, skipped = [], 0
                await asyncio.sleep(0)

        if self._is_stale(run_id):
            return None

        self._flush(pending, skipped)
        self._status = IngestionStatus.IDLE

        if total == 0:
            error = EMPTY_INPUT if not text.strip() else NO_VALID_RECORDS
            logger.info("Ingestion failed: %s", error)
            return IngestionOutcome(ok=False, error=error, meta=meta)

        logger.info("Ingestion complete: %d records", total)
        return IngestionOutcome(ok=True, record_count=total, meta=meta)

    def pause(self) -> None:
        """Request a pause at the next iteration boundary."""
        if self._status is not IngestionStatus.RUNNING:
            logger.debug("pause() ignored in state %s", self._status.value)
            return
        self._pause_requested = True

    def resume(self) -> None:
        """Continue a paused run from its continuation point."""
        if self._status is not IngestionStatus.PAUSED and not self._pause_requested:
            logger.debug("resume() ignored in state %s", self._status.value)
            return
        self._pause_requested = False
        self._status = IngestionStatus.RUNNING
        if self._resume_event is not None:
            self._resume_event.set()

    def abort(self) -> None:
        """Stop the current run; unflushed records are discarded."""
        if self._status in (IngestionStatus.RUNNING, IngestionStatus.PAUSED):
            logger.debug("Ingestion run %d aborted at line %d", self._run_id, self.next_line)
            self._status = IngestionStatus.ABORTED
        self._aborted = True
        self._pause_requested = False
        if self._resume_event is not None:
            self._resume_event.set()

    def _is_stale(self, run_id: int) -> bool:
        return self._aborted or run_id != self._run_id

    async def _wait_for_resume(self, run_id: int) -> bool:
        assert self._resume_event is not None
        self._status = IngestionStatus.PAUSED
        self._resume_event.clear()
        logger.debug("Ingestion paused at line %d", self.next_line)

        await self._resume_event.wait()

        if self._is_stale(run_id):
            return False
        logger.debug("Ingestion resumed at line %d", self.next_line)
        return True

    def _flush(self, records: list[Record], skipped: int) -> None:
        if not records and not skipped:
            return
        logger.debug("Flushing batch: %d records, %d skipped", len(records), skipped)
        if self.on_batch is not None:
            self.on_batch(Batch(records=records, skipped=skipped))


class LoadStatus(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    PAUSED = "paused"
    ACTIVE = "active"


@dataclass
class ConversationState:
    """Everything accumulated from one loaded log.

    ``snapshot`` always reflects the most recently flushed batch; while
    ``status`` is loading or paused it is provisional.
    """

    status: LoadStatus = LoadStatus.EMPTY
    meta: SessionMeta | None = None
    records: list[Record] = field(default_factory=list)
    snapshot: Snapshot = field(default_factory=Snapshot)
    skipped_lines: int = 0
    error: str | None = None

    def begin(self, meta: SessionMeta | None) -> None:
        self.status = LoadStatus.LOADING
        self.meta = meta
        self.records = []
        self.snapshot = Snapshot()
        self.skipped_lines = 0
        self.error = None

    def apply_batch(self, batch: Batch) -> None:
        self.records = self.records + batch.records
        self.snapshot = derive_snapshot(self.records)
        self.skipped_lines += batch.skipped

    def finish(self, outcome: IngestionOutcome) -> None:
        self.status = LoadStatus.ACTIVE
        self.error = outcome.error

    def reset(self) -> None:
        self.begin(None)
        self.status = LoadStatus.EMPTY

    @property
    def record_count(self) -> int:
        return len(self.records)

    def recent_session(self) -> RecentSession | None:
        """Metadata the host may persist once loading finished successfully."""
        if self.meta is None or self.status is not LoadStatus.ACTIVE or self.error:
            return None
        return RecentSession.from_meta(self.meta, self.record_count)


class SessionLoader:
    """Couple an IngestionController with the ConversationState it feeds."""

    def __init__(self, batch_size: int | None = None, on_batch: BatchCallback | None = None):
        self.state = ConversationState()
        self._listener = on_batch
        self.controller = IngestionController(on_batch=self._handle_batch, batch_size=batch_size)

    async def load(self, text: str, meta: SessionMeta | None = None) -> IngestionOutcome | None:
        self.state.begin(meta)
        outcome = await self.controller.start(text, meta)
        if outcome is not None:
            self.state.finish(outcome)
        return outcome

    def pause(self) -> None:
        self.controller.pause()
        if self.state.status is LoadStatus.LOADING:
            self.state.status = LoadStatus.PAUSED

    def resume(self) -> None:
        self.controller.resume()
        if self.state.status is LoadStatus.PAUSED:
            self.state.status = LoadStatus.LOADING

    def reset(self) -> None:
        self.controller.abort()
        self.state.reset()

    def _handle_batch(self, batch: Batch) -> None:
        self.state.apply_batch(batch)
        if self._listener is not None:
            self._listener(batch)


def load_text(
    text: str,
    meta: SessionMeta | None = None,
    batch_size: int | None = None,
    on_batch: BatchCallback | None = None,
) -> ConversationState:
    """Run a complete ingestion synchronously and return the final state."""
    loader = SessionLoader(batch_size=batch_size, on_batch=on_batch)
    asyncio.run(loader.load(text, meta))
    return loader.state
