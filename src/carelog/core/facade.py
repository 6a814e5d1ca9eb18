"""Query/mutation boundary over the task catalog and the two ledgers."""

import logging
import sqlite3
import uuid
from collections.abc import Callable, Sequence
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from carelog.config import Config
from carelog.core.cache import Overlay, QueryCache
from carelog.core.catalog import DAILY_CHECKLIST, pending_dependencies, task_by_id
from carelog.core.clock import Clock
from carelog.core.completions import CompletionLedger
from carelog.core.errors import Unauthenticated, ValidationError
from carelog.core.journal import JournalLedger, extract_tags, validate_priority
from carelog.core.progress import completed_task_ids, compute_progress
from carelog.core.shifts import shift_for_instant, validate_category, validate_shift
from carelog.db.engine import COMPLETIONS_STORE, JOURNAL_STORE, SnapshotStore
from carelog.db.models import CompletionEvent, JournalEntry, Progress, Task

logger = logging.getLogger(__name__)

ITEMS_KEY = "checklist-items"
COMPLETIONS_KEY = "checklist-completions"
PROGRESS_KEY = "checklist-progress"
ENTRIES_KEY = "shift-journal-entries"
HANDOVER_KEY = "handover-summary"

EntryListener = Callable[[JournalEntry], None]


def _pending_id() -> str:
    return f"temp-{uuid.uuid4().hex[:12]}"


class CareFacade:
    """The single entry point for reading and changing care records.

    Reads are cached under composite keys and every mutation invalidates the
    keys it affects. Mutations need an acting staff id from ``actor`` and are
    flushed to ``store`` (when given) before they return; a failed flush
    restores the ledger to its previous state.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        actor: Callable[[], str | None] | None = None,
        store: SnapshotStore | None = None,
        tasks: Sequence[Task] = DAILY_CHECKLIST,
    ):
        self.clock = clock or Clock()
        self._actor = actor or (lambda: None)
        self.store = store
        self.tasks = tuple(tasks)
        self.cache = QueryCache()
        self.overlay = Overlay()
        self.completion_ledger = CompletionLedger()
        self.journal_ledger = JournalLedger()
        self._entry_listeners: list[tuple[EntryListener, str | None]] = []

        if store is not None:
            self.completion_ledger.load(store.load(COMPLETIONS_STORE))
            self.journal_ledger.load(store.load(JOURNAL_STORE))
            logger.info(
                "Loaded %d completions and %d journal entries",
                len(self.completion_ledger), len(self.journal_ledger),
            )

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _require_actor(self) -> str:
        staff_id = self._actor()
        if not staff_id:
            raise Unauthenticated()
        return staff_id

    def _now(self, now: datetime | None) -> datetime:
        return self.clock.localize(now) if now is not None else self.clock.now()

    def _day(self, day: str | None, now: datetime | None = None) -> str:
        if day:
            return day
        return self.clock.day_of(now) if now is not None else self.clock.today()

    @contextmanager
    def _writing(self, ledger, name: str):
        before = ledger.snapshot() if self.store is not None else None
        try:
            yield
            if self.store is not None:
                self.store.save(name, ledger.snapshot())
        except Exception:
            if before is not None:
                ledger.load(before)
            raise

    def _invalidate_completions(self, resident_id: str | None, day: str | None):
        if resident_id is None:
            self.cache.invalidate((COMPLETIONS_KEY,))
            self.cache.invalidate((PROGRESS_KEY,))
        elif day is None:
            self.cache.invalidate((COMPLETIONS_KEY, resident_id))
            self.cache.invalidate((PROGRESS_KEY, resident_id))
        else:
            self.cache.invalidate((COMPLETIONS_KEY, resident_id, day))
            self.cache.invalidate((PROGRESS_KEY, resident_id, day))

    def _invalidate_journal(self):
        self.cache.invalidate((ENTRIES_KEY,))
        self.cache.invalidate((HANDOVER_KEY,))

    # ── Catalog & shift ──────────────────────────────────────────────────────

    def current_shift(self, now: datetime | None = None) -> str:
        return shift_for_instant(self._now(now))

    def checklist_items(self, category: str | None = None) -> list[Task]:
        items = self.cache.get((ITEMS_KEY,), lambda: list(self.tasks))
        if category is None:
            return list(items)
        validate_category(category)
        return [t for t in items if t.category == category]

    def task(self, task_id: str) -> Task | None:
        return task_by_id(task_id, self.tasks)

    # ── Completions ──────────────────────────────────────────────────────────

    def completions(self, resident_id: str, day: str | None = None) -> list[CompletionEvent]:
        """Confirmed and still-pending completions for a resident on a day."""
        day = self._day(day)
        key = (COMPLETIONS_KEY, resident_id, day)
        confirmed = self.cache.get(
            key, lambda: self.completion_ledger.completions_for(resident_id, day)
        )
        pending = self.overlay.records(key)
        return [replace(e) for e in confirmed] + [replace(e) for e in pending]

    def active_completions(self, resident_id: str, day: str | None = None) -> list[CompletionEvent]:
        day = self._day(day)
        key = (COMPLETIONS_KEY, resident_id, day, "active")
        active = self.cache.get(
            key, lambda: self.completion_ledger.active_completions(resident_id, day)
        )
        return [replace(e) for e in active]

    def complete_task(
        self,
        task_id: str,
        resident_id: str,
        notes: str | None = None,
        skipped: bool = False,
        skip_reason: str | None = None,
        pending_id: str | None = None,
        now: datetime | None = None,
    ) -> CompletionEvent:
        """Record that a task was done (or skipped) for a resident."""
        try:
            staff_id = self._require_actor()
            if self.task(task_id) is None:
                raise ValidationError(f"Unknown checklist task: {task_id}")
            if skip_reason and not skipped:
                raise ValidationError("skip_reason is only allowed for skipped tasks")

            now = self._now(now)
            day = self.clock.day_of(now)
            with self._writing(self.completion_ledger, COMPLETIONS_STORE):
                event = self.completion_ledger.record(
                    task_id, resident_id, staff_id,
                    now=now, day=day, notes=notes, skipped=skipped, skip_reason=skip_reason,
                )
        finally:
            if pending_id:
                self.overlay.resolve(pending_id)

        self._invalidate_completions(resident_id, day)
        logger.info(
            "%s %s for resident %s by %s",
            "Skipped" if skipped else "Completed", task_id, resident_id, staff_id,
        )
        return event

    def uncomplete_task(self, completion_id: str, resident_id: str | None = None) -> bool:
        """Remove a completion. Unknown ids are a no-op."""
        self._require_actor()
        if self.overlay.resolve(completion_id) is not None:
            return True

        event = self.completion_ledger.get(completion_id)
        if event is None:
            self._invalidate_completions(resident_id, None)
            return False

        with self._writing(self.completion_ledger, COMPLETIONS_STORE):
            removed = self.completion_ledger.remove(completion_id)
        self._invalidate_completions(event.resident_id, event.day)
        logger.info("Removed completion %s for resident %s", completion_id, event.resident_id)
        return removed

    def update_completion(self, completion_id: str, **fields) -> CompletionEvent | None:
        """Merge note or skip fields into a completion."""
        self._require_actor()
        with self._writing(self.completion_ledger, COMPLETIONS_STORE):
            event = self.completion_ledger.update(completion_id, **fields)
        if event is None:
            return None
        self._invalidate_completions(event.resident_id, event.day)
        return event

    def clear_completions(self):
        self._require_actor()
        with self._writing(self.completion_ledger, COMPLETIONS_STORE):
            self.completion_ledger.clear()
        self._invalidate_completions(None, None)
        logger.info("Cleared all completions")

    def stage_completion(
        self,
        task_id: str,
        resident_id: str,
        skipped: bool = False,
        now: datetime | None = None,
    ) -> CompletionEvent:
        """Show a completion to readers before it is confirmed.

        Pass the returned id as ``pending_id`` to :meth:`complete_task`, or to
        :meth:`discard_pending` if the write is abandoned.
        """
        staff_id = self._require_actor()
        now = self._now(now)
        day = self.clock.day_of(now)
        event = CompletionEvent(
            id=_pending_id(),
            task_id=task_id,
            resident_id=resident_id,
            staff_id=staff_id,
            completed_at=now,
            day=day,
            skipped=skipped,
        )
        self.overlay.stage(event.id, (COMPLETIONS_KEY, resident_id, day), event)
        return replace(event)

    # ── Progress ─────────────────────────────────────────────────────────────

    def progress(
        self,
        resident_id: str,
        day: str | None = None,
        now: datetime | None = None,
    ) -> Progress:
        """Progress for the shift ``now`` falls in, over ``day``'s completions."""
        now = self._now(now)
        day = self._day(day, now)
        shift = shift_for_instant(now)
        key = (PROGRESS_KEY, resident_id, day, shift)
        result = self.cache.get(
            key,
            lambda: compute_progress(
                self.tasks, self.completion_ledger.completions_for(resident_id, day), shift
            ),
        )
        return replace(result)

    def dependency_hints(self, resident_id: str, day: str | None = None) -> dict[str, list[str]]:
        """Tasks whose dependencies are not done yet, mapped to those dependencies."""
        day = self._day(day)
        done = completed_task_ids(self.completion_ledger.completions_for(resident_id, day))
        hints = {}
        for task in self.tasks:
            if task.id in done:
                continue
            pending = pending_dependencies(task.id, done, self.tasks)
            if pending:
                hints[task.id] = pending
        return hints

    # ── Journal ──────────────────────────────────────────────────────────────

    def journal_entries(
        self,
        resident_id: str | None = None,
        shift: str | None = None,
        day: str | None = None,
    ) -> list[JournalEntry]:
        """Entries for a day, optionally for one resident and/or shift, newest first."""
        if shift is not None:
            validate_shift(shift)
        day = self._day(day)
        key = (ENTRIES_KEY, resident_id, shift, day)
        confirmed = self.cache.get(
            key, lambda: self.journal_ledger.entries(resident_id, shift, day=day)
        )
        pending = [
            e for e in self.overlay.records((ENTRIES_KEY,))
            if e.day == day
            and (resident_id is None or e.resident_id == resident_id)
            and (shift is None or e.shift == shift)
        ]
        merged = [replace(e, tags=list(e.tags)) for e in pending + list(confirmed)]
        merged.sort(key=lambda e: e.created_at, reverse=True)
        return merged

    def handover_summary(self, shift: str, day: str | None = None) -> list[JournalEntry]:
        """Handover entries written during ``shift`` on ``day``."""
        validate_shift(shift)
        day = self._day(day)
        entries = self.cache.get(
            (HANDOVER_KEY, shift, day),
            lambda: self.journal_ledger.handover_entries(shift, day=day),
        )
        return [replace(e, tags=list(e.tags)) for e in entries]

    def journal_entry(self, entry_id: str) -> JournalEntry | None:
        return self.journal_ledger.get(entry_id)

    def create_entry(
        self,
        content: str,
        resident_id: str | None = None,
        is_handover: bool = False,
        priority: str = "normal",
        tags: list[str] | None = None,
        audio_url: str | None = None,
        pending_id: str | None = None,
        now: datetime | None = None,
    ) -> JournalEntry:
        """Write a journal entry for the current shift."""
        try:
            staff_id = self._require_actor()
            validate_priority(priority)
            now = self._now(now)
            with self._writing(self.journal_ledger, JOURNAL_STORE):
                entry = self.journal_ledger.create(
                    staff_id,
                    content,
                    shift=shift_for_instant(now),
                    now=now,
                    day=self.clock.day_of(now),
                    resident_id=resident_id,
                    is_handover=is_handover,
                    priority=priority,
                    tags=tags,
                    audio_url=audio_url,
                )
        finally:
            if pending_id:
                self.overlay.resolve(pending_id)

        self._invalidate_journal()
        logger.info(
            "Journal entry %s created by %s (%s shift, priority %s)",
            entry.id, staff_id, entry.shift, entry.priority,
        )
        self._notify_entry_created(entry)
        return entry

    def update_entry(self, entry_id: str, **fields) -> JournalEntry | None:
        """Merge ``content``, ``priority``, ``tags``, ``is_handover`` or ``audio_url``."""
        self._require_actor()
        with self._writing(self.journal_ledger, JOURNAL_STORE):
            entry = self.journal_ledger.update(entry_id, **fields)
        self._invalidate_journal()
        return entry

    def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry. Unknown ids are a no-op."""
        self._require_actor()
        if self.overlay.resolve(entry_id) is not None:
            return True
        with self._writing(self.journal_ledger, JOURNAL_STORE):
            deleted = self.journal_ledger.delete(entry_id)
        self._invalidate_journal()
        if deleted:
            logger.info("Journal entry %s deleted", entry_id)
        return deleted

    def attach_voice_note(self, entry_id: str, audio_ref: str) -> JournalEntry | None:
        """Attach an uploaded voice note reference to an entry."""
        return self.update_entry(entry_id, audio_url=audio_ref)

    def clear_entries(self):
        self._require_actor()
        with self._writing(self.journal_ledger, JOURNAL_STORE):
            self.journal_ledger.clear()
        self._invalidate_journal()
        logger.info("Cleared all journal entries")

    def stage_entry(
        self,
        content: str,
        resident_id: str | None = None,
        is_handover: bool = False,
        now: datetime | None = None,
    ) -> JournalEntry:
        """Show an entry to readers before it is confirmed."""
        staff_id = self._require_actor()
        now = self._now(now)
        shift = shift_for_instant(now)
        day = self.clock.day_of(now)
        entry = JournalEntry(
            id=_pending_id(),
            staff_id=staff_id,
            shift=shift,
            content=content,
            created_at=now,
            day=day,
            resident_id=resident_id,
            is_handover=is_handover,
            tags=extract_tags(content),
        )
        self.overlay.stage(entry.id, (ENTRIES_KEY, resident_id, shift, day), entry)
        return replace(entry, tags=list(entry.tags))

    def discard_pending(self, pending_id: str) -> bool:
        """Drop a staged record whose write failed or was abandoned."""
        return self.overlay.resolve(pending_id) is not None

    # ── Change notification ──────────────────────────────────────────────────

    def subscribe(
        self,
        listener: EntryListener,
        resident_id: str | None = None,
    ) -> Callable[[], None]:
        """Call ``listener`` with each new entry (for one resident when given)."""
        item = (listener, resident_id)
        self._entry_listeners.append(item)

        def unsubscribe():
            if item in self._entry_listeners:
                self._entry_listeners.remove(item)

        return unsubscribe

    def _notify_entry_created(self, entry: JournalEntry):
        for listener, resident_id in list(self._entry_listeners):
            if resident_id is not None and entry.resident_id != resident_id:
                continue
            try:
                listener(replace(entry, tags=list(entry.tags)))
            except Exception:
                logger.exception("Journal entry listener failed for entry %s", entry.id)


def open_facade(
    db: sqlite3.Connection,
    config: Config,
    staff_id: str | None = None,
    clock: Clock | None = None,
) -> CareFacade:
    """Build a facade persisted in ``db`` and acting as ``staff_id`` (or the configured staff)."""
    return CareFacade(
        clock=clock or Clock(config.timezone),
        actor=lambda: staff_id or config.staff_id,
        store=SnapshotStore(db),
    )
