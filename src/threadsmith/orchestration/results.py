"""Run-wide result counters and progress reporting.

Both objects are shared by every concurrent unit of work, so each
read-modify-write happens under the object's own lock.  Progress listeners
receive immutable ``ProgressSnapshot`` values taken inside the lock and are
called outside it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from threadsmith.domain.types import AttachmentType
from threadsmith.email.models import EmailThread

logger = structlog.get_logger()


class GenerationResult:
    """Append-only counters and error log for one generation run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.succeeded_emails = 0
        self.failed_emails = 0
        self.succeeded_threads = 0
        self.failed_threads = 0
        self.total_emails_generated = 0
        self.total_threads_generated = 0
        self.total_attachments_planned = 0
        self.word_documents = 0
        self.excel_documents = 0
        self.powerpoint_documents = 0
        self.images = 0
        self.voicemails = 0
        self.calendar_invites = 0
        self.was_cancelled = False
        self._errors: list[str] = []
        self._threads: dict[int, EmailThread] = {}

    def __repr__(self) -> str:
        return (
            f"GenerationResult(emails={self.succeeded_emails}/{self.failed_emails}, "
            f"threads={self.succeeded_threads}/{self.failed_threads}, "
            f"errors={len(self._errors)}, cancelled={self.was_cancelled})"
        )

    @property
    def errors(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._errors)

    @property
    def threads(self) -> tuple[EmailThread, ...]:
        """Generated threads in plan order; threads that produced nothing are absent."""
        with self._lock:
            return tuple(self._threads[i] for i in sorted(self._threads))

    def add_thread(self, index: int, thread: EmailThread) -> None:
        with self._lock:
            self._threads[index] = thread

    def add_error(self, message: str) -> None:
        with self._lock:
            self._errors.append(message)

    def mark_cancelled(self) -> None:
        with self._lock:
            self.was_cancelled = True

    def record_email(self, success: bool) -> None:
        with self._lock:
            if success:
                self.succeeded_emails += 1
            else:
                self.failed_emails += 1

    def record_thread(self, success: bool, email_count: int = 0) -> None:
        """Count a finished thread and the messages it contributes to the output."""
        with self._lock:
            if success:
                self.succeeded_threads += 1
            else:
                self.failed_threads += 1
            if email_count > 0:
                self.total_threads_generated += 1
                self.total_emails_generated += email_count

    def record_attachments(
        self,
        documents: dict[AttachmentType, int],
        images: int,
        voicemails: int,
        calendar_invites: int = 0,
    ) -> None:
        """Add reconciled attachment counts for one finished thread."""
        with self._lock:
            self.word_documents += documents.get(AttachmentType.WORD, 0)
            self.excel_documents += documents.get(AttachmentType.EXCEL, 0)
            self.powerpoint_documents += documents.get(AttachmentType.POWERPOINT, 0)
            self.images += images
            self.voicemails += voicemails
            self.calendar_invites += calendar_invites
            self.total_attachments_planned += (
                sum(documents.values()) + images + voicemails + calendar_invites
            )

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable summary of the run."""
        with self._lock:
            return {
                "succeeded_emails": self.succeeded_emails,
                "failed_emails": self.failed_emails,
                "succeeded_threads": self.succeeded_threads,
                "failed_threads": self.failed_threads,
                "total_emails_generated": self.total_emails_generated,
                "total_threads_generated": self.total_threads_generated,
                "total_attachments_planned": self.total_attachments_planned,
                "word_documents": self.word_documents,
                "excel_documents": self.excel_documents,
                "powerpoint_documents": self.powerpoint_documents,
                "images": self.images,
                "voicemails": self.voicemails,
                "calendar_invites": self.calendar_invites,
                "was_cancelled": self.was_cancelled,
                "errors": list(self._errors),
            }


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of ``GenerationProgress``."""

    total_emails: int = 0
    completed_emails: int = 0
    total_attachments: int = 0
    completed_attachments: int = 0
    total_images: int = 0
    completed_images: int = 0
    current_operation: str = ""
    current_storyline: str | None = None

    @property
    def overall_percentage(self) -> float:
        if self.total_emails == 0:
            return 0.0
        return self.completed_emails * 100.0 / self.total_emails


ProgressCallback = Callable[[ProgressSnapshot], None]


class GenerationProgress:
    """Coarse-grained progress shared by all units of a run.

    Every update takes the lock, mutates, snapshots, releases, and then
    hands the snapshot to the optional callback.  A failing callback is
    logged and otherwise ignored.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._callback = callback
        self._total_emails = 0
        self._completed_emails = 0
        self._total_attachments = 0
        self._completed_attachments = 0
        self._total_images = 0
        self._completed_images = 0
        self._current_operation = ""
        self._current_storyline: str | None = None

    def _snapshot_locked(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            total_emails=self._total_emails,
            completed_emails=self._completed_emails,
            total_attachments=self._total_attachments,
            completed_attachments=self._completed_attachments,
            total_images=self._total_images,
            completed_images=self._completed_images,
            current_operation=self._current_operation,
            current_storyline=self._current_storyline,
        )

    def _report(self, snapshot: ProgressSnapshot) -> None:
        if self._callback is None:
            return
        try:
            self._callback(snapshot)
        except Exception:
            logger.exception("progress_callback_failed")

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def overall_percentage(self) -> float:
        return self.snapshot().overall_percentage

    def set_totals(self, emails: int, attachments: int, images: int) -> None:
        with self._lock:
            self._total_emails = emails
            self._total_attachments = attachments
            self._total_images = images
            self._completed_emails = min(self._completed_emails, emails)
            snapshot = self._snapshot_locked()
        self._report(snapshot)

    def set_operation(self, operation: str, storyline: str | None = None) -> None:
        with self._lock:
            self._current_operation = operation
            if storyline is not None:
                self._current_storyline = storyline
            snapshot = self._snapshot_locked()
        self._report(snapshot)

    def email_completed(self, subject: str, success: bool) -> None:
        """Advance the completed-email count, never past the planned total."""
        with self._lock:
            self._completed_emails = min(self._total_emails, self._completed_emails + 1)
            self._current_operation = (
                f"Generated email: {subject}" if success else f"Failed email: {subject}"
            )
            snapshot = self._snapshot_locked()
        self._report(snapshot)

    def attachments_completed(self, attachments: int, images: int = 0) -> None:
        with self._lock:
            self._completed_attachments = min(
                self._total_attachments, self._completed_attachments + attachments
            )
            self._completed_images = min(self._total_images, self._completed_images + images)
            snapshot = self._snapshot_locked()
        self._report(snapshot)

    def thread_completed(self, subject: str, success: bool) -> None:
        with self._lock:
            self._current_operation = (
                f"Completed thread: {subject}" if success else f"Failed thread: {subject}"
            )
            snapshot = self._snapshot_locked()
        self._report(snapshot)


def count_planned_attachments(
    thread: EmailThread,
) -> tuple[dict[AttachmentType, int], int, int]:
    """Count planned documents by type, images and voicemails on generated messages.

    Failed messages keep their planned flags but are skipped here.

    Returns:
        ``(documents_by_type, images, voicemails)``.
    """
    documents: dict[AttachmentType, int] = {}
    images = 0
    voicemails = 0
    for message in thread.messages:
        if message.generation_failed:
            continue
        if message.planned_has_document:
            doc_type = message.planned_document_type or AttachmentType.WORD
            documents[doc_type] = documents.get(doc_type, 0) + 1
        if message.planned_has_image:
            images += 1
        if message.planned_has_voicemail:
            voicemails += 1
    return documents, images, voicemails
