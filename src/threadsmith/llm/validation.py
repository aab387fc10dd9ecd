"""Deterministic validation gate for generated threads and emails.

Validates content-generator responses using string matching only -- no LLM
calls.  Catches count mismatches, unknown participants, out-of-window dates,
empty bodies and missing attachment mentions before anything is applied to
a thread.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from threadsmith.domain.models import Character
from threadsmith.domain.types import ThreadEmailIntent
from threadsmith.llm.models import ThreadApiResponse, ValidationFailure, ValidationResult
from threadsmith.planning.models import ThreadEmailSlotPlan, ThreadStructurePlan

_DOCUMENT_KEYWORDS = ("attach", "attachment", "document", "spreadsheet", "report")
_IMAGE_KEYWORDS = ("screenshot", "photo", "image", "attached")
_VOICEMAIL_KEYWORDS = ("voicemail", "voice message", "left you a message")


def mentions_any(body: str, keywords: Iterable[str]) -> bool:
    """Return True if *body* contains any keyword (case-insensitive)."""
    if not body or not body.strip():
        return False
    lowered = body.lower()
    return any(keyword in lowered for keyword in keywords)


def parse_sent_date(value: str) -> datetime | None:
    """Parse an ISO 8601 send time, returning None for blank or invalid input."""
    if not value or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def _error(check: str, reason: str) -> ValidationFailure:
    return ValidationFailure(check=check, reason=reason, severity="error")


def validate_thread_response(
    response: ThreadApiResponse,
    plan: ThreadStructurePlan,
    participants: list[Character],
    window_start: datetime,
    window_end: datetime,
) -> ValidationResult:
    """Validate a whole-thread response against its structure plan.

    Runs five validation checks:
    1. Email count -- must equal the number of planned slots
    2. Subject -- must be non-empty
    3. Participants -- every sender and recipient must be a thread participant
    4. Dates -- supplied send times must parse and fall inside the window
       (compared by calendar day)
    5. Bodies -- must be non-empty

    A ``reply_to_index`` that disagrees with the planned parent only yields
    a warning, since the plan's structure is applied regardless.

    Args:
        response: The parsed generator response.
        plan: The thread's structure plan.
        participants: Characters allowed to appear in the thread.
        window_start: Start of the thread's send window.
        window_end: End of the thread's send window.

    Returns:
        ValidationResult with passed=True only if no error-severity failures.
    """
    failures: list[ValidationFailure] = []

    # Check 1: Email count
    if len(response.emails) != len(plan):
        failures.append(
            _error(
                "email_count",
                f"Expected {len(plan)} emails but received {len(response.emails)}",
            )
        )

    # Check 2: Subject
    if not response.subject.strip():
        failures.append(_error("subject", "Thread subject is empty"))

    known = {c.email.lower() for c in participants}
    index_by_id = {s.email_id: s.index for s in plan.slots}
    first_day, last_day = window_start.date(), window_end.date()

    for i, email in enumerate(response.emails):
        label = f"Email {i + 1}"

        # Check 3: Participants
        if email.from_email.lower() not in known:
            failures.append(
                _error("participants", f"{label} sender {email.from_email!r} is not a participant")
            )
        if not email.to_emails:
            failures.append(_error("participants", f"{label} has no recipients"))
        for address in [*email.to_emails, *email.cc_emails]:
            if address.lower() not in known:
                failures.append(
                    _error("participants", f"{label} recipient {address!r} is not a participant")
                )

        # Check 4: Dates
        if email.sent_date_time.strip():
            sent = parse_sent_date(email.sent_date_time)
            if sent is None:
                failures.append(
                    _error("sent_date", f"{label} has an unparseable date {email.sent_date_time!r}")
                )
            elif not first_day <= sent.date() <= last_day:
                failures.append(
                    _error(
                        "sent_date",
                        f"{label} date {sent.date()} is outside {first_day}..{last_day}",
                    )
                )

        # Check 5: Bodies
        if not email.body_plain.strip():
            failures.append(_error("body", f"{label} body is empty"))

        if i < len(plan):
            slot = plan.slots[i]
            expected = index_by_id.get(slot.parent_email_id) if slot.parent_email_id else None
            if email.reply_to_index is not None and email.reply_to_index != expected:
                failures.append(
                    ValidationFailure(
                        check="reply_to_index",
                        reason=(
                            f"{label} reply_to_index {email.reply_to_index} differs from "
                            f"planned parent {expected}"
                        ),
                        severity="warning",
                    )
                )

    has_errors = any(f.severity == "error" for f in failures)
    return ValidationResult(passed=not has_errors, failures=failures)


def validate_email_body(
    body: str,
    slot: ThreadEmailSlotPlan,
    has_parent: bool,
    *,
    requires_document: bool = False,
    requires_image: bool = False,
    requires_voicemail: bool = False,
) -> ValidationResult:
    """Validate a single generated email body for one slot.

    Checks that the body is non-empty, that reply/forward slots have a
    generated parent, and that every required attachment is mentioned
    using its keyword family.

    Returns:
        ValidationResult with passed=True only if no failures.
    """
    failures: list[ValidationFailure] = []

    if not body or not body.strip():
        failures.append(_error("body", "Email body is required."))

    if slot.intent != ThreadEmailIntent.NEW and not has_parent:
        failures.append(_error("parent", "Parent email is missing for reply/forward slot."))

    if requires_document and not mentions_any(body, _DOCUMENT_KEYWORDS):
        failures.append(_error("document_mention", "Email body must reference the document attachment."))
    if requires_image and not mentions_any(body, _IMAGE_KEYWORDS):
        failures.append(_error("image_mention", "Email body must reference the image attachment."))
    if requires_voicemail and not mentions_any(body, _VOICEMAIL_KEYWORDS):
        failures.append(
            _error("voicemail_mention", "Email body must reference the voicemail attachment.")
        )

    return ValidationResult(passed=not failures, failures=failures)
