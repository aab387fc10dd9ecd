"""Prompt templates for content generation.

Templates use Python string placeholders ({variable_name}) for injection of
thread context, participant lists and per-slot requirements.  The builder
functions below assemble the per-request text from a structure plan.
"""

from __future__ import annotations

from collections.abc import Sequence

from threadsmith.domain.models import Character
from threadsmith.domain.types import ThreadEmailIntent
from threadsmith.email.models import EmailMessage
from threadsmith.planning.models import ThreadEmailSlotPlan, ThreadStructurePlan

EMAIL_SYSTEM_PROMPT = """You write realistic workplace email for a synthetic \
dataset. Every email must read as if a real person at the named organization \
wrote it.

RULES:
- Write in the sender's voice and sign off with the sender's signature block.
- Only people listed as PARTICIPANTS may send or receive email.
- Never include quoted history; it is appended automatically.
- When an attachment, image or voicemail is required, mention it explicitly \
in the body (e.g. "attached is the report", "see the screenshot", "I left you \
a voicemail").
- Keep each email between 60 and 250 words unless the slot says otherwise.
"""

THREAD_USER_PROMPT = """Write a complete email thread for this story beat.

STORY BEAT: {beat_name}
TOPIC: {topic}
RELEVANCE: {relevance}
WINDOW: {window_start} to {window_end}

PARTICIPANTS:
{participant_list}

PLANNED EMAILS (return exactly {email_count}, in this order):
{slot_list}

Return a subject and the emails. Use reply_to_index to point at the planned parent."""

SINGLE_EMAIL_USER_PROMPT = """Write email {slot_number} of {email_count} in this thread.

STORY BEAT: {beat_name}
TOPIC: {topic}
SUBJECT: {subject}
NARRATIVE PHASE: {phase}
INTENT: {intent}
SENT: {sent_date}

FROM: {sender}
TO: {to_list}
CC: {cc_list}

SENDER SIGNATURE:
{signature}

{parent_section}{attachment_section}Write the email body now."""

EMAIL_REPAIR_USER_PROMPT = """The previous draft for this email was rejected.

PROBLEMS:
{problems}

PREVIOUS DRAFT:
{previous_body}

{original_prompt}"""

def build_participant_list(participants: Sequence[Character]) -> str:
    """Render one participant per line with role and organization."""
    lines = []
    for c in participants:
        role = ", ".join(part for part in (c.role, c.department) if part) or "Staff"
        org = f" @ {c.organization}" if c.organization else ""
        lines.append(f"- {c.full_name} ({c.email})\n  Role: {role}{org}")
    return "\n".join(lines)


def _attachment_labels(slot: ThreadEmailSlotPlan) -> list[str]:
    labels = []
    if slot.attachments.has_document:
        kind = slot.attachments.document_type.value if slot.attachments.document_type else "document"
        labels.append(f"{kind} attachment")
    if slot.attachments.has_image:
        labels.append("inline image" if slot.attachments.is_image_inline else "image attachment")
    if slot.attachments.has_voicemail:
        labels.append("voicemail")
    return labels


def build_slot_list(plan: ThreadStructurePlan) -> str:
    """Describe every planned slot on one line."""
    index_by_id = {s.email_id: s.index for s in plan.slots}
    lines = []
    for slot in plan.slots:
        parent = index_by_id.get(slot.parent_email_id) if slot.parent_email_id else None
        parts = [
            f"{slot.index}: {slot.intent.value}",
            f"sent {slot.sent_date:%Y-%m-%dT%H:%M}",
            f"phase {slot.narrative_phase.split(' - ')[0]}",
        ]
        if parent is not None:
            parts.append(f"parent {parent}")
        labels = _attachment_labels(slot)
        if labels:
            parts.append("with " + ", ".join(labels))
        lines.append("- " + "; ".join(parts))
    return "\n".join(lines)


def build_parent_section(slot: ThreadEmailSlotPlan, parent: EmailMessage | None) -> str:
    if parent is None:
        return ""
    verb = "FORWARDING" if slot.intent == ThreadEmailIntent.FORWARD else "REPLYING TO"
    return f"{verb}:\nSubject: {parent.subject}\n{parent.body_plain}\n\n"


def build_attachment_section(
    document: str | None, image: str | None, voicemail: str | None
) -> str:
    lines = []
    if document:
        lines.append(f"- Mention the attached document: {document}")
    if image:
        lines.append(f"- Mention the image: {image}")
    if voicemail:
        lines.append(f"- Mention the voicemail you left: {voicemail}")
    if not lines:
        return ""
    return "REQUIRED MENTIONS:\n" + "\n".join(lines) + "\n\n"
