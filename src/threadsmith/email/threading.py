"""Threading headers, subject prefixes and quoted content for generated email.

Provides helpers for:
- Deterministic ``Message-ID`` values derived from the thread and sequence
- ``In-Reply-To`` / ``References`` chains that follow the planned parent
- ``RE:`` / ``FW:`` subject prefixes
- Quoted reply and forwarded-message blocks appended to bodies
"""

from __future__ import annotations

import re
from datetime import datetime

from threadsmith.domain.models import Character
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.seeding.derive import derive_token

_PREFIX_PATTERN = re.compile(r"^\s*(?:re|fw|fwd)\s*:\s*", re.IGNORECASE)
_REPLY_PREFIX = re.compile(r"^\s*re\s*:", re.IGNORECASE)
_FORWARD_PREFIX = re.compile(r"^\s*(?:fw|fwd)\s*:", re.IGNORECASE)

FORWARD_SEPARATOR = "---------- Forwarded message ---------"


def build_message_id(thread: EmailThread, sequence: int, domain: str) -> str:
    """Return a deterministic RFC 2822 ``Message-ID`` for a thread slot."""
    token = derive_token("message-id", thread.id, sequence)
    return f"<{token}@{domain}>"


def setup_threading(thread: EmailThread, domain: str) -> None:
    """Assign ``Message-ID``, ``In-Reply-To`` and ``References`` to every message.

    Messages are processed in sequence order.  ``In-Reply-To`` points at the
    planned parent; ``References`` is the parent's references followed by
    the parent's own id, so side branches only reference their own
    ancestry.  Roots have neither header.

    Args:
        thread: The thread whose messages should be stamped.
        domain: Domain part used for generated ids.
    """
    ordered = sorted(thread.messages, key=lambda m: m.sequence_in_thread)
    for message in ordered:
        message.message_id_header = build_message_id(thread, message.sequence_in_thread, domain)

    by_id = {m.id: m for m in ordered}
    for message in ordered:
        parent = by_id.get(message.parent_email_id) if message.parent_email_id else None
        if parent is None:
            message.in_reply_to = ""
            message.references = []
            continue
        message.in_reply_to = parent.message_id_header
        message.references = [*parent.references, parent.message_id_header]


def add_reply_prefix(subject: str) -> str:
    """Prefix *subject* with ``RE: `` unless it already has a reply prefix."""
    if _REPLY_PREFIX.match(subject):
        return subject
    return f"RE: {subject}"


def add_forward_prefix(subject: str) -> str:
    """Prefix *subject* with ``FW: `` unless it already has a forward prefix."""
    if _FORWARD_PREFIX.match(subject):
        return subject
    return f"FW: {subject}"


def get_clean_subject(subject: str) -> str:
    """Strip any number of leading ``RE:``/``FW:``/``Fwd:`` prefixes."""
    cleaned = subject
    while True:
        stripped = _PREFIX_PATTERN.sub("", cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped
    return cleaned.strip()


def format_email_date(sent: datetime) -> str:
    """Format like ``Tue, Mar 5, 2024 at 9:07 AM``."""
    hour = sent.hour % 12 or 12
    meridiem = "AM" if sent.hour < 12 else "PM"
    return f"{sent:%a}, {sent:%b} {sent.day}, {sent.year} at {hour}:{sent.minute:02d} {meridiem}"


def quote_text(text: str) -> str:
    """Prefix every line of *text* with ``> ``."""
    if not text:
        return "> "
    return "\n".join(f"> {line}" for line in text.replace("\r\n", "\n").split("\n"))


def _address(character: Character | None) -> str:
    if character is None:
        return "Unknown"
    return character.display_name


def format_quoted_reply(original: EmailMessage, sender: Character | None) -> str:
    """Build the ``On ... wrote:`` block appended to a reply body."""
    when = format_email_date(original.sent_date) if original.sent_date else "an earlier date"
    header = f"On {when}, {_address(sender)} wrote:"
    return f"\n\n{header}\n{quote_text(original.body_plain)}"


def format_forwarded_content(
    original: EmailMessage,
    sender: Character | None,
    to: list[Character],
    cc: list[Character],
) -> str:
    """Build the forwarded-message block appended to a forward body."""
    to_list = "; ".join(c.display_name for c in to)
    lines = [
        "",
        "",
        FORWARD_SEPARATOR,
        f"From: {_address(sender)}",
        f"Date: {format_email_date(original.sent_date) if original.sent_date else ''}",
        f"Subject: {original.subject}",
        f"To: {to_list}",
    ]
    if cc:
        lines.append(f"Cc: {'; '.join(c.display_name for c in cc)}")
    lines.extend(["", ""])
    return "\n".join(lines) + original.body_plain
