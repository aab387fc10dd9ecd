"""Email thread aggregates, placeholders, threading headers and graph view."""

from threadsmith.email.graph import ThreadGraph, chronological_key
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.email.placeholders import ensure_placeholder_messages, reset_thread_for_retry
from threadsmith.email.threading import (
    add_forward_prefix,
    add_reply_prefix,
    build_message_id,
    format_forwarded_content,
    format_quoted_reply,
    get_clean_subject,
    quote_text,
    setup_threading,
)

__all__ = [
    "EmailMessage",
    "EmailThread",
    "ThreadGraph",
    "add_forward_prefix",
    "add_reply_prefix",
    "build_message_id",
    "chronological_key",
    "ensure_placeholder_messages",
    "format_forwarded_content",
    "format_quoted_reply",
    "get_clean_subject",
    "quote_text",
    "reset_thread_for_retry",
    "setup_threading",
]
