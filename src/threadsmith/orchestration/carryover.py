"""Deferral of planned attachments from failed emails to later successful ones.

A failed slot never drops its planned attachments.  Its document type, image
or voicemail is queued here and the next slot that is generated successfully
takes one of each pending kind on top of whatever it already plans to carry.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from threadsmith.domain.types import AttachmentType
from threadsmith.planning.models import ThreadEmailSlotPlan


@dataclass(frozen=True)
class AttachmentRequirement:
    """What one generation attempt must mention, and where each item came from."""

    requires_document: bool = False
    document_type: AttachmentType | None = None
    document_from_pending: bool = False
    requires_image: bool = False
    image_from_pending: bool = False
    is_image_inline: bool = False
    requires_voicemail: bool = False
    voicemail_from_pending: bool = False
    is_final_slot: bool = False

    @property
    def count(self) -> int:
        return int(self.requires_document) + int(self.requires_image) + int(self.requires_voicemail)


class AttachmentCarryover:
    """Pending attachments waiting for a successfully generated slot."""

    def __init__(self) -> None:
        self.pending_documents: deque[AttachmentType] = deque()
        self.pending_images = 0
        self.pending_voicemails = 0

    def __repr__(self) -> str:
        return (
            f"AttachmentCarryover(documents={list(self.pending_documents)}, "
            f"images={self.pending_images}, voicemails={self.pending_voicemails})"
        )

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_documents) or self.pending_images > 0 or self.pending_voicemails > 0

    def update(
        self,
        slot: ThreadEmailSlotPlan,
        requirement: AttachmentRequirement,
        success: bool,
    ) -> None:
        """Queue a failed slot's own attachments or consume the pending ones it carried.

        On failure only attachments the slot planned itself are queued;
        anything it was carrying from the queue simply stays queued.  On
        success one pending item of each carried kind is consumed.
        """
        if requirement.requires_document:
            if not success:
                if slot.attachments.has_document and slot.attachments.document_type is not None:
                    self.pending_documents.append(slot.attachments.document_type)
            elif requirement.document_from_pending and self.pending_documents:
                self.pending_documents.popleft()

        if requirement.requires_image:
            if not success:
                if not requirement.image_from_pending:
                    self.pending_images += 1
            elif requirement.image_from_pending and self.pending_images > 0:
                self.pending_images -= 1

        if requirement.requires_voicemail:
            if not success:
                if not requirement.voicemail_from_pending:
                    self.pending_voicemails += 1
            elif requirement.voicemail_from_pending and self.pending_voicemails > 0:
                self.pending_voicemails -= 1


def build_attachment_requirement(
    slot: ThreadEmailSlotPlan,
    carryover: AttachmentCarryover,
    is_final_slot: bool,
) -> AttachmentRequirement:
    """Combine the slot's own attachment plan with one pending item of each kind."""
    planned = slot.attachments

    requires_document = planned.has_document
    document_type = planned.document_type
    document_from_pending = False
    if not requires_document and carryover.pending_documents:
        requires_document = True
        document_from_pending = True
        document_type = carryover.pending_documents[0]

    requires_image = planned.has_image
    image_from_pending = False
    is_inline = planned.is_image_inline
    if not requires_image and carryover.pending_images > 0:
        requires_image = True
        image_from_pending = True
        is_inline = True

    requires_voicemail = planned.has_voicemail
    voicemail_from_pending = False
    if not requires_voicemail and carryover.pending_voicemails > 0:
        requires_voicemail = True
        voicemail_from_pending = True

    return AttachmentRequirement(
        requires_document=requires_document,
        document_type=document_type,
        document_from_pending=document_from_pending,
        requires_image=requires_image,
        image_from_pending=image_from_pending,
        is_image_inline=is_inline,
        requires_voicemail=requires_voicemail,
        voicemail_from_pending=voicemail_from_pending,
        is_final_slot=is_final_slot,
    )
