"""Applies final-review edits and renders the finished Markdown document."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from src.agents.document_generation.models import ProposedEdit, Reference, RenderedDocument, SectionContent

logger = logging.getLogger(__name__)


def apply_section_edits(section: SectionContent, edits: Sequence[ProposedEdit]) -> tuple[str, int, int]:
    """Apply every edit addressed to ``section`` by heading.

    Each edit replaces the first literal occurrence of ``original_text`` with
    ``new_text``, in the order the edits are given. An edit whose
    ``original_text`` is not in the body leaves the body untouched.

    Returns:
        Tuple of (body, applied_count, skipped_count).
    """
    body = section.content
    applied = 0
    skipped = 0
    for edit in edits:
        if edit.section_heading != section.heading:
            continue
        if edit.original_text not in body:
            skipped += 1
            logger.info("Edit skipped, text not found in %r: %r", section.heading, edit.original_text[:80])
            continue
        body = body.replace(edit.original_text, edit.new_text, 1)
        applied += 1
    return body, applied, skipped


class DocumentRenderer:
    """Deterministic Markdown renderer; sections are always emitted in the order given."""

    def render(
        self,
        *,
        title: str,
        sections: Sequence[SectionContent],
        proposed_edits: Sequence[ProposedEdit],
        global_feedback: Sequence[str],
    ) -> RenderedDocument:
        parts = [f"# {title}\n\n"]
        applied_total = 0
        skipped_total = 0
        for section in sections:
            body, applied, skipped = apply_section_edits(section, proposed_edits)
            applied_total += applied
            skipped_total += skipped
            parts.append(f"## {section.heading}\n\n{body}\n\n")

        known_headings = {section.heading for section in sections}
        unmatched = [edit for edit in proposed_edits if edit.section_heading not in known_headings]
        for edit in unmatched:
            logger.info("Edit skipped, no section titled %r", edit.section_heading)
        skipped_total += len(unmatched)

        if global_feedback:
            parts.append("## Editorial Notes\n\n")
            parts.extend(f"- {note}\n" for note in global_feedback)
            parts.append("\n")

        references: list[Reference] = [ref for section in sections for ref in section.references or []]
        if references:
            parts.append("## References\n\n")
            parts.extend(f"- [{ref.title}]({ref.url})\n" for ref in references)
            parts.append("\n")

        logger.info("Rendered document: sections=%d edits_applied=%d edits_skipped=%d", len(sections), applied_total, skipped_total)
        return RenderedDocument(markdown="".join(parts), applied_edits=applied_total, skipped_edits=skipped_total)
