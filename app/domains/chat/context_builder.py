"""Prompt context assembled from attached documents and notes."""

from collections.abc import Iterable

from models import Document, DocumentType, Note, ProcessingStatus

DOCUMENT_CONTENT_LIMIT = 2000
NOTE_CONTENT_LIMIT = 1500
ELLIPSIS = "..."


def truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def _document_type_label(doc_type: str | None) -> str | None:
    if doc_type == DocumentType.IMAGE.value:
        return "Image"
    if doc_type == DocumentType.TEXT.value:
        return "Text Document"
    if doc_type:
        return doc_type.capitalize()
    return None


def _document_block(doc: Document, limit: int) -> str:
    block = f"Title: {doc.title}\n"
    block += f"File: {doc.file_name}\n"

    label = _document_type_label(doc.type)
    if label:
        block += f"Type: {label}\n"

    is_image = doc.type == DocumentType.IMAGE.value
    if doc.content_extracted:
        content = truncate(doc.content_extracted, limit)
        if is_image:
            block += f"Content (Image Description): {content}\n"
        else:
            block += f"Content: {content}\n"
    elif is_image and doc.processing_status != ProcessingStatus.COMPLETED.value:
        status = doc.processing_status or ProcessingStatus.PENDING.value
        block += f"Content: Image processing {status}. No extracted text yet.\n"
    elif is_image:
        block += "Content: Image analysis completed, but no text or detailed description was extracted.\n"
    else:
        block += "Content: No content extracted or available.\n"

    return block + "\n"


def _note_block(note: Note, limit: int) -> str:
    block = f"Title: {note.title}\n"
    block += f"Category: {note.category}\n"
    if note.content:
        block += f"Content: {truncate(note.content, limit)}\n"
    if note.ai_summary:
        block += f"AI Summary: {note.ai_summary}\n"
    tags = note.tags or []
    if tags:
        block += f"Tags: {', '.join(tags)}\n"
    return block + "\n"


def build_context(
    document_ids: Iterable[str],
    note_ids: Iterable[str],
    documents: Iterable[Document],
    notes: Iterable[Note],
    document_limit: int = DOCUMENT_CONTENT_LIMIT,
    note_limit: int = NOTE_CONTENT_LIMIT,
) -> str:
    """Render the selected documents and notes as one text block.

    Documents and notes keep the order of the collections they come from.
    Ids without a matching item are skipped. Returns an empty string when
    nothing matches.
    """
    wanted_docs = {str(i) for i in document_ids or []}
    wanted_notes = {str(i) for i in note_ids or []}

    selected_docs = [doc for doc in documents or [] if str(doc.id) in wanted_docs]
    selected_notes = [note for note in notes or [] if str(note.id) in wanted_notes]

    context = ""
    if selected_docs:
        context += "DOCUMENTS:\n"
        for doc in selected_docs:
            context += _document_block(doc, document_limit)

    if selected_notes:
        context += "NOTES:\n"
        for note in selected_notes:
            context += _note_block(note, note_limit)

    return context
