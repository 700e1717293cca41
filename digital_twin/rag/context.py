"""Context assembly: turn retrieved records into grounding text."""

from digital_twin.rag.models import AssembledContext, SourceCitation
from digital_twin.retrieval.models import RetrievedRecord


def assemble_context(records: list[RetrievedRecord]) -> AssembledContext:
    """Render records with content as grounding text.

    Records whose content is empty or whitespace are skipped and are not
    cited.

    Args:
        records: Normalized records in relevance order.

    Returns:
        Assembled context; `is_empty` when nothing contributed text.
    """
    blocks: list[str] = []
    sources: list[SourceCitation] = []
    contents: list[str] = []

    for record in records:
        content = record.content.strip()
        if not content:
            continue
        blocks.append(f"{record.title}: {content}")
        sources.append(SourceCitation(title=record.title, score=record.score))
        contents.append(content)

    return AssembledContext(text="\n\n".join(blocks), sources=sources, contents=contents)


def degraded_answer(context: AssembledContext, prefix: str, budget: int) -> str:
    """Build a terse answer straight from record contents.

    Args:
        context: Assembled context with at least one source.
        prefix: Lead-in text from the persona.
        budget: Maximum characters of raw content to include.

    Returns:
        The degraded answer, or "" when there is no content.
    """
    body = "\n\n".join(context.contents)
    if not body:
        return ""
    if len(body) > budget:
        body = body[:budget].rstrip() + "..."
    return prefix + body
