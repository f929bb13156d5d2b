# lab_assistant/prompts/prompt_builder.py

from typing import Dict, List, Sequence

from lab_assistant.config import CONTEXT_EXCERPT_CHARS, CONTEXT_MAX_CHARS, HISTORY_TURNS
from lab_assistant.knowledge.scoring import ScoredDocument
from lab_assistant.knowledge.text_utils import build_excerpt
from lab_assistant.prompts.system_prompts import LAB_ASSISTANT_SYSTEM_PROMPT


def format_document_header(doc) -> str:
    """
    【title】(著者: author, year), omitting the parts that are unknown.
    """

    details = []

    if doc.author:
        details.append(f"著者: {doc.author}")

    if doc.year:
        details.append(str(doc.year))

    suffix = f"({', '.join(details)})" if details else ""

    return f"【{doc.title}】{suffix}"


def build_context(
    results: Sequence[ScoredDocument],
    excerpt_chars: int = CONTEXT_EXCERPT_CHARS,
    max_chars: int = CONTEXT_MAX_CHARS,
) -> str:
    """
    Context block for the system prompt, capped at max_chars.

    Documents are added in rank order; the first one that does not fit
    is truncated and the rest are dropped.
    """

    blocks: List[str] = []
    used = 0

    for result in results:

        doc = result.document

        block = f"{format_document_header(doc)}\n{build_excerpt(doc.content or '', limit=excerpt_chars)}"

        remaining = max_chars - used

        if remaining <= 0:
            break

        if len(block) > remaining:
            blocks.append(block[:remaining])
            break

        blocks.append(block)
        used += len(block) + 2

    return "\n\n".join(blocks)


def build_system_prompt(context: str) -> str:
    return LAB_ASSISTANT_SYSTEM_PROMPT.format(context=context)


def trim_history(
    history: Sequence,
    turns: int = HISTORY_TURNS,
) -> List[Dict[str, str]]:
    """
    Last `turns` messages as plain role/content dicts.
    """

    if turns <= 0:
        return []

    out = []

    for msg in list(history)[-turns:]:

        if isinstance(msg, dict):
            out.append({"role": msg["role"], "content": msg["content"]})
        else:
            out.append({"role": msg.role, "content": msg.content})

    return out
