"""
Prompt assembly for grounded policy answers.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

REFUSAL_SENTENCE = "I couldn't find information about that in the uploaded documents."

SYSTEM_PROMPT_TEMPLATE = """You are Policy Oracle, an AI assistant that answers questions ONLY based on provided policy documents. 

RULES:
1. Answer ONLY from the provided document context below. If the context doesn't contain relevant information, say "{refusal}"
2. Always cite your sources with document name and page number.
3. Be precise and professional. This is used for compliance and governance.
4. Format your answers clearly with markdown when helpful.

DOCUMENT CONTEXT:
{context}"""


def build_system_prompt(context: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(refusal=REFUSAL_SENTENCE, context=context)


def build_messages(context: str, history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """
    Prepend the system instruction to the full conversation history.

    Each history item must carry `role` and `content`; other keys are dropped.
    """
    return [{"role": "system", "content": build_system_prompt(context)}] + [
        {"role": m["role"], "content": m["content"]} for m in history
    ]
