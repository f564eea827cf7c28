"""Prompt templates for RAG system"""

from typing import Dict, List, Sequence


BASE_SYSTEM_PROMPT = """You are a helpful AI learning assistant. You provide clear, educational responses to help students learn."""


GROUNDED_ANSWER_PROMPT = """You are an AI teaching assistant. Answer the student's question based ONLY on the provided context from the course materials. If the context doesn't contain enough information to answer the question, say so clearly. Be helpful, accurate, and educational.

Context from course materials:
{context}"""


HYBRID_SELECTION_PROMPT = """Given the following question and document chunks, identify the {top_k} most relevant chunk numbers (0-{max_index}) that would help answer the question. Return ONLY a JSON array of numbers, nothing else.

Question: {question}

Chunks:
{chunks}

Return format: [0, 3, 5] (example)"""


NO_INFORMATION_ANSWER = (
    "I don't have enough information from the uploaded documents to answer your question. "
    "Please make sure the relevant materials have been uploaded and processed."
)

ANSWER_FAILED_MESSAGE = "Failed to generate answer. Please try again later."


SUGGESTED_QUESTIONS = [
    "What are the main topics covered in this course?",
    "Can you explain the key concepts?",
    "What should I know about this subject?",
    "How does this topic relate to other concepts?",
    "Can you provide examples or case studies?",
]


def build_system_message(context: str = "") -> str:
    """The grounding context when given, otherwise the assistant persona"""
    if context and context.strip():
        return context
    return BASE_SYSTEM_PROMPT


def format_context(chunks: Sequence) -> str:
    """
    Format ranked chunks into a grounding context, each labeled with its source

    Args:
        chunks: Retrieved chunks exposing ``document_title`` and ``text``

    Returns:
        Formatted context string
    """
    return "\n\n".join(
        f'From "{chunk.document_title}": {chunk.text}' for chunk in chunks
    )


def build_grounding_block(chunks: Sequence) -> str:
    """Build the grounded-answer instruction for the given chunks"""
    return GROUNDED_ANSWER_PROMPT.format(context=format_context(chunks))


def build_hybrid_selection_prompt(
    question: str,
    previews: List[str],
    top_k: int
) -> str:
    """
    Build the prompt asking a chat model to pick relevant chunks by index

    Args:
        question: Student question
        previews: Truncated chunk texts, in index order
        top_k: Number of chunk indices requested

    Returns:
        Prompt text
    """
    chunks_text = "\n\n".join(f"[{idx}] {preview}..." for idx, preview in enumerate(previews))
    return HYBRID_SELECTION_PROMPT.format(
        top_k=top_k,
        max_index=len(previews) - 1,
        question=question,
        chunks=chunks_text
    )


def build_user_messages(question: str) -> List[Dict[str, str]]:
    """The question as the sole user turn"""
    return [{"role": "user", "content": question}]
