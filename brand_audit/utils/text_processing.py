"""Text processing utilities for page content analysis."""

# Interrogative openers that mark a heading as a question, Italian then English.
QUESTION_PREFIXES_IT = (
    "come", "cosa", "perché", "perche", "chi", "dove",
    "quando", "quale", "quali", "quanto", "quanti",
)
QUESTION_PREFIXES_EN = (
    "how", "what", "why", "who", "where", "when", "which",
    "is", "are", "can", "does", "do", "should",
)
QUESTION_PREFIXES = QUESTION_PREFIXES_IT + QUESTION_PREFIXES_EN


def count_words(text: str) -> int:
    """Count whitespace-separated tokens in text.

    Args:
        text: Input text.

    Returns:
        Word count.
    """
    return len(text.split())


def is_question_heading(text: str) -> bool:
    """Return True when a heading reads as a question.

    A heading qualifies when it starts with an interrogative word followed by
    a space or an apostrophe (``"What's new"``), or ends with ``?``.

    Examples:
        >>> is_question_heading("How does LLMO work")
        True
        >>> is_question_heading("Perché scegliere noi")
        True
        >>> is_question_heading("Pricing")
        False
    """
    lower = text.strip().lower()
    if lower.endswith("?"):
        return True
    return any(
        lower.startswith(prefix + " ") or lower.startswith(prefix + "'")
        for prefix in QUESTION_PREFIXES
    )
