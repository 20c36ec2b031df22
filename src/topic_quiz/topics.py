"""Built-in topic catalog offered on the topic screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = ["PREDEFINED_TOPICS", "Topic", "resolve_topic"]


@dataclass(frozen=True)
class Topic:
    id: str
    name: str
    icon: str


PREDEFINED_TOPICS: tuple[Topic, ...] = (
    Topic("javascript", "JavaScript", "🟨"),
    Topic("react", "React", "⚛️"),
    Topic("python", "Python", "🐍"),
    Topic("typescript", "TypeScript", "🔷"),
    Topic("css", "CSS", "🎨"),
    Topic("data-structures", "Data Structures", "🌳"),
)


def resolve_topic(raw: str) -> Optional[str]:
    """Map user input to a topic name.

    A 1-based catalog number or a catalog id selects the predefined topic;
    any other non-blank text is taken as a custom topic verbatim.
    """

    text = raw.strip()
    if not text:
        return None
    if text.isdigit():
        position = int(text)
        if 1 <= position <= len(PREDEFINED_TOPICS):
            return PREDEFINED_TOPICS[position - 1].name
        return None
    lowered = text.lower()
    for topic in PREDEFINED_TOPICS:
        if lowered == topic.id:
            return topic.name
    return text
