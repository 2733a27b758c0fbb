"""Conversation data models."""
from dataclasses import dataclass

USER = "user"
ASSISTANT = "assistant"


@dataclass
class Turn:
    """Represents a single prior message supplied by the caller."""
    role: str  # "user" or "assistant"
    content: str
