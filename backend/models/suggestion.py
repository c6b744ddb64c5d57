"""Suggestion and completion result models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SuggestionResult:
    """Conversation starters and topics parsed from a model reply."""
    starters: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    raw_text: str = ""

    @property
    def has_items(self) -> bool:
        return bool(self.starters or self.topics)


@dataclass
class SummaryResult:
    """Short summary of the answers given in a session."""
    summary: str
    ok: bool = True


@dataclass
class NextQuestionResult:
    """
    Outcome of asking the model for the next question.

    Attributes:
        text: Question to show next
        refined: False when the plain template was used as a fallback
        warning: Non-fatal message for the caller when the fallback was used
    """
    text: str
    refined: bool
    warning: Optional[str] = None


@dataclass
class CompletionResult:
    """Aggregate result of the completion step."""
    ok: bool
    starters: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    raw_text: str = ""
    summary: Optional[str] = None
    reason: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def failure(cls, reason: str, code: str) -> "CompletionResult":
        return cls(ok=False, reason=reason, code=code)
