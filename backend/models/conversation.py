"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from models.suggestion import CompletionResult


class TurnKind(str, Enum):
    """Kind of a turn in the question/answer log."""
    QUESTION = "question"
    ANSWER = "answer"


class FlowState(str, Enum):
    """States of a single reconnect conversation."""
    AWAITING_ANSWER = "awaiting_answer"
    REQUESTING_NEXT_QUESTION = "requesting_next_question"
    ALL_ANSWERED = "all_answered"
    REQUESTING_SUGGESTIONS = "requesting_suggestions"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Turn:
    """Represents a single question or answer in a conversation."""
    kind: TurnKind
    text: str
    ordinal: int  # index of the question this turn belongs to

    @property
    def turn_id(self) -> str:
        """Positional id: q0, a0, q1, a1, ..."""
        prefix = "q" if self.kind == TurnKind.QUESTION else "a"
        return f"{prefix}{self.ordinal}"


@dataclass
class ConversationSession:
    """Mutable state of one conversation about a single subject."""
    session_id: str
    subject_name: str
    created_at: datetime
    current_index: int = 0
    turns: List[Turn] = field(default_factory=list)
    first_question_text: str = ""
    first_answer_text: str = ""
    state: FlowState = FlowState.AWAITING_ANSWER
    result: Optional[CompletionResult] = None
    last_warning: Optional[str] = None

    def answered_pairs(self) -> List[Tuple[str, str]]:
        """(question, answer) pairs in the order they were asked."""
        questions = {t.ordinal: t.text for t in self.turns if t.kind == TurnKind.QUESTION}
        return [
            (questions.get(t.ordinal, ""), t.text)
            for t in self.turns
            if t.kind == TurnKind.ANSWER
        ]


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed to callers."""
    session_id: str
    subject_name: str
    current_index: int
    total_questions: int
    state: FlowState
    turns: Tuple[Turn, ...]
    current_question: Optional[str]
    is_complete: bool
    last_warning: Optional[str] = None
    result: Optional[CompletionResult] = None
