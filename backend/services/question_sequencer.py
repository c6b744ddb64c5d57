"""
Question sequencing for reconnect conversations.

Holds the ordered question templates, substitutes the subject's name into
them, and keeps the alternating question/answer log of a session.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from models.conversation import ConversationSession, Turn, TurnKind

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER = "{name}"

DEFAULT_FIRST_QUESTION = "When did you first get to know {name}?"

DEFAULT_QUESTION_TEMPLATES = (
    "How did you and {name} meet?",
    "What is your most memorable moment with {name}?",
    "What do you usually talk about with {name}?",
    "What would you like to do with {name} next time you meet?",
)

DEFAULT_REFINEMENT_PROMPT = (
    "Make the question warm and conversational. Refer to something concrete from the "
    "user's previous answer when it fits, keep it to a single sentence, and never ask "
    "more than one thing at a time."
)


def render_template(template: str, name: str) -> str:
    """Substitute every occurrence of the name placeholder."""
    return template.replace(NAME_PLACEHOLDER, name)


@dataclass(frozen=True)
class QuestionPack:
    """Fixed first question plus the remaining N-1 templates."""
    first_question: str = DEFAULT_FIRST_QUESTION
    templates: Tuple[str, ...] = DEFAULT_QUESTION_TEMPLATES
    refinement_prompt: str = DEFAULT_REFINEMENT_PROMPT

    @property
    def total_questions(self) -> int:
        return 1 + len(self.templates)

    def template(self, index: int) -> str:
        """Template for question `index` in [0, total_questions)."""
        if not 0 <= index < self.total_questions:
            raise IndexError(f"Question index {index} out of range (total {self.total_questions})")
        return self.first_question if index == 0 else self.templates[index - 1]


class QuestionSequencer:
    """Produces question text and advances the position of a session."""

    def __init__(self, pack: Optional[QuestionPack] = None):
        self.pack = pack or QuestionPack()

    @property
    def total_questions(self) -> int:
        return self.pack.total_questions

    def question_template(self, index: int, name: str) -> str:
        return render_template(self.pack.template(index), name)

    def start(self, session: ConversationSession) -> str:
        """
        Reset the session and ask the first question.

        Args:
            session: Session to reset; its subject name is substituted

        Returns:
            The first question text
        """
        first = self.question_template(0, session.subject_name)
        session.current_index = 0
        session.turns = [Turn(kind=TurnKind.QUESTION, text=first, ordinal=0)]
        session.first_question_text = first
        session.first_answer_text = ""
        session.result = None
        session.last_warning = None
        logger.debug(f"Started question sequence for session {session.session_id}")
        return first

    def current_index(self, session: ConversationSession) -> int:
        return session.current_index

    def is_complete(self, session: ConversationSession) -> bool:
        return session.current_index >= self.total_questions

    def pending_question(self, session: ConversationSession) -> Optional[str]:
        """Question awaiting an answer, or None when the log ends with an answer."""
        if session.turns and session.turns[-1].kind == TurnKind.QUESTION:
            return session.turns[-1].text
        return None

    def next_base_template(self, session: ConversationSession) -> Optional[str]:
        """
        Rendered template for the question at the current index, once the
        previous one has been answered.

        Returns None when every question has been answered.
        """
        if self.is_complete(session):
            return None
        return self.question_template(session.current_index, session.subject_name)

    def record_answer(self, session: ConversationSession, text: str) -> Turn:
        """Append an answer to the pending question and advance the index."""
        if self.pending_question(session) is None:
            raise ValueError("No question is awaiting an answer")

        turn = Turn(kind=TurnKind.ANSWER, text=text, ordinal=session.current_index)
        session.turns.append(turn)
        if session.current_index == 0:
            session.first_answer_text = text
        session.current_index += 1
        return turn

    def record_question(self, session: ConversationSession, text: str) -> Turn:
        """Append the next question; only valid right after an answer."""
        if self.is_complete(session):
            raise ValueError("All questions have already been asked")
        if self.pending_question(session) is not None:
            raise ValueError("Previous question has not been answered yet")

        turn = Turn(kind=TurnKind.QUESTION, text=text, ordinal=session.current_index)
        session.turns.append(turn)
        return turn
