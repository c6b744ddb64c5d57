"""State machine for one reconnect conversation."""
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from models.conversation import ConversationSession, FlowState, SessionSnapshot
from models.suggestion import CompletionResult, NextQuestionResult
from services.completion_requester import CompletionRequester
from services.question_refiner import QuestionRefiner
from services.question_sequencer import QuestionSequencer

logger = logging.getLogger(__name__)


class ConversationStateError(Exception):
    """Operation not allowed in the session's current state."""


class ConversationBusyError(ConversationStateError):
    """A request for this session is still outstanding."""


class ConversationFlow:
    """
    Owns one ConversationSession and the only operations that mutate it.

    Sequence: start -> submit_answer (one per question) -> complete. While
    a remote request is outstanding every other call is rejected with
    ConversationBusyError.
    """

    def __init__(
        self,
        sequencer: QuestionSequencer,
        refiner: QuestionRefiner,
        completion_requester: CompletionRequester
    ):
        self.sequencer = sequencer
        self.refiner = refiner
        self.completion_requester = completion_requester
        self.session: Optional[ConversationSession] = None
        self._lock = threading.Lock()

    @property
    def total_questions(self) -> int:
        return self.sequencer.total_questions

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise ConversationBusyError("A request for this conversation is already in progress")
        try:
            yield
        finally:
            self._lock.release()

    def _require_session(self) -> ConversationSession:
        if self.session is None:
            raise ConversationStateError("Conversation has not been started")
        return self.session

    def start(self, subject_name: str, session_id: Optional[str] = None) -> str:
        """
        Start a conversation about `subject_name` and return the first question.

        A different name discards the current session entirely; the same
        name keeps it and returns the question currently awaiting an answer.
        """
        name = subject_name.strip() if subject_name else ""
        if not name:
            raise ValueError("Subject name cannot be empty")

        with self._exclusive():
            if self.session is not None and self.session.subject_name == name:
                return self.sequencer.pending_question(self.session) or ""

            self.session = ConversationSession(
                session_id=session_id or f"conv_{uuid.uuid4().hex[:12]}",
                subject_name=name,
                created_at=datetime.now()
            )
            first_question = self.sequencer.start(self.session)
            self.session.state = FlowState.AWAITING_ANSWER
            logger.info(f"Started conversation {self.session.session_id} about {name}")
            return first_question

    def submit_answer(self, answer: str) -> Optional[NextQuestionResult]:
        """
        Record an answer and produce the next question.

        Returns:
            The next question (refined or fallback), or None when the answer
            completed the sequence

        Raises:
            ValueError: If the answer is blank
            ConversationStateError: If no question is awaiting an answer
        """
        text = answer.strip() if answer else ""
        if not text:
            raise ValueError("Answer cannot be empty")

        with self._exclusive():
            session = self._require_session()
            if session.state != FlowState.AWAITING_ANSWER:
                raise ConversationStateError(
                    f"Cannot accept an answer while {session.state.value}"
                )

            previous_question = self.sequencer.pending_question(session) or ""
            answered_index = session.current_index
            self.sequencer.record_answer(session, text)

            base_question = self.sequencer.next_base_template(session)
            if base_question is None:
                session.state = FlowState.ALL_ANSWERED
                session.last_warning = None
                logger.info(f"All {self.total_questions} questions answered in {session.session_id}")
                return None

            # The first exchange is only sent along from the third question on.
            include_first = answered_index >= 1
            session.state = FlowState.REQUESTING_NEXT_QUESTION
            try:
                result = self.refiner.request_next_question(
                    name=session.subject_name,
                    base_question=base_question,
                    previous_question=previous_question,
                    previous_answer=text,
                    refinement_prompt=self.sequencer.pack.refinement_prompt,
                    first_question=session.first_question_text if include_first else None,
                    first_answer=session.first_answer_text if include_first else None
                )
            except Exception:
                # keep the log alternating so the session stays answerable
                self.sequencer.record_question(session, base_question)
                session.state = FlowState.AWAITING_ANSWER
                raise

            self.sequencer.record_question(session, result.text)
            session.last_warning = result.warning
            session.state = FlowState.AWAITING_ANSWER
            return result

    def complete(self) -> CompletionResult:
        """
        Request the summary and suggestions once every question is answered.

        An incomplete session is refused without any network call. A failed
        completion leaves the session in FAILED, from which it can be retried.
        """
        with self._exclusive():
            session = self._require_session()
            if session.state == FlowState.DONE and session.result is not None:
                return session.result

            qa_pairs = session.answered_pairs()
            if session.state not in (FlowState.ALL_ANSWERED, FlowState.FAILED):
                # Delegated so the refusal is reported the same way as a bad count.
                return self.completion_requester.complete(
                    session.subject_name, qa_pairs, self.total_questions
                )

            session.state = FlowState.REQUESTING_SUGGESTIONS
            result = CompletionResult.failure("Completion did not finish", "UNKNOWN_ERROR")
            try:
                result = self.completion_requester.complete(
                    session.subject_name, qa_pairs, self.total_questions
                )
            finally:
                session.state = FlowState.DONE if result.ok else FlowState.FAILED
                session.result = result
            if not result.ok:
                logger.warning(f"Completion failed for {session.session_id}: {result.reason}")
            return result

    def snapshot(self) -> SessionSnapshot:
        """Read-only view of the current session."""
        session = self._require_session()
        return SessionSnapshot(
            session_id=session.session_id,
            subject_name=session.subject_name,
            current_index=session.current_index,
            total_questions=self.total_questions,
            state=session.state,
            turns=tuple(session.turns),
            current_question=self.sequencer.pending_question(session),
            is_complete=self.sequencer.is_complete(session),
            last_warning=session.last_warning,
            result=session.result
        )
