"""Conversation manager holding the active reconnect conversations."""
import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from config import SESSION_TTL_SECONDS
from services.completion_requester import CompletionRequester
from services.conversation_flow import ConversationFlow
from services.llm_client import LLMClient
from services.question_refiner import QuestionRefiner
from services.question_sequencer import QuestionPack, QuestionSequencer

logger = logging.getLogger(__name__)


class ConversationNotFoundError(KeyError):
    """No active conversation with the given id."""


class ConversationManager:
    """Creates, looks up and discards in-memory conversation flows."""

    def __init__(
        self,
        llm_client: LLMClient,
        question_pack: Optional[QuestionPack] = None,
        session_ttl_seconds: int = SESSION_TTL_SECONDS
    ):
        """
        Initialize the conversation manager.

        Args:
            llm_client: Client shared by every conversation
            question_pack: Question templates; defaults to the built-in pack
            session_ttl_seconds: Age after which a conversation is dropped when
                a new one is created; 0 or less keeps conversations forever
        """
        self.llm_client = llm_client
        self.question_pack = question_pack or QuestionPack()
        self.session_ttl_seconds = session_ttl_seconds
        self._flows: Dict[str, ConversationFlow] = {}
        self._lock = threading.Lock()
        logger.info(
            f"ConversationManager initialized with {self.question_pack.total_questions} questions, "
            f"session TTL {session_ttl_seconds}s"
        )

    def _new_flow(self) -> ConversationFlow:
        return ConversationFlow(
            sequencer=QuestionSequencer(self.question_pack),
            refiner=QuestionRefiner(self.llm_client),
            completion_requester=CompletionRequester(self.llm_client)
        )

    def get_or_create_conversation(
        self,
        name: str,
        conversation_id: Optional[str] = None
    ) -> Tuple[ConversationFlow, str]:
        """
        Get an existing conversation or create a new one.

        For an existing id the flow is (re)started with `name`: a different
        name discards the previous turns, the same name keeps them. Creating
        a conversation first drops the ones older than the session TTL.

        Args:
            name: Subject's display name
            conversation_id: Optional existing conversation ID

        Returns:
            Tuple of the flow and its current question
        """
        if not name or not name.strip():
            raise ValueError("Subject name cannot be empty")

        with self._lock:
            flow = self._flows.get(conversation_id) if conversation_id else None
            if conversation_id and flow is None:
                logger.warning(f"Conversation {conversation_id} not found, creating new one")
            if flow is None:
                self._prune_expired()
                conversation_id = self._generate_conversation_id()
                flow = self._new_flow()
                self._flows[conversation_id] = flow

        question = flow.start(name, session_id=conversation_id)
        return flow, question

    def get_conversation(self, conversation_id: str) -> ConversationFlow:
        with self._lock:
            flow = self._flows.get(conversation_id)
        if flow is None:
            raise ConversationNotFoundError(conversation_id)
        return flow

    def discard(self, conversation_id: str) -> None:
        with self._lock:
            if self._flows.pop(conversation_id, None) is None:
                raise ConversationNotFoundError(conversation_id)
        logger.info(f"Discarded conversation {conversation_id}")

    def __len__(self) -> int:
        return len(self._flows)

    def _prune_expired(self) -> int:
        """Drop conversations older than the TTL. Caller holds `_lock`."""
        if self.session_ttl_seconds <= 0:
            return 0

        cutoff = datetime.now() - timedelta(seconds=self.session_ttl_seconds)
        expired = [
            conversation_id
            for conversation_id, flow in self._flows.items()
            if flow.session is not None and flow.session.created_at < cutoff
        ]
        for conversation_id in expired:
            del self._flows[conversation_id]

        if expired:
            logger.info(f"Dropped {len(expired)} expired conversations")
        return len(expired)

    def _generate_conversation_id(self) -> str:
        """
        Generate a unique conversation ID.

        Returns:
            Unique conversation ID string
        """
        return f"conv_{uuid.uuid4().hex[:12]}"
