"""Completion requester: summary plus conversation starters and topics."""
import json
import logging
from typing import List, Sequence, Tuple

from models.suggestion import CompletionResult, SummaryResult
from services.llm_client import LLMClient, LLMClientError, JSON_MIME_TYPE, strip_code_fence
from services.suggestion_parser import parse_suggestions

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK = "Could not retrieve conversation summary."
NO_RESPONSE_TEXT = "[No response]"
INCOMPLETE_ANSWERS = "INCOMPLETE_ANSWERS"
SUGGESTIONS_FAILED = "SUGGESTIONS_FAILED"


class CompletionRequester:
    """Turns a finished set of answers into a summary and suggestion lists."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    def complete(
        self,
        name: str,
        qa_pairs: Sequence[Tuple[str, str]],
        total_questions: int
    ) -> CompletionResult:
        """
        Request the summary, then the suggestions, for a finished conversation.

        Refuses without any request when the number of answers differs from
        `total_questions`. A failed summary is replaced by a fixed message; a
        failed suggestions request fails the whole result.

        Args:
            name: Subject's display name
            qa_pairs: (question, answer) pairs in order
            total_questions: Number of questions the session asks

        Returns:
            CompletionResult; ok=False carries `reason` and `code`
        """
        if len(qa_pairs) != total_questions:
            logger.warning(
                f"Completion refused for {name}: {len(qa_pairs)} of {total_questions} answers"
            )
            return CompletionResult.failure(
                f"Please answer all {total_questions} questions.",
                INCOMPLETE_ANSWERS
            )

        summary = self.request_summary(name, qa_pairs)

        answers = [answer for _, answer in qa_pairs]
        try:
            response = self.llm_client.generate(self.build_suggestions_prompt(name, answers))
            raw_text = response.text
        except LLMClientError as e:
            if e.error.code != "EMPTY_RESPONSE":
                logger.error(f"Suggestions request failed for {name}: {e.error.message}")
                return CompletionResult.failure(e.error.message, SUGGESTIONS_FAILED)
            raw_text = NO_RESPONSE_TEXT

        suggestions = parse_suggestions(raw_text)
        if not suggestions.has_items:
            logger.warning(f"No starters or topics parsed for {name}, keeping raw text")

        logger.info(
            f"Completion ready for {name}: {len(suggestions.starters)} starters, "
            f"{len(suggestions.topics)} topics"
        )
        return CompletionResult(
            ok=True,
            starters=suggestions.starters,
            topics=suggestions.topics,
            raw_text=suggestions.raw_text,
            summary=summary.summary
        )

    def request_summary(self, name: str, qa_pairs: Sequence[Tuple[str, str]]) -> SummaryResult:
        """Ask for a short summary; never raises for remote failures."""
        try:
            response = self.llm_client.generate(
                self.build_summary_prompt(name, qa_pairs),
                response_mime_type=JSON_MIME_TYPE
            )
            parsed = json.loads(strip_code_fence(response.text))
        except LLMClientError as e:
            logger.warning(f"Summary request failed for {name}: {e.error.message}")
            return SummaryResult(summary=SUMMARY_FALLBACK, ok=False)
        except json.JSONDecodeError as e:
            logger.warning(f"Summary response for {name} is not JSON: {e.msg}")
            return SummaryResult(summary=SUMMARY_FALLBACK, ok=False)

        summary = parsed.get("summary") if isinstance(parsed, dict) else None
        if not isinstance(summary, str) or not summary.strip():
            logger.warning(f"Summary response for {name} has no summary field")
            return SummaryResult(summary=SUMMARY_FALLBACK, ok=False)
        return SummaryResult(summary=summary.strip())

    @staticmethod
    def build_summary_prompt(name: str, qa_pairs: Sequence[Tuple[str, str]]) -> str:
        transcript = "\n".join(
            f"Q{i}: {question}\nA{i}: {answer}"
            for i, (question, answer) in enumerate(qa_pairs, 1)
        )
        return f"""Below is a conversation in which a user answered questions about their relationship with {name}.
Summarize in two or three sentences what the user remembers and feels about {name}.
Write in English and refer to {name} by name.

{transcript}

Respond ONLY with JSON in the following format, with no other text:
{{ "summary": "The summary" }}"""

    @staticmethod
    def build_suggestions_prompt(name: str, answers: List[str]) -> str:
        answer_lines = "\n".join(f"Q{i}: {answer}" for i, answer in enumerate(answers, 1))
        return f"""You are a conversation expert who helps people reconnect naturally.
Below are a user's answers about their relationship with an acquaintance ({name}).
Using these answers, suggest 3 to 5 opening lines (starters) the user could send to start a conversation with {name} without awkwardness,
and 3 to 5 topics (topics) that could keep the conversation going.

Output ONLY the two lists below.
- Every item must be a line starting with '-' (hyphen).
- Do not add explanations, numbering or any other text. Use the name {name} wherever a name is needed.

[Conversation Starters]
- (starter 1)
- (starter 2)
- (starter 3)

[Conversation Topics]
- (topic 1)
- (topic 2)
- (topic 3)

The user's answers:

{answer_lines}"""
