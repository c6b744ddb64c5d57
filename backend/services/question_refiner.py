"""Next-question requester: adapts the next template to the conversation so far."""
import json
import logging
from typing import Optional

from models.suggestion import NextQuestionResult
from services.llm_client import LLMClient, LLMClientError, JSON_MIME_TYPE, strip_code_fence

logger = logging.getLogger(__name__)


class QuestionRefiner:
    """Asks the model for one context-aware question, falling back to the template."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    def request_next_question(
        self,
        name: str,
        base_question: str,
        previous_question: str,
        previous_answer: str,
        refinement_prompt: str,
        first_question: Optional[str] = None,
        first_answer: Optional[str] = None
    ) -> NextQuestionResult:
        """
        Get the next question, adapted to what the user just said.

        Makes exactly one request. Any failure returns the base template
        unchanged together with a warning, so the conversation can continue.

        Args:
            name: Subject's display name
            base_question: Next template with the name already substituted
            previous_question: Question that was just answered
            previous_answer: The answer just given
            refinement_prompt: Guideline for how to rewrite the question
            first_question: First question text (only passed from the third question on)
            first_answer: Answer to the first question (same condition)

        Returns:
            NextQuestionResult with the refined text or the fallback template
        """
        prompt = self.build_prompt(
            name=name,
            base_question=base_question,
            previous_question=previous_question,
            previous_answer=previous_answer,
            refinement_prompt=refinement_prompt,
            first_question=first_question,
            first_answer=first_answer
        )

        try:
            response = self.llm_client.generate(prompt, response_mime_type=JSON_MIME_TYPE)
        except LLMClientError as e:
            return self._fallback(base_question, e.error.message)

        try:
            refined = self.parse_refined_question(response.text)
        except ValueError as e:
            return self._fallback(base_question, str(e))

        logger.info(f"Refined next question for {name} in {response.latency_ms}ms")
        return NextQuestionResult(text=refined, refined=True)

    @staticmethod
    def parse_refined_question(raw_text: str) -> str:
        """
        Extract `refinedQuestion` from a JSON reply, tolerating a Markdown code fence.

        Raises:
            ValueError: If the reply is not JSON or the field is missing or blank
        """
        cleaned = strip_code_fence(raw_text)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse next question: {e.msg}") from e

        question = parsed.get("refinedQuestion") if isinstance(parsed, dict) else None
        if not isinstance(question, str) or not question.strip():
            raise ValueError("Response is not a valid next question object")
        return question.strip()

    @staticmethod
    def build_prompt(
        name: str,
        base_question: str,
        previous_question: str,
        previous_answer: str,
        refinement_prompt: str,
        first_question: Optional[str] = None,
        first_answer: Optional[str] = None
    ) -> str:
        """Build the refinement prompt; first Q/A context only when both are given."""
        first_interaction_section = ""
        if first_question and first_answer:
            first_interaction_section = f"""
[Initial Conversation Context]
First question: {first_question}
First answer: {first_answer}
"""

        prompt = f"""You are an AI conversation designer tasked with making a user's chat about their friend ({name}) more natural and meaningful.

User's friend's name: "{name}"
{first_interaction_section}
[Previous turn in the conversation]
Previous question about {name}: {previous_question}
User's answer regarding {name}: {previous_answer}

[Base intent for the next question]:
{base_question}

[Guideline for refining the question]:
{refinement_prompt}

Considering all the information above, generate ONE new question based on the "Base intent for the next question".
The new question must follow the "Guideline for refining the question" and should naturally continue the conversation from the previous turn.
It must include the friend's name, "{name}".
The refined question must be in English.

Respond ONLY with JSON in the following format, with no other text:
{{ "refinedQuestion": "The final refined question" }}"""

        return prompt

    @staticmethod
    def _fallback(base_question: str, reason: str) -> NextQuestionResult:
        logger.warning(f"Next question refinement failed, using base template: {reason}")
        return NextQuestionResult(
            text=base_question,
            refined=False,
            warning=f"Could not generate the next question, showing the default one. ({reason})"
        )
