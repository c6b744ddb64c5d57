"""Unit tests for CompletionRequester."""
import sys
sys.path.insert(0, 'backend')

import pytest
from unittest.mock import Mock
from services.llm_client import LLMResponse, LLMError, LLMClientError, JSON_MIME_TYPE
from services.completion_requester import (
    CompletionRequester,
    SUMMARY_FALLBACK,
    NO_RESPONSE_TEXT,
    INCOMPLETE_ANSWERS,
    SUGGESTIONS_FAILED,
)


SUGGESTIONS_TEXT = """[Conversation Starters]
- Hey Sam, remember the college library?
- Sam, coffee this week?

[Conversation Topics]
- College friends
- Weekend hiking
"""

QA_PAIRS = [
    ("When did you first get to know Sam?", "In college."),
    ("How did you and Sam meet?", "At the library."),
]


def _response(text):
    return LLMResponse(text=text, tokens_input=10, tokens_output=5, latency_ms=100, model_used="gemini-test")


def _error(code, message="failed"):
    return LLMClientError(LLMError(code=code, message=message, details={}))


class TestCompletionRequester:
    """Test suite for CompletionRequester."""

    def test_incomplete_answers_makes_no_calls(self):
        """Completion is refused locally when answers are missing."""
        llm = Mock()
        result = CompletionRequester(llm).complete("Sam", QA_PAIRS[:1], total_questions=2)

        assert result.ok is False
        assert result.code == INCOMPLETE_ANSWERS
        assert "2" in result.reason
        llm.generate.assert_not_called()

    def test_too_many_answers_is_refused(self):
        llm = Mock()
        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=1)

        assert result.code == INCOMPLETE_ANSWERS
        llm.generate.assert_not_called()

    def test_successful_completion(self):
        llm = Mock()
        llm.generate.side_effect = [
            _response('{"summary": "You met Sam in college."}'),
            _response(SUGGESTIONS_TEXT),
        ]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is True
        assert result.summary == "You met Sam in college."
        assert result.starters == ["Hey Sam, remember the college library?", "Sam, coffee this week?"]
        assert result.topics == ["College friends", "Weekend hiking"]
        assert result.raw_text == SUGGESTIONS_TEXT
        assert llm.generate.call_count == 2

    def test_summary_requested_as_json_and_suggestions_as_text(self):
        llm = Mock()
        llm.generate.side_effect = [_response('{"summary": "s"}'), _response(SUGGESTIONS_TEXT)]

        CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        summary_call, suggestions_call = llm.generate.call_args_list
        assert summary_call.kwargs["response_mime_type"] == JSON_MIME_TYPE
        assert "response_mime_type" not in suggestions_call.kwargs
        assert "Q1: In college." in suggestions_call.args[0]
        assert "Q2: At the library." in suggestions_call.args[0]

    def test_summary_failure_is_not_fatal(self):
        llm = Mock()
        llm.generate.side_effect = [_error("TIMEOUT_ERROR"), _response(SUGGESTIONS_TEXT)]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is True
        assert result.summary == SUMMARY_FALLBACK
        assert result.starters

    def test_code_fenced_summary_is_accepted(self):
        llm = Mock()
        llm.generate.side_effect = [
            _response('```json\n{"summary": "You met Sam in college."}\n```'),
            _response(SUGGESTIONS_TEXT),
        ]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.summary == "You met Sam in college."

    @pytest.mark.parametrize("reply", ["not json", '{"other": 1}', '{"summary": ""}', "[]"])
    def test_malformed_summary_uses_fallback(self, reply):
        llm = Mock()
        llm.generate.side_effect = [_response(reply), _response(SUGGESTIONS_TEXT)]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.summary == SUMMARY_FALLBACK

    def test_suggestions_transport_failure(self):
        llm = Mock()
        llm.generate.side_effect = [
            _response('{"summary": "s"}'),
            _error("API_ERROR", "Gemini API error: 503 Service Unavailable - overloaded"),
        ]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is False
        assert result.code == SUGGESTIONS_FAILED
        assert "503" in result.reason

    def test_unparseable_suggestions_keep_raw_text(self):
        llm = Mock()
        llm.generate.side_effect = [_response('{"summary": "s"}'), _response("Just call Sam!")]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is True
        assert result.starters == []
        assert result.topics == []
        assert result.raw_text == "Just call Sam!"

    def test_empty_suggestions_response_uses_placeholder(self):
        llm = Mock()
        llm.generate.side_effect = [_response('{"summary": "s"}'), _error("EMPTY_RESPONSE")]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is True
        assert result.raw_text == NO_RESPONSE_TEXT

    def test_empty_string_suggestions_are_kept_as_is(self):
        llm = Mock()
        llm.generate.side_effect = [_response('{"summary": "s"}'), _response("")]

        result = CompletionRequester(llm).complete("Sam", QA_PAIRS, total_questions=2)

        assert result.ok is True
        assert result.raw_text == ""
        assert result.starters == []

    def test_summary_prompt_contains_transcript(self):
        prompt = CompletionRequester.build_summary_prompt("Sam", QA_PAIRS)

        assert "Q1: When did you first get to know Sam?" in prompt
        assert "A2: At the library." in prompt
        assert '"summary"' in prompt
