"""Data models for the Linkle backend."""
from .suggestion import SuggestionResult, SummaryResult, NextQuestionResult, CompletionResult
from .conversation import ConversationSession, SessionSnapshot, Turn, TurnKind, FlowState
from .contact import Contact, PhoneNumber
from .api import (
    StartSessionRequest,
    AnswerRequest,
    TurnModel,
    SessionResponse,
    NextQuestionResponse,
    CompletionResponse,
    ContactModel,
    PhoneNumberModel,
    UpdateTargetsRequest,
    SearchContactsRequest,
    DeviceContactsRequest,
    PreselectionResponse,
    OnboardingResponse,
)

__all__ = [
    "SuggestionResult",
    "SummaryResult",
    "NextQuestionResult",
    "CompletionResult",
    "ConversationSession",
    "SessionSnapshot",
    "Turn",
    "TurnKind",
    "FlowState",
    "Contact",
    "PhoneNumber",
    "StartSessionRequest",
    "AnswerRequest",
    "TurnModel",
    "SessionResponse",
    "NextQuestionResponse",
    "CompletionResponse",
    "ContactModel",
    "PhoneNumberModel",
    "UpdateTargetsRequest",
    "SearchContactsRequest",
    "DeviceContactsRequest",
    "PreselectionResponse",
    "OnboardingResponse",
]
