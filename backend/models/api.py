"""Request and response schemas for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, Field

from models.contact import Contact, PhoneNumber
from models.conversation import SessionSnapshot
from models.suggestion import CompletionResult, NextQuestionResult


class StartSessionRequest(BaseModel):
    """Start (or restart) a reconnect conversation about a contact."""
    name: str = Field(..., description="Display name of the contact to reconnect with")


class AnswerRequest(BaseModel):
    answer: str


class TurnModel(BaseModel):
    id: str
    type: str
    text: str


class CompletionResponse(BaseModel):
    """Starters, topics and summary produced once all questions are answered."""
    ok: bool
    starters: List[str] = []
    topics: List[str] = []
    raw_text: str = ""
    summary: Optional[str] = None
    reason: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_result(cls, result: CompletionResult) -> "CompletionResponse":
        return cls(
            ok=result.ok,
            starters=list(result.starters),
            topics=list(result.topics),
            raw_text=result.raw_text,
            summary=result.summary,
            reason=result.reason,
            code=result.code,
        )


class SessionResponse(BaseModel):
    session_id: str
    name: str
    state: str
    current_index: int
    total_questions: int
    current_question: Optional[str] = None
    is_complete: bool
    turns: List[TurnModel]
    warning: Optional[str] = None
    result: Optional[CompletionResponse] = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionResponse":
        return cls(
            session_id=snapshot.session_id,
            name=snapshot.subject_name,
            state=snapshot.state.value,
            current_index=snapshot.current_index,
            total_questions=snapshot.total_questions,
            current_question=snapshot.current_question,
            is_complete=snapshot.is_complete,
            turns=[
                TurnModel(id=t.turn_id, type=t.kind.value, text=t.text)
                for t in snapshot.turns
            ],
            warning=snapshot.last_warning,
            result=CompletionResponse.from_result(snapshot.result) if snapshot.result else None,
        )


class NextQuestionResponse(BaseModel):
    """Reply to a submitted answer; `question` is None once all are answered."""
    session_id: str
    question: Optional[str] = None
    refined: bool = False
    warning: Optional[str] = None
    current_index: int
    is_complete: bool

    @classmethod
    def build(
        cls,
        snapshot: SessionSnapshot,
        result: Optional[NextQuestionResult]
    ) -> "NextQuestionResponse":
        return cls(
            session_id=snapshot.session_id,
            question=result.text if result else None,
            refined=result.refined if result else False,
            warning=result.warning if result else None,
            current_index=snapshot.current_index,
            is_complete=snapshot.is_complete,
        )


class PhoneNumberModel(BaseModel):
    number: str
    label: Optional[str] = None


class ContactModel(BaseModel):
    id: str
    name: str
    phone_numbers: List[PhoneNumberModel] = []

    def to_contact(self) -> Contact:
        return Contact(
            id=self.id,
            name=self.name,
            phone_numbers=[PhoneNumber(number=p.number, label=p.label) for p in self.phone_numbers],
        )

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactModel":
        return cls(
            id=contact.id,
            name=contact.name,
            phone_numbers=[
                PhoneNumberModel(number=p.number, label=p.label)
                for p in contact.phone_numbers
            ],
        )


class UpdateTargetsRequest(BaseModel):
    """Device contacts plus the ids the user ticked."""
    contacts: List[ContactModel]
    selected_ids: List[str]


class SearchContactsRequest(BaseModel):
    contacts: List[ContactModel]
    search_term: str = ""


class DeviceContactsRequest(BaseModel):
    """Contacts currently on the device."""
    contacts: List[ContactModel]


class PreselectionResponse(BaseModel):
    """Saved targets to show as already ticked."""
    selected_ids: List[str]


class OnboardingResponse(BaseModel):
    completed: bool
