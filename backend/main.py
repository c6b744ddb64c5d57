"""Main entry point for the Linkle backend API."""
import logging
from typing import List
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, LOG_LEVEL, CORS_ORIGINS
from logger import setup_logging
from models.api import (
    StartSessionRequest,
    AnswerRequest,
    SessionResponse,
    NextQuestionResponse,
    CompletionResponse,
    ContactModel,
    UpdateTargetsRequest,
    SearchContactsRequest,
    DeviceContactsRequest,
    PreselectionResponse,
    OnboardingResponse,
)
from services.llm_client import LLMClient
from services.conversation_manager import ConversationManager, ConversationNotFoundError
from services.conversation_flow import ConversationFlow, ConversationStateError
from services.completion_requester import INCOMPLETE_ANSWERS
from services.target_store import TargetStore, TargetNotFoundError
from services.contact_selector import (
    filter_contacts,
    select_targets,
    preselected_ids,
    pick_random_target,
)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Linkle API",
    description="Reconnect with your contacts through guided questions and AI conversation starters",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
llm_client: LLMClient = None
conversation_manager: ConversationManager = None
target_store: TargetStore = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global llm_client, conversation_manager, target_store

    logger.info("Initializing Linkle services...")

    try:
        llm_client = LLMClient()
        logger.info("Initialized LLMClient")

        conversation_manager = ConversationManager(llm_client)
        logger.info("Initialized ConversationManager")

        target_store = TargetStore()
        logger.info("Initialized TargetStore")

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _get_flow(session_id: str) -> ConversationFlow:
    try:
        return conversation_manager.get_conversation(session_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail=f"Conversation {session_id} not found")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Linkle API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "linkle-backend",
        "version": "1.0.0"
    }


@app.post("/sessions", response_model=SessionResponse)
def start_session(request: StartSessionRequest) -> SessionResponse:
    """Start a conversation about a contact and return its first question."""
    try:
        flow, _ = conversation_manager.get_or_create_conversation(request.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SessionResponse.from_snapshot(flow.snapshot())


@app.put("/sessions/{session_id}", response_model=SessionResponse)
def restart_session(session_id: str, request: StartSessionRequest) -> SessionResponse:
    """Re-enter a conversation; a different name starts it over."""
    _get_flow(session_id)
    try:
        flow, _ = conversation_manager.get_or_create_conversation(request.name, session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SessionResponse.from_snapshot(flow.snapshot())


@app.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str) -> SessionResponse:
    return SessionResponse.from_snapshot(_get_flow(session_id).snapshot())


@app.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    try:
        conversation_manager.discard(session_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail=f"Conversation {session_id} not found")
    return {"status": "deleted", "session_id": session_id}


@app.post("/sessions/{session_id}/answers", response_model=NextQuestionResponse)
def submit_answer(session_id: str, request: AnswerRequest) -> NextQuestionResponse:
    """
    Submit the answer to the current question.

    The next question is adapted by the model; when that fails the default
    question is returned along with a `warning` and the conversation goes on.
    """
    flow = _get_flow(session_id)
    try:
        result = flow.submit_answer(request.answer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return NextQuestionResponse.build(flow.snapshot(), result)


@app.post("/sessions/{session_id}/complete", response_model=CompletionResponse)
def complete_session(session_id: str) -> CompletionResponse:
    """
    Produce the summary, conversation starters and topics.

    Returns 400 while questions remain unanswered and 502 when the model
    could not be reached; both leave the conversation retryable.
    """
    flow = _get_flow(session_id)
    try:
        result = flow.complete()
    except ConversationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not result.ok:
        status_code = 400 if result.code == INCOMPLETE_ANSWERS else 502
        raise HTTPException(
            status_code=status_code,
            detail={"error": {"code": result.code, "message": result.reason}}
        )
    return CompletionResponse.from_result(result)


@app.get("/targets", response_model=List[ContactModel])
def list_targets() -> List[ContactModel]:
    return [ContactModel.from_contact(c) for c in target_store.load_targets()]


@app.put("/targets", response_model=List[ContactModel])
def update_targets(request: UpdateTargetsRequest) -> List[ContactModel]:
    """Replace the saved targets with the ticked device contacts."""
    contacts = [c.to_contact() for c in request.contacts]
    targets = select_targets(contacts, request.selected_ids)
    try:
        target_store.save_targets(targets)
    except Exception as e:
        logger.error(f"Failed to update target contacts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update target contacts.")
    return [ContactModel.from_contact(c) for c in targets]


@app.delete("/targets/{contact_id}", response_model=List[ContactModel])
def remove_target(contact_id: str) -> List[ContactModel]:
    try:
        remaining = target_store.remove_target(contact_id)
    except TargetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Target {contact_id} not found")
    return [ContactModel.from_contact(c) for c in remaining]


@app.post("/targets/preselected", response_model=PreselectionResponse)
def preselected_targets(request: DeviceContactsRequest) -> PreselectionResponse:
    """Ids of saved targets still on the device, to show them as ticked."""
    contacts = [c.to_contact() for c in request.contacts]
    return PreselectionResponse(selected_ids=preselected_ids(contacts, target_store.load_targets()))


@app.post("/targets/random", response_model=ContactModel)
def random_target() -> ContactModel:
    """Pick one saved target to reconnect with."""
    try:
        selected = pick_random_target(target_store.load_targets())
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ContactModel.from_contact(selected)


@app.post("/contacts/search", response_model=List[ContactModel])
def search_contacts(request: SearchContactsRequest) -> List[ContactModel]:
    contacts = [c.to_contact() for c in request.contacts]
    return [ContactModel.from_contact(c) for c in filter_contacts(contacts, request.search_term)]


@app.get("/onboarding", response_model=OnboardingResponse)
def onboarding_status() -> OnboardingResponse:
    return OnboardingResponse(completed=target_store.is_onboarding_completed())


@app.post("/onboarding/complete", response_model=OnboardingResponse)
def complete_onboarding() -> OnboardingResponse:
    target_store.mark_onboarding_completed()
    return OnboardingResponse(completed=True)


if __name__ == "__main__":
    import uvicorn
    setup_logging(LOG_LEVEL)
    logger.info(f"Starting Linkle API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
