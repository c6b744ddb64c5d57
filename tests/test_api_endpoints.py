"""Integration tests for the HTTP API."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock, patch
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))


@pytest.fixture
def client():
    """Create a test client with mocked services."""
    # Import after path is set
    from main import app
    from services.conversation_manager import ConversationManager
    from services.question_sequencer import QuestionPack

    with patch('main.startup_event'):
        client = TestClient(app)

        # Real conversation logic, mocked remote model and storage
        import main
        main.llm_client = Mock()
        main.conversation_manager = ConversationManager(
            main.llm_client,
            question_pack=QuestionPack(
                first_question="When did you first get to know {name}?",
                templates=("How did you and {name} meet?",),
            )
        )
        main.target_store = Mock()

        yield client


@pytest.fixture
def llm(client):
    import main
    return main.llm_client


@pytest.fixture
def store(client):
    import main
    return main.target_store


def _response(text):
    from services.llm_client import LLMResponse
    return LLMResponse(text=text, tokens_input=1, tokens_output=1, latency_ms=1, model_used="gemini-test")


def _timeout():
    from services.llm_client import LLMError, LLMClientError
    return LLMClientError(LLMError(code="TIMEOUT_ERROR", message="Request timed out after 10.0s.", details={}))


def _start(client, name="Sam"):
    response = client.post("/sessions", json={"name": name})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_start_session(client):
    data = _start(client)

    assert data["session_id"].startswith("conv_")
    assert data["name"] == "Sam"
    assert data["current_question"] == "When did you first get to know Sam?"
    assert data["total_questions"] == 2
    assert data["state"] == "awaiting_answer"
    assert data["turns"] == [
        {"id": "q0", "type": "question", "text": "When did you first get to know Sam?"}
    ]


def test_start_session_blank_name(client):
    response = client.post("/sessions", json={"name": "  "})
    assert response.status_code == 400


def test_unknown_session(client):
    assert client.get("/sessions/conv_missing").status_code == 404
    assert client.post("/sessions/conv_missing/answers", json={"answer": "x"}).status_code == 404


def test_submit_answer_refined(client, llm):
    session_id = _start(client)["session_id"]
    llm.generate.return_value = _response('{"refinedQuestion": "Where in college did you meet Sam?"}')

    response = client.post(f"/sessions/{session_id}/answers", json={"answer": "In college."})

    assert response.status_code == 200
    data = response.json()
    assert data["question"] == "Where in college did you meet Sam?"
    assert data["refined"] is True
    assert data["warning"] is None
    assert data["current_index"] == 1


def test_submit_answer_fallback_warns(client, llm):
    session_id = _start(client)["session_id"]
    llm.generate.side_effect = _timeout()

    data = client.post(f"/sessions/{session_id}/answers", json={"answer": "In college."}).json()

    assert data["question"] == "How did you and Sam meet?"
    assert data["refined"] is False
    assert data["warning"]


def test_submit_blank_answer(client):
    session_id = _start(client)["session_id"]

    response = client.post(f"/sessions/{session_id}/answers", json={"answer": ""})

    assert response.status_code == 400


def test_complete_before_all_answered(client, llm):
    session_id = _start(client)["session_id"]

    response = client.post(f"/sessions/{session_id}/complete")

    assert response.status_code == 400
    assert response.json()["detail"]["error"]["code"] == "INCOMPLETE_ANSWERS"
    llm.generate.assert_not_called()


def test_full_conversation(client, llm):
    session_id = _start(client)["session_id"]
    llm.generate.side_effect = [
        _timeout(),
        _response('{"summary": "You met Sam in college."}'),
        _response("[Conversation Starters]\n- Hi Sam!\n[Conversation Topics]\n- College days"),
    ]

    client.post(f"/sessions/{session_id}/answers", json={"answer": "In college."})
    last = client.post(f"/sessions/{session_id}/answers", json={"answer": "At the library."}).json()
    assert last["question"] is None
    assert last["is_complete"] is True

    response = client.post(f"/sessions/{session_id}/complete")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["starters"] == ["Hi Sam!"]
    assert data["topics"] == ["College days"]
    assert data["summary"] == "You met Sam in college."

    session = client.get(f"/sessions/{session_id}").json()
    assert session["state"] == "done"
    assert session["result"]["starters"] == ["Hi Sam!"]

    # no more answers once everything was asked
    assert client.post(f"/sessions/{session_id}/answers", json={"answer": "more"}).status_code == 409


def test_complete_remote_failure(client, llm):
    session_id = _start(client)["session_id"]
    llm.generate.side_effect = [_timeout(), _timeout(), _timeout()]
    client.post(f"/sessions/{session_id}/answers", json={"answer": "a"})
    client.post(f"/sessions/{session_id}/answers", json={"answer": "b"})

    response = client.post(f"/sessions/{session_id}/complete")

    assert response.status_code == 502
    assert response.json()["detail"]["error"]["code"] == "SUGGESTIONS_FAILED"
    assert client.get(f"/sessions/{session_id}").json()["state"] == "failed"


def test_restart_with_new_name(client, llm):
    session_id = _start(client)["session_id"]
    llm.generate.side_effect = _timeout()
    client.post(f"/sessions/{session_id}/answers", json={"answer": "In college."})

    response = client.put(f"/sessions/{session_id}", json={"name": "Alex"})

    data = response.json()
    assert data["session_id"] == session_id
    assert data["current_index"] == 0
    assert data["current_question"] == "When did you first get to know Alex?"


def test_delete_session(client):
    session_id = _start(client)["session_id"]

    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_update_and_list_targets(client, store):
    from models.contact import Contact
    store.load_targets.return_value = [Contact(id="1", name="Sam")]

    response = client.put("/targets", json={
        "contacts": [
            {"id": "1", "name": "Sam", "phone_numbers": [{"number": "010-1234-5678"}]},
            {"id": "2", "name": "Alex"},
        ],
        "selected_ids": ["1"]
    })

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == ["1"]
    saved = store.save_targets.call_args.args[0]
    assert [c.id for c in saved] == ["1"]
    assert client.get("/targets").json()[0]["name"] == "Sam"


def test_update_targets_storage_failure(client, store):
    store.save_targets.side_effect = RuntimeError("db down")

    response = client.put("/targets", json={"contacts": [], "selected_ids": []})

    assert response.status_code == 500


def test_remove_target(client, store):
    from services.target_store import TargetNotFoundError
    store.remove_target.return_value = []
    assert client.delete("/targets/1").status_code == 200

    store.remove_target.side_effect = TargetNotFoundError("9")
    assert client.delete("/targets/9").status_code == 404


def test_preselected_targets(client, store):
    from models.contact import Contact
    store.load_targets.return_value = [Contact(id="2", name="Alex"), Contact(id="9", name="Gone")]

    response = client.post("/targets/preselected", json={
        "contacts": [
            {"id": "1", "name": "Sam"},
            {"id": "2", "name": "Alex"},
        ]
    })

    assert response.status_code == 200
    assert response.json() == {"selected_ids": ["2"]}


def test_random_target(client, store):
    from models.contact import Contact
    store.load_targets.return_value = [Contact(id="1", name="Sam")]

    response = client.post("/targets/random")

    assert response.status_code == 200
    assert response.json()["name"] == "Sam"


def test_random_target_without_targets(client, store):
    store.load_targets.return_value = []

    assert client.post("/targets/random").status_code == 404


def test_search_contacts(client):
    response = client.post("/contacts/search", json={
        "contacts": [
            {"id": "1", "name": "Sam", "phone_numbers": [{"number": "010-1234-5678"}]},
            {"id": "2", "name": "Alex"},
        ],
        "search_term": "5678"
    })

    assert [c["id"] for c in response.json()] == ["1"]


def test_onboarding(client, store):
    store.is_onboarding_completed.return_value = False
    assert client.get("/onboarding").json() == {"completed": False}

    assert client.post("/onboarding/complete").json() == {"completed": True}
    store.mark_onboarding_completed.assert_called_once()
