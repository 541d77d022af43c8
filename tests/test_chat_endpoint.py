"""Integration tests for the relay's HTTP surface."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))


@pytest.fixture
def client():
    """Create a test client with a mocked upstream LLM client."""
    # Import after path is set
    import main

    # Lifespan is not run without a context manager, so no real client is built
    client = TestClient(main.app)
    main.llm_client = Mock()
    yield client
    main.llm_client = None


@pytest.fixture
def llm(client):
    """The mocked upstream client, answering "Hi there" by default."""
    import main
    from services.llm_client import LLMResponse

    main.llm_client.generate.return_value = LLMResponse(
        text="Hi there",
        tokens_input=100,
        tokens_output=3,
        latency_ms=250,
        model_used="llama-3.3-70b-versatile"
    )
    return main.llm_client


def upstream_failure(code):
    from services.llm_client import LLMClientError, LLMError
    return LLMClientError(LLMError(code=code, message="upstream said no", details={}))


def test_health_check(client):
    """GET / reports the service as up."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "message" in data
    assert "environment" in data


def test_chat_returns_upstream_reply(client, llm):
    """A valid message yields the upstream reply verbatim."""
    response = client.post("/chat", json={"message": "Hello", "conversationHistory": []})

    assert response.status_code == 200
    assert response.json() == {"response": "Hi there", "error": None}
    assert llm.generate.call_count == 1


def test_chat_forwards_history_and_instruction(client, llm):
    """Upstream receives history plus the new user turn, with the Scoper instruction."""
    from services.system_prompt import SCOPER_SYSTEM_PROMPT

    history = [
        {"role": "user", "content": "I run a bakery"},
        {"role": "assistant", "content": "Tell me more"},
    ]
    client.post("/chat", json={"message": "We lose money on weekends", "conversationHistory": history})

    kwargs = llm.generate.call_args.kwargs
    assert kwargs["messages"] == history + [{"role": "user", "content": "We lose money on weekends"}]
    assert kwargs["system_prompt"] == SCOPER_SYSTEM_PROMPT
    assert "Scoper" in kwargs["system_prompt"]
    assert kwargs["max_tokens"] == 4000


def test_chat_without_history_field(client, llm):
    """conversationHistory is optional."""
    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == 200
    assert llm.generate.call_args.kwargs["messages"] == [{"role": "user", "content": "Hello"}]


def test_missing_message_is_rejected_without_upstream_call(client, llm):
    """A body without message is a 400 and never reaches upstream."""
    response = client.post("/chat", json={"conversationHistory": []})

    assert response.status_code == 400
    assert response.json() == {
        "response": None,
        "error": "Message is required and must be a string",
    }
    assert llm.generate.call_count == 0


@pytest.mark.parametrize("body,error", [
    ({"message": 42}, "Message is required and must be a string"),
    ({"message": "   \n"}, "Message cannot be empty"),
    ({"message": "Hi", "conversationHistory": "nope"}, "conversationHistory must be an array"),
    ({"message": "Hi", "conversationHistory": [{"role": "system", "content": "x"}]},
     "Invalid conversation history format"),
    ({"message": "Hi", "conversationHistory": [{"role": "user", "content": ""}]},
     "Invalid conversation history format"),
    ({"message": "Hi", "conversationHistory": [{"role": "user", "content": 7}]},
     "Invalid conversation history format"),
])
def test_invalid_bodies(client, llm, body, error):
    """Each malformed body gets its specific 400 message."""
    response = client.post("/chat", json=body)

    assert response.status_code == 400
    assert response.json() == {"response": None, "error": error}
    llm.generate.assert_not_called()


def test_invalid_json(client, llm):
    """An unparseable body is a client error."""
    response = client.post(
        "/chat",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid JSON in request body"
    llm.generate.assert_not_called()


def test_wrong_content_type(client, llm):
    """Non-JSON content types are rejected."""
    response = client.post("/chat", content=b"message=hi", headers={"Content-Type": "text/plain"})

    assert response.status_code == 400
    assert response.json()["error"] == "Content-Type must be application/json"


def test_missing_credential(client):
    """Without an upstream client the relay answers 500 without detail."""
    import main
    main.llm_client = None

    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == 500
    assert response.json() == {"response": None, "error": "API configuration error"}


@pytest.mark.parametrize("code,status,error", [
    ("AUTHENTICATION_ERROR", 500, "Authentication failed"),
    ("RATE_LIMIT_ERROR", 429, "Rate limit exceeded. Please try again later."),
    ("TIMEOUT_ERROR", 500, "Internal server error"),
    ("API_ERROR", 500, "Internal server error"),
    ("UNKNOWN_ERROR", 500, "Internal server error"),
])
def test_upstream_error_mapping(client, llm, code, status, error):
    """Upstream failures collapse into the documented status codes."""
    llm.generate.side_effect = upstream_failure(code)

    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == status
    assert response.json() == {"response": None, "error": error}


def test_unexpected_exception_is_not_leaked(client, llm):
    """Anything else raised while relaying becomes a generic 500."""
    llm.generate.side_effect = RuntimeError("secret internals")

    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"
    assert "secret" not in response.text


def test_preflight_unknown_origin_gets_default(client):
    """An origin outside the allow-list receives the default allowed origin."""
    response = client.options("/chat", headers={"Origin": "https://evil.example.com"})

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
    assert response.headers["Access-Control-Max-Age"] == "86400"


def test_preflight_known_origin_is_echoed(client):
    response = client.options("/anything", headers={"Origin": "https://localhost:5173"})

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "https://localhost:5173"


def test_cors_headers_on_error_responses(client, llm):
    """CORS headers are attached to failures as well as successes."""
    response = client.post(
        "/chat",
        json={"message": ""},
        headers={"Origin": "https://localhost:5173"},
    )

    assert response.status_code == 400
    assert response.headers["Access-Control-Allow-Origin"] == "https://localhost:5173"


def test_unknown_route(client):
    """Unknown paths and methods are a plain 404."""
    response = client.get("/missing")
    assert response.status_code == 404
    assert response.text == "Not Found"
    assert "Access-Control-Allow-Origin" in response.headers

    response = client.get("/chat")
    assert response.status_code == 404


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
