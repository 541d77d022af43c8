"""Main entry point for the Scoper chat relay API."""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import PORT, ENVIRONMENT, GROQ_API_KEY, CHAT_MODEL, MAX_OUTPUT_TOKENS
from models.api import ChatResponse, HealthResponse
from services.cors import get_cors_headers
from services.llm_client import LLMClient, LLMClientError
from services.request_validator import (
    ChatValidationError,
    check_content_type,
    parse_body,
    validate_chat_payload,
)
from services.system_prompt import SCOPER_SYSTEM_PROMPT

# Initialize logging
logger = logging.getLogger(__name__)

# Initialized on startup; stays None when no upstream credential is configured
llm_client: Optional[LLMClient] = None

# Upstream error code -> (status, client-facing message)
UPSTREAM_ERROR_RESPONSES = {
    "AUTHENTICATION_ERROR": (500, "Authentication failed"),
    "RATE_LIMIT_ERROR": (429, "Rate limit exceeded. Please try again later."),
}
GENERIC_ERROR_RESPONSE = (500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup."""
    global llm_client

    logger.info("Initializing Scoper chat relay services...")
    if GROQ_API_KEY:
        llm_client = LLMClient()
    else:
        logger.warning("GROQ_API_KEY is not set; /chat will answer with a configuration error")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Scoper Chat Relay",
    description="Relays chat turns to the upstream model with the Scoper instruction",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    """Answer preflight requests and attach CORS headers to every response."""
    cors_headers = get_cors_headers(request.headers.get("Origin"))

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=cors_headers)

    response = await call_next(request)
    response.headers.update(cors_headers)
    return response


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and methods get a plain 404."""
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def _chat_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ChatResponse(response=None, error=message).model_dump(),
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        message="Scoper chat relay is running",
        environment=ENVIRONMENT,
    )


@app.post("/chat")
async def chat_endpoint(request: Request) -> JSONResponse:
    """
    Relay one user message plus prior turns to the upstream model.

    The body is validated by hand rather than through a pydantic signature so
    that malformed requests get a 400 with a specific message instead of 422.

    Returns:
        200 {"response": <reply>, "error": null} on success, otherwise
        400/429/500 {"response": null, "error": <reason>}
    """
    start_time = time.time()

    try:
        check_content_type(request.headers.get("Content-Type"))
        body = parse_body(await request.body())
        chat_request = validate_chat_payload(body)
    except ChatValidationError as e:
        logger.info(f"Rejected chat request: {e.message}")
        return _chat_error(400, e.message)

    if llm_client is None:
        logger.error("Chat request received but no upstream credential is configured")
        return _chat_error(500, "API configuration error")

    logger.info(
        f"Processing chat message: {len(chat_request.message)} chars, "
        f"{len(chat_request.conversation_history)} prior turns"
    )

    messages = LLMClient.build_messages(
        chat_request.message,
        chat_request.conversation_history,
    )

    try:
        llm_response = await run_in_threadpool(
            llm_client.generate,
            messages=messages,
            system_prompt=SCOPER_SYSTEM_PROMPT,
            model=CHAT_MODEL,
            max_tokens=MAX_OUTPUT_TOKENS,
        )
    except LLMClientError as e:
        status_code, message = UPSTREAM_ERROR_RESPONSES.get(e.error.code, GENERIC_ERROR_RESPONSE)
        logger.error(
            f"Upstream error {e.error.code}, answering {status_code}",
            extra={"error_code": e.error.code, "error_details": e.error.details},
        )
        return _chat_error(status_code, message)
    except Exception as e:
        logger.error(f"Unexpected error relaying chat message: {e}", exc_info=True)
        return _chat_error(*GENERIC_ERROR_RESPONSE)

    total_latency_ms = int((time.time() - start_time) * 1000)
    logger.info(f"Chat message relayed successfully in {total_latency_ms}ms")

    return JSONResponse(
        status_code=200,
        content=ChatResponse(response=llm_response.text, error=None).model_dump(),
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Scoper chat relay on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
