"""FastAPI application entry point for PDFMan."""

import os
from contextlib import asynccontextmanager
from logging import getLogger
from typing import AsyncGenerator, Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.routers.DocumentRouter import router as document_router
from server.routers.GenerationRouter import router as generation_router
from server.routers.TopicRouter import router as topic_router
from services.generation.GenerationService import GenerationService
from services.ingest.IngestService import IngestService
from services.library.LibraryService import LibraryService
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.web.WebClient import WebClient
from shared.exceptions.errors import (
    ConflictError,
    InconsistencyError,
    InvalidInputError,
    NotFoundError,
    PdfManError,
    UpstreamFailureError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperPdf import extract_text
from shared.logging.logging_setup import setup_logging
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver
from shared.storage.PromptStore import PromptStore

app_version = os.getenv("APP_VERSION", "unknown")

_STATUS_BY_ERROR: list[tuple[type[PdfManError], int]] = [
    (InvalidInputError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (UpstreamFailureError, 502),
    (InconsistencyError, 500),
]


def create_app(
    llm_client: LLMClientInterface | None = None,
    web_transport: httpx.AsyncBaseTransport | None = None,
    text_extractor: Callable[[bytes], str] = extract_text,
) -> FastAPI:
    """Build the application.

    Args:
        llm_client (LLMClientInterface | None): Generative backend; built from LLM_ENGINE when None.
        web_transport (httpx.AsyncBaseTransport | None): Transport for URL downloads (tests inject a mock).
        text_extractor (Callable[[bytes], str]): PDF text extraction routine.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # when the app starts
        logging = setup_logging()
        app.state.logging = logging
        app.state.helper_config = HelperConfig(logger=logging)

        store = ArtifactStore(helper_config=app.state.helper_config)
        resolver = DocumentResolver(helper_config=app.state.helper_config, store=store)
        prompt_store = PromptStore(helper_config=app.state.helper_config)
        await store.boot()
        await prompt_store.boot()

        llm = llm_client or LLMClientManager(helper_config=app.state.helper_config).get_client()
        web_client = WebClient(helper_config=app.state.helper_config, transport=web_transport)

        logging.info("Booting all clients...")
        for client in [llm, web_client]:
            await client.boot()
        logging.info("All clients booted successfully.")

        app.state.library_service = LibraryService(
            helper_config=app.state.helper_config,
            store=store,
            resolver=resolver,
        )
        app.state.ingest_service = IngestService(
            helper_config=app.state.helper_config,
            store=store,
            resolver=resolver,
            web_client=web_client,
        )
        app.state.generation_service = GenerationService(
            helper_config=app.state.helper_config,
            store=store,
            resolver=resolver,
            prompt_store=prompt_store,
            llm_client=llm,
            text_extractor=text_extractor,
        )

        if llm_client is None:
            await check_connections(logging, llm)
        logging.info("PDFMan API ready (data dir: %s).", store.get_data_dir(), color="cyan")

        # while the app is running...
        yield

        # when the app shuts down, close all client connections
        logging.info("Shutting down, closing all clients...")
        for client in [llm, web_client]:
            await client.close()
        logging.info("All clients closed.")

    app = FastAPI(
        title="PDFMan",
        description=(
            "Organize PDFs into topics, stored content-addressed by SHA-256. "
            "Summaries and single-turn chat about a document are generated by an LLM "
            "and streamed as plain text."
        ),
        version=app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=HelperConfig(logger=getLogger("pdfman")).get_list_val("CORS_ORIGINS", default=["http://localhost:5173"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PdfManError, handle_pdfman_error)

    app.include_router(topic_router)
    app.include_router(document_router)
    app.include_router(generation_router)
    return app


async def handle_pdfman_error(request: Request, exc: PdfManError) -> JSONResponse:
    """Translate core errors into HTTP responses."""
    status_code = next((status for error_type, status in _STATUS_BY_ERROR if isinstance(exc, error_type)), 500)
    logging = request.app.state.logging
    if status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logging.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def check_connections(logging, llm_client: LLMClientInterface) -> None:
    """Check connectivity to the LLM backend on startup.

    Failures are non-fatal: topics and documents stay usable and generation
    requests report the backend error themselves.
    """
    try:
        result: httpx.Response = await llm_client.do_healthcheck()
    except httpx.HTTPError as e:
        logging.warning("LLM client '%s' is not reachable: %s. Summaries and chat will fail.", llm_client.__class__.__name__, e)
        return
    if not result.is_success:
        logging.warning(
            "LLM client '%s' answered the healthcheck with status %d. Summaries and chat may fail.",
            llm_client.__class__.__name__,
            result.status_code,
        )


app = create_app()


# Server Start
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    setup_logging().info("Starting PDFMan API Server v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
