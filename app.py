"""Recipe Recommender HTTP service.

Single entry point for the recommendation API:
- Validates configuration and loads the ingredient whitelist once at startup
- Wires the Gemini vision/completion collaborators and the recipe store into
  the RecommendationOrchestrator
- Serves POST /recommend (image URL) and POST /recommend-text (ingredient list)
- Translates pipeline errors into {"error": message} responses (400 / 500)

Run with: python app.py
"""

import contextlib
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.models.models import RecommendationResult, RecommendRequest, RecommendTextRequest
from src.pipeline.extractor import Whitelist
from src.pipeline.orchestrator import RecommendationOrchestrator
from src.services.completion import GeminiCompletionService
from src.services.errors import ClientInputError, CollaboratorError
from src.services.storage import JsonFileRecipeStorage
from src.services.vision import GeminiVisionService
from src.utils.config import config
from src.utils.logger import logger


def build_orchestrator() -> RecommendationOrchestrator:
    """Create the production orchestrator from configuration (fail-fast)."""
    logger.info("=== Initializing Recipe Recommender ===")
    config.validate()

    whitelist = Whitelist.load(config.WHITELIST_FILE)
    logger.info(f"✓ Ingredient whitelist ready ({len(whitelist)} entries)")

    vision = GeminiVisionService(
        api_key=config.GEMINI_API_KEY,
        model=config.VISION_MODEL,
        compress=config.COMPRESS_IMG,
    )
    completion = GeminiCompletionService(
        api_key=config.GEMINI_API_KEY,
        temperature=config.TEMPERATURE,
        max_output_tokens=config.MAX_OUTPUT_TOKENS,
    )
    storage = JsonFileRecipeStorage(config.RECIPES_FILE)
    logger.info(f"✓ Collaborators configured (vision={config.VISION_MODEL}, completion={config.GEMINI_MODEL})")

    return RecommendationOrchestrator(
        vision=vision,
        completion=completion,
        storage=storage,
        whitelist=whitelist,
        settings=config,
    )


def create_app(orchestrator: Optional[RecommendationOrchestrator] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator (tests). Built from configuration
            at startup when omitted.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "orchestrator", None) is None:
            app.state.orchestrator = build_orchestrator()
        yield

    app = FastAPI(title="Recipe Recommender", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(ClientInputError)
    async def client_input_error_handler(request: Request, exc: ClientInputError) -> JSONResponse:
        logger.warning(f"Rejected request: {exc}", extra={"request_id": request.state.request_id})
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Invalid request body: {exc.errors()}", extra={"request_id": request.state.request_id})
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(CollaboratorError)
    async def collaborator_error_handler(request: Request, exc: CollaboratorError) -> JSONResponse:
        logger.error(
            f"{exc.collaborator} collaborator failed: {exc}",
            extra={"request_id": request.state.request_id},
        )
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled error: {exc}",
            exc_info=exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def root() -> dict:
        return {"message": "Hello from Recipe Bot!"}

    @app.post("/recommend", response_model=RecommendationResult)
    async def recommend(body: RecommendRequest, request: Request) -> RecommendationResult:
        return await request.app.state.orchestrator.recommend_from_image(
            body.imageUrl, request_id=request.state.request_id
        )

    @app.post("/recommend-text", response_model=RecommendationResult)
    async def recommend_text(body: RecommendTextRequest, request: Request) -> RecommendationResult:
        return await request.app.state.orchestrator.recommend_from_ingredients(
            body.ingredients, request_id=request.state.request_id
        )

    return app


app = create_app()


if __name__ == "__main__":
    logger.info(f"Starting Recipe Recommender on port {config.PORT}")
    logger.info(f"API docs available at: http://localhost:{config.PORT}/docs")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
