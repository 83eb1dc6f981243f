"""Pytest configuration and fixtures for integration tests.

Ensures environment variables are loaded and skips the suite when the
Gemini API key is not configured.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from src.pipeline.extractor import Whitelist
from src.pipeline.orchestrator import RecommendationOrchestrator
from src.services.completion import GeminiCompletionService
from src.services.storage import JsonFileRecipeStorage
from src.services.vision import GeminiVisionService
from src.utils.config import Config

PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env (in project root)
load_dotenv(PROJECT_ROOT / ".env")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip every integration test if GEMINI_API_KEY is not configured."""
    if not os.getenv("GEMINI_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API key: GEMINI_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def live_orchestrator() -> RecommendationOrchestrator:
    """Orchestrator wired to the real Gemini API and the bundled recipe corpus."""
    settings = Config()
    settings.validate()
    return RecommendationOrchestrator(
        vision=GeminiVisionService(api_key=settings.GEMINI_API_KEY, model=settings.VISION_MODEL, compress=True),
        completion=GeminiCompletionService(
            api_key=settings.GEMINI_API_KEY,
            temperature=settings.TEMPERATURE,
            max_output_tokens=settings.MAX_OUTPUT_TOKENS,
        ),
        storage=JsonFileRecipeStorage(PROJECT_ROOT / "data" / "recipes.json"),
        whitelist=Whitelist.load(),
        settings=settings,
    )
