"""Shared fixtures for unit tests.

Collaborators are replaced with AsyncMock-backed fakes so that no test
touches the network or the Gemini API.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.models import (
    ChatMessage,
    Completion,
    CompletionChoice,
    DetectedObject,
    ImageCaption,
    Recipe,
    VisionTag,
)
from src.pipeline.extractor import Whitelist
from src.pipeline.orchestrator import RecommendationOrchestrator
from src.services.storage import InMemoryRecipeStorage
from src.utils.config import Config


@pytest.fixture
def whitelist() -> Whitelist:
    return Whitelist(["tomato", "garlic", "onion", "basil", "egg", "cheese", "pasta"])


@pytest.fixture
def corpus() -> list[Recipe]:
    return [
        Recipe(id=1, name="Tomato Soup", difficulty="easy", ingredients=["tomato", "onion"], cook_time=30),
        Recipe(id=2, name="Garlic Bread", difficulty="easy", ingredients=["garlic"], cook_time=10),
        Recipe(id=3, name="Tomato Tart", difficulty="hard", ingredients=["tomato"], cook_time=90),
    ]


@pytest.fixture
def settings(monkeypatch) -> Config:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("GEMINI_MODEL", "test-model")
    monkeypatch.setenv("MAX_MATCH_INGREDIENTS", "2")
    monkeypatch.setenv("MAX_SUGGESTIONS", "3")
    monkeypatch.setenv("MAX_CAPTIONS", "3")
    monkeypatch.setenv("COLLABORATOR_TIMEOUT_SECONDS", "5")
    return Config()


def make_completion(text: str) -> Completion:
    return Completion(choices=[CompletionChoice(message=ChatMessage(role="assistant", content=text))])


@pytest.fixture
def vision() -> MagicMock:
    service = MagicMock()
    service.analyze_tags = AsyncMock(return_value=[VisionTag(name="Tomato"), VisionTag(name="food")])
    service.detect_objects = AsyncMock(return_value=[DetectedObject(object="garlic")])
    service.describe_image = AsyncMock(return_value=[ImageCaption(text="a plate of food")])
    return service


@pytest.fixture
def completion() -> MagicMock:
    service = MagicMock()
    service.complete = AsyncMock(return_value=make_completion("  Tomato Soup is a warming classic.  "))
    return service


@pytest.fixture
def storage(corpus) -> InMemoryRecipeStorage:
    return InMemoryRecipeStorage(corpus)


@pytest.fixture
def orchestrator(vision, completion, storage, whitelist, settings) -> RecommendationOrchestrator:
    return RecommendationOrchestrator(
        vision=vision,
        completion=completion,
        storage=storage,
        whitelist=whitelist,
        settings=settings,
    )
