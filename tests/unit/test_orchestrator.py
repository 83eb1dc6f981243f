"""Unit tests for the recommendation orchestrator.

Tests cover:
- Input validation (no collaborator calls on bad input)
- Image path: concurrent tags/objects, lazy caption fallback
- Text path: deduplication only
- Empty ingredient / empty shortlist short-circuits
- Completion assembly and collaborator error propagation
- Timeout budget per collaborator call
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.models.models import Completion, ImageCaption, VisionTag
from src.pipeline.orchestrator import NO_INGREDIENTS_MESSAGE, NO_RECIPES_MESSAGE
from src.prompts.prompts import SYSTEM_INSTRUCTION
from src.services.errors import ClientInputError, CompletionError, StorageError, VisionError


class TestValidation:
    """Test client input errors."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("image_url", [None, "", "   "])
    async def test_missing_image_url(self, orchestrator, vision, image_url):
        """Missing imageUrl is rejected before the vision service is called."""
        with pytest.raises(ClientInputError):
            await orchestrator.recommend_from_image(image_url)
        vision.analyze_tags.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ingredients", [None, [], ["", "  "]])
    async def test_missing_ingredients(self, orchestrator, completion, ingredients):
        """Missing or blank ingredients are rejected without collaborator calls."""
        with pytest.raises(ClientInputError):
            await orchestrator.recommend_from_ingredients(ingredients)
        completion.complete.assert_not_called()


class TestImagePath:
    """Test image-driven recommendations."""

    @pytest.mark.asyncio
    async def test_full_pipeline(self, orchestrator, vision, completion):
        """Tags and objects produce ingredients, recipes and a trimmed reply."""
        result = await orchestrator.recommend_from_image("https://example.com/food.jpg")

        assert result.detected == ["tomato", "garlic"]
        assert [r.id for r in result.suggestions] == [1, 2]
        assert result.recommendation == "Tomato Soup is a warming classic."
        vision.analyze_tags.assert_awaited_once_with("https://example.com/food.jpg")
        vision.detect_objects.assert_awaited_once_with("https://example.com/food.jpg")
        vision.describe_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_caption_fallback(self, orchestrator, vision):
        """Captions are requested only when tags and objects match nothing."""
        vision.analyze_tags.return_value = [VisionTag(name="food")]
        vision.detect_objects.return_value = []
        vision.describe_image.return_value = [ImageCaption(text="fresh tomato salad")]

        result = await orchestrator.recommend_from_image("https://example.com/food.jpg")

        assert result.detected == ["tomato"]
        assert [r.id for r in result.suggestions] == [1]
        vision.describe_image.assert_awaited_once_with("https://example.com/food.jpg", 3)

    @pytest.mark.asyncio
    async def test_no_ingredients_detected(self, orchestrator, vision, completion):
        """An image with no recognizable ingredients is a normal empty result."""
        vision.analyze_tags.return_value = []
        vision.detect_objects.return_value = []
        vision.describe_image.return_value = []

        result = await orchestrator.recommend_from_image("https://example.com/food.jpg")

        assert result.model_dump() == {
            "detected": [],
            "suggestions": [],
            "recommendation": NO_INGREDIENTS_MESSAGE,
        }
        completion.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_tags_and_objects_run_concurrently(self, orchestrator, vision):
        """Both structured vision calls are in flight at the same time."""
        in_flight = 0
        peak = 0

        async def slow(result):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return result

        async def tags(url):
            return await slow([VisionTag(name="tomato")])

        async def objects(url):
            return await slow([])

        vision.analyze_tags.side_effect = tags
        vision.detect_objects.side_effect = objects

        await orchestrator.recommend_from_image("https://example.com/food.jpg")

        assert peak == 2

    @pytest.mark.asyncio
    async def test_failed_vision_call_cancels_sibling(self, orchestrator, vision):
        """When one structured call fails, the other is cancelled rather than left running."""
        finished = []

        async def objects(url):
            await asyncio.sleep(0.05)
            finished.append("objects")
            return []

        vision.analyze_tags.side_effect = VisionError("Tag analysis failed")
        vision.detect_objects.side_effect = objects

        with pytest.raises(VisionError, match="Tag analysis failed"):
            await orchestrator.recommend_from_image("https://example.com/food.jpg")
        await asyncio.sleep(0.1)

        assert finished == []

    @pytest.mark.asyncio
    async def test_vision_error_propagates(self, orchestrator, vision, completion):
        """A vision failure aborts the request."""
        vision.detect_objects.side_effect = VisionError("Image unreachable")

        with pytest.raises(VisionError, match="Image unreachable"):
            await orchestrator.recommend_from_image("https://example.com/missing.jpg")
        completion.complete.assert_not_called()


class TestTextPath:
    """Test ingredient-list recommendations."""

    @pytest.mark.asyncio
    async def test_deduplicates_without_whitelist(self, orchestrator, vision):
        """Supplied ingredients skip vision and whitelist filtering."""
        result = await orchestrator.recommend_from_ingredients(["garlic", "saffron", "garlic"])

        assert result.detected == ["garlic", "saffron"]
        assert [r.id for r in result.suggestions] == [2]
        vision.analyze_tags.assert_not_called()

    @pytest.mark.asyncio
    async def test_completion_messages(self, orchestrator, completion):
        """The model receives the fixed system instruction and the synthesized prompt."""
        await orchestrator.recommend_from_ingredients(["tomato", "garlic"])

        deployment, messages = completion.complete.await_args.args
        assert deployment == "test-model"
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[0].content == SYSTEM_INSTRUCTION
        assert "- Tomato Soup (30 min)\n- Garlic Bread (10 min)" in messages[1].content

    @pytest.mark.asyncio
    async def test_empty_shortlist_skips_completion(self, orchestrator, completion):
        """Detected ingredients with no matching recipe end without a model call."""
        result = await orchestrator.recommend_from_ingredients(["saffron"])

        assert result.detected == ["saffron"]
        assert result.suggestions == []
        assert result.recommendation == NO_RECIPES_MESSAGE
        completion.complete.assert_not_called()


class TestCollaboratorFailures:
    """Test error propagation and timeouts."""

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, orchestrator, storage, completion):
        """A storage failure surfaces as StorageError with no result."""
        storage.read_all = AsyncMock(side_effect=StorageError("connection lost"))

        with pytest.raises(StorageError, match="connection lost"):
            await orchestrator.recommend_from_ingredients(["tomato"])
        completion.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_completion_error_propagates(self, orchestrator, completion):
        completion.complete.side_effect = CompletionError("quota exceeded")

        with pytest.raises(CompletionError, match="quota exceeded"):
            await orchestrator.recommend_from_ingredients(["tomato"])

    @pytest.mark.asyncio
    async def test_no_choices(self, orchestrator, completion):
        """A reply without choices is a completion failure."""
        completion.complete.return_value = Completion(choices=[])

        with pytest.raises(CompletionError, match="no choices"):
            await orchestrator.recommend_from_ingredients(["tomato"])

    @pytest.mark.asyncio
    async def test_timeout_maps_to_collaborator_error(self, orchestrator, storage, settings):
        """A collaborator exceeding the budget raises its own error type."""
        settings.COLLABORATOR_TIMEOUT_SECONDS = 0.01

        async def hang():
            await asyncio.sleep(1)

        storage.read_all = hang

        with pytest.raises(StorageError, match="timed out"):
            await orchestrator.recommend_from_ingredients(["tomato"])
