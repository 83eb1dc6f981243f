"""Recommendation orchestrator: signals -> ingredients -> recipes -> prompt -> reply.

Linear pipeline, no retries:

1. Validate: unusable input raises ClientInputError before any collaborator call
2. Extract: tags + objects fetched concurrently; captions only if they yield
   nothing. Text input is only deduplicated. Empty -> successful empty result
3. Match: corpus read once from storage, shortlist selected
4. Synthesize: deterministic prompt from ingredients + shortlist
5. Complete: language model call, first choice trimmed
6. Assemble: RecommendationResult

Collaborator failures (VisionError, StorageError, CompletionError) propagate
unchanged and abort the request. Each collaborator call runs under the
configured timeout budget; a timeout raises that collaborator's error type.
"""

import asyncio
from typing import Awaitable, Optional, Sequence, TypeVar

from src.models.models import ChatMessage, Completion, Recipe, RecommendationResult, SignalBundle
from src.pipeline.extractor import Whitelist, extract, extract_structured, normalize_ingredients
from src.pipeline.matcher import match
from src.prompts.prompts import SYSTEM_INSTRUCTION, synthesize_prompt
from src.services.completion import CompletionService
from src.services.errors import ClientInputError, CollaboratorError, CompletionError, StorageError, VisionError
from src.services.storage import RecipeStorage
from src.services.vision import VisionService
from src.utils.config import Config, config
from src.utils.logger import logger


NO_INGREDIENTS_MESSAGE = "No recognizable ingredients detected."
NO_RECIPES_MESSAGE = "No matching recipes found for the detected ingredients."

T = TypeVar("T")


class RecommendationOrchestrator:
    """Sequences extraction, matching, prompt synthesis and completion."""

    def __init__(
        self,
        vision: VisionService,
        completion: CompletionService,
        storage: RecipeStorage,
        whitelist: Whitelist,
        settings: Config = config,
    ) -> None:
        self.vision = vision
        self.completion = completion
        self.storage = storage
        self.whitelist = whitelist
        self.settings = settings

    async def _call(
        self,
        awaitable: Awaitable[T],
        error_cls: type[CollaboratorError],
        operation: str,
    ) -> T:
        """Await a collaborator call under the timeout budget."""
        timeout = self.settings.COLLABORATOR_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise error_cls(f"{operation} timed out after {timeout:g}s") from e

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def recommend_from_image(
        self, image_url: Optional[str], request_id: Optional[str] = None
    ) -> RecommendationResult:
        """Recommend recipes for the ingredients visible in an image.

        Args:
            image_url: http(s) or data URL of the image.
            request_id: Correlation id for logging.

        Raises:
            ClientInputError: If image_url is missing or blank.
            VisionError, StorageError, CompletionError: On collaborator failure.
        """
        if not image_url or not image_url.strip():
            raise ClientInputError("imageUrl is required")
        image_url = image_url.strip()

        log_extra = {"request_id": request_id, "stage": "extract"}
        tags_task = asyncio.ensure_future(
            self._call(self.vision.analyze_tags(image_url), VisionError, "Tag analysis")
        )
        objects_task = asyncio.ensure_future(
            self._call(self.vision.detect_objects(image_url), VisionError, "Object detection")
        )
        try:
            tags, objects = await asyncio.gather(tags_task, objects_task)
        except BaseException:
            # The request is aborted; the sibling call must not outlive it
            for task in (tags_task, objects_task):
                task.cancel()
            await asyncio.gather(tags_task, objects_task, return_exceptions=True)
            raise
        signals = SignalBundle(tags=[t.name for t in tags], objects=[o.object for o in objects])

        detected = extract_structured(signals, self.whitelist)
        if not detected:
            logger.info("No whitelisted tags or objects, falling back to captions", extra=log_extra)
            captions = await self._call(
                self.vision.describe_image(image_url, self.settings.MAX_CAPTIONS),
                VisionError,
                "Image description",
            )
            signals.captions = [c.text for c in captions]
            detected = extract(signals, self.whitelist)

        logger.info(f"Detected ingredients: {detected}", extra=log_extra)
        return await self._recommend(detected, request_id)

    async def recommend_from_ingredients(
        self, ingredients: Optional[Sequence[str]], request_id: Optional[str] = None
    ) -> RecommendationResult:
        """Recommend recipes for a caller-supplied ingredient list.

        Raises:
            ClientInputError: If ingredients is missing or empty after cleanup.
            StorageError, CompletionError: On collaborator failure.
        """
        if not ingredients:
            raise ClientInputError("ingredients must be a non-empty list")
        detected = normalize_ingredients(ingredients)
        if not detected:
            raise ClientInputError("ingredients must be a non-empty list")

        logger.info(f"Supplied ingredients: {detected}", extra={"request_id": request_id, "stage": "extract"})
        return await self._recommend(detected, request_id)

    # ------------------------------------------------------------------
    # Shared stages
    # ------------------------------------------------------------------

    async def _recommend(self, detected: list[str], request_id: Optional[str]) -> RecommendationResult:
        if not detected:
            return RecommendationResult(detected=[], suggestions=[], recommendation=NO_INGREDIENTS_MESSAGE)

        corpus = await self._call(self.storage.read_all(), StorageError, "Recipe storage read")
        suggestions = match(
            detected,
            corpus,
            max_ingredients=self.settings.MAX_MATCH_INGREDIENTS,
            max_suggestions=self.settings.MAX_SUGGESTIONS,
        )
        logger.info(
            f"Matched {len(suggestions)} recipe(s) from a corpus of {len(corpus)}",
            extra={"request_id": request_id, "stage": "match"},
        )

        # An empty shortlist ends the request without a model call
        if not suggestions:
            return RecommendationResult(detected=detected, suggestions=[], recommendation=NO_RECIPES_MESSAGE)

        recommendation = await self._complete(detected, suggestions, request_id)
        return RecommendationResult(detected=detected, suggestions=suggestions, recommendation=recommendation)

    async def _complete(self, detected: list[str], suggestions: list[Recipe], request_id: Optional[str]) -> str:
        prompt = synthesize_prompt(detected, suggestions, max_suggestions=self.settings.MAX_SUGGESTIONS)
        messages = [
            ChatMessage(role="system", content=SYSTEM_INSTRUCTION),
            ChatMessage(role="user", content=prompt),
        ]
        completion: Completion = await self._call(
            self.completion.complete(self.settings.GEMINI_MODEL, messages),
            CompletionError,
            "Language model completion",
        )
        if not completion.choices:
            raise CompletionError("Language model returned no choices")

        logger.info("Recommendation generated", extra={"request_id": request_id, "stage": "complete"})
        return completion.choices[0].message.content.strip()
