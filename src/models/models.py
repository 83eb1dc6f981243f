"""Data models and schemas for recipe recommendation service.

Defines Pydantic models for request/response validation, the recipe corpus,
and the typed payloads returned by external collaborators (vision, language
model). Collaborator responses are always parsed into these models; raw
dictionaries never cross a service boundary.
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    """Recipe difficulty as seen by the matcher.

    Corpus labels other than "easy" (medium, hard, ...) all map to OTHER.
    Only EASY recipes are eligible suggestions.
    """

    EASY = "easy"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: str) -> "Difficulty":
        return cls.EASY if label.strip().lower() == cls.EASY.value else cls.OTHER


# ============================================================================
# Recipe corpus
# ============================================================================


class Recipe(BaseModel):
    """Domain model for a recipe in the corpus.

    Owned by the storage collaborator and read-only to the pipeline.
    `difficulty` keeps the corpus label (lowercased); Difficulty.from_label
    classifies it. Ingredient names are lowercased to match extractor output.
    """

    id: Union[int, str]
    name: str
    difficulty: str
    ingredients: List[str] = Field(default_factory=list)
    cook_time: Union[int, float] = Field(..., ge=0, description="Cooking time in minutes")

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: str) -> str:
        return str(value).strip().lower()

    @field_validator("ingredients")
    @classmethod
    def normalize_ingredients(cls, value: List[str]) -> List[str]:
        return [item.strip().lower() for item in value if item.strip()]

    @property
    def level(self) -> Difficulty:
        return Difficulty.from_label(self.difficulty)


# ============================================================================
# Pipeline values
# ============================================================================


class SignalBundle(BaseModel):
    """Raw per-source signals gathered for one request before filtering."""

    tags: List[str] = Field(default_factory=list)
    objects: List[str] = Field(default_factory=list)
    captions: List[str] = Field(default_factory=list)


class RecommendationResult(BaseModel):
    """The pipeline's only externally observable output.

    Same shape for the image path, the text path, and the caption fallback.
    """

    detected: List[str]
    suggestions: List[Recipe]
    recommendation: Optional[str] = None


# ============================================================================
# HTTP request bodies
# ============================================================================


class RecommendRequest(BaseModel):
    """Body of POST /recommend.

    imageUrl is optional at the schema level so that a missing value is
    reported as a client error by the orchestrator (400) rather than a
    framework validation error.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    imageUrl: Optional[str] = None


class RecommendTextRequest(BaseModel):
    """Body of POST /recommend-text."""

    ingredients: Optional[List[str]] = None


# ============================================================================
# Collaborator payloads
# ============================================================================


class VisionTag(BaseModel):
    """A whole-image tag from the vision service."""

    name: str
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class DetectedObject(BaseModel):
    """A localized object detected in the image."""

    object: str
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class ImageCaption(BaseModel):
    """A natural-language description candidate for the image."""

    text: str
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class VisionTagsOutput(BaseModel):
    """JSON envelope expected from the vision model for tag analysis."""

    tags: List[VisionTag] = Field(default_factory=list)


class DetectedObjectsOutput(BaseModel):
    """JSON envelope expected from the vision model for object detection."""

    objects: List[DetectedObject] = Field(default_factory=list)


class ImageCaptionsOutput(BaseModel):
    """JSON envelope expected from the vision model for image description."""

    captions: List[ImageCaption] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """A single chat message exchanged with the language model."""

    role: str
    content: str


class CompletionChoice(BaseModel):
    message: ChatMessage


class Completion(BaseModel):
    """Language model reply: one or more candidate messages."""

    choices: List[CompletionChoice] = Field(default_factory=list)
