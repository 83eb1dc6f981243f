"""Configuration management for Recipe Recommender.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import Optional

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Completion deployment: model used to write the final recommendation
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        # Vision deployment: model used for tags, objects and captions
        self.VISION_MODEL: str = os.getenv("VISION_MODEL", "gemini-2.5-flash-lite")
        # Server Port
        self.PORT: int = int(os.getenv("PORT", "3978"))
        # Optional newline-delimited ingredient vocabulary. Default: built-in whitelist
        self.WHITELIST_FILE: Optional[str] = os.getenv("WHITELIST_FILE") or None
        # Recipe corpus read once per request by the storage collaborator
        self.RECIPES_FILE: str = os.getenv("RECIPES_FILE", "data/recipes.json")
        # Only the first N detected ingredients are matched. Bounds the recipe scan
        # (one full corpus pass per ingredient) and keeps the prompt short. Default: 2
        self.MAX_MATCH_INGREDIENTS: int = int(os.getenv("MAX_MATCH_INGREDIENTS", "2"))
        # Maximum recipes listed in the prompt and returned as suggestions. Default: 3
        self.MAX_SUGGESTIONS: int = int(os.getenv("MAX_SUGGESTIONS", "3"))
        # Caption candidates requested when falling back to image descriptions
        self.MAX_CAPTIONS: int = int(os.getenv("MAX_CAPTIONS", "3"))
        # Timeout budget (seconds) applied by the orchestrator to every collaborator call
        self.COLLABORATOR_TIMEOUT_SECONDS: float = float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "30"))
        # Maximum image size (in MB) that can be processed. Default: 5 MB
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Image Compression: Enable/disable image compression before vision calls
        self.COMPRESS_IMG: bool = _env_bool("COMPRESS_IMG", "true")
        # Only compress images at or above this size (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))
        # LLM Model Parameters
        # Temperature: 0.2 keeps the one-sentence descriptions consistent
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.2"))
        self.MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "512"))

    def validate(self) -> None:
        """Validate required configuration.

        Raises:
            ValueError: If required API keys are missing or invalid values provided.
        """
        if not self.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        if self.MAX_MATCH_INGREDIENTS < 1:
            raise ValueError(
                f"MAX_MATCH_INGREDIENTS must be at least 1, got: {self.MAX_MATCH_INGREDIENTS}"
            )
        if self.MAX_SUGGESTIONS < 1:
            raise ValueError(
                f"MAX_SUGGESTIONS must be at least 1, got: {self.MAX_SUGGESTIONS}"
            )
        if self.MAX_CAPTIONS < 1:
            raise ValueError(
                f"MAX_CAPTIONS must be at least 1, got: {self.MAX_CAPTIONS}"
            )
        if self.COLLABORATOR_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"COLLABORATOR_TIMEOUT_SECONDS must be positive, got: {self.COLLABORATOR_TIMEOUT_SECONDS}"
            )
        if not (0.0 <= self.TEMPERATURE <= 1.0):
            raise ValueError(
                f"TEMPERATURE must be between 0.0 and 1.0, got: {self.TEMPERATURE}"
            )
        if self.MAX_OUTPUT_TOKENS < 64:
            raise ValueError(
                f"MAX_OUTPUT_TOKENS must be at least 64, got: {self.MAX_OUTPUT_TOKENS}"
            )


# Module-level config instance. validate() runs at application startup so that
# importing the pipeline (tests, CLI) does not require credentials.
config = Config()
