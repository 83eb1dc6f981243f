"""Recipe storage collaborator.

read_all() returns the full corpus for one request. JsonFileRecipeStorage
reads a JSON array of recipe objects from disk; InMemoryRecipeStorage serves a
fixed list (development, tests).
"""

import asyncio
import json
from pathlib import Path
from typing import Iterable, Protocol

from pydantic import TypeAdapter, ValidationError

from src.models.models import Recipe
from src.services.errors import StorageError
from src.utils.logger import logger


_RECIPE_LIST = TypeAdapter(list[Recipe])


class RecipeStorage(Protocol):
    """Read-only access to the recipe corpus. Raises StorageError on failure."""

    async def read_all(self) -> list[Recipe]:
        ...


class JsonFileRecipeStorage:
    """Recipe corpus stored as a JSON array in a file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> list[Recipe]:
        raw = self.path.read_text(encoding="utf-8")
        return _RECIPE_LIST.validate_python(json.loads(raw))

    async def read_all(self) -> list[Recipe]:
        """Load and validate every recipe in the file.

        Raises:
            StorageError: If the file is missing, unreadable, or malformed.
        """
        try:
            recipes = await asyncio.to_thread(self._read)
        except OSError as e:
            raise StorageError(f"Recipe store unavailable: {e}") from e
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Recipe store is malformed: {e}") from e

        logger.debug(f"Loaded {len(recipes)} recipe(s) from {self.path}")
        return recipes


class InMemoryRecipeStorage:
    """Fixed recipe corpus held in memory."""

    def __init__(self, recipes: Iterable[Recipe]) -> None:
        self._recipes = tuple(recipes)

    async def read_all(self) -> list[Recipe]:
        return list(self._recipes)
