"""Ingredient extraction from noisy vision and text signals.

Turns a SignalBundle (tags, detected objects, captions) into an ordered,
deduplicated list of ingredients drawn from a closed vocabulary (Whitelist).

Extraction order:
1. Tags, then detected objects: lowercased, deduplicated, whitelist-filtered
2. Captions (fallback, only when step 1 yields nothing): concatenated,
   split on non-word characters, lowercased, deduplicated, whitelist-filtered

Caller-supplied ingredient lists (text entry point) skip the whitelist
entirely and are only deduplicated via normalize_ingredients().

Core Functions:
- extract_structured(): Step 1 only (used by the orchestrator before deciding
  whether captions are needed)
- extract_from_captions(): Step 2 only
- extract(): Full extraction with caption fallback
- normalize_ingredients(): Deduplicate caller-supplied ingredients
"""

import re
from pathlib import Path
from typing import Iterable, Iterator, Optional

from src.models.models import SignalBundle
from src.utils.logger import logger


# Closed vocabulary used when no WHITELIST_FILE is configured
DEFAULT_WHITELIST: tuple[str, ...] = (
    "apple",
    "avocado",
    "bacon",
    "banana",
    "basil",
    "bean",
    "beef",
    "bread",
    "broccoli",
    "butter",
    "cabbage",
    "carrot",
    "cheese",
    "chicken",
    "chili",
    "corn",
    "cucumber",
    "egg",
    "eggplant",
    "fish",
    "garlic",
    "ginger",
    "lemon",
    "lettuce",
    "lime",
    "milk",
    "mushroom",
    "noodle",
    "onion",
    "pasta",
    "pepper",
    "pork",
    "potato",
    "rice",
    "salmon",
    "shrimp",
    "spinach",
    "tofu",
    "tomato",
    "zucchini",
)

# Caption tokenizer: split on runs of non-word characters
_TOKEN_SPLIT = re.compile(r"\W+")


class Whitelist:
    """Immutable, case-insensitive ingredient vocabulary.

    Loaded once at startup and passed into extraction; never mutated.
    Membership is exact-match only (no stemming, no fuzzy matching).
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[str]) -> None:
        self._entries = frozenset(e.strip().lower() for e in entries if e and e.strip())

    @classmethod
    def from_file(cls, path: str | Path) -> "Whitelist":
        """Load a newline-delimited vocabulary. Blank lines and # comments are ignored."""
        lines = Path(path).read_text(encoding="utf-8").splitlines()
        entries = [line for line in lines if line.strip() and not line.lstrip().startswith("#")]
        whitelist = cls(entries)
        logger.info(f"Loaded ingredient whitelist from {path} ({len(whitelist)} entries)")
        return whitelist

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Whitelist":
        """Load from `path` when given, otherwise use DEFAULT_WHITELIST."""
        if path:
            return cls.from_file(path)
        return cls(DEFAULT_WHITELIST)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and item.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __repr__(self) -> str:
        return f"Whitelist({len(self._entries)} entries)"


def _filter_unique(candidates: Iterable[str], whitelist: Whitelist) -> list[str]:
    """Lowercase, deduplicate (first-seen wins) and keep whitelist members."""
    seen: set[str] = set()
    result: list[str] = []
    for candidate in candidates:
        token = candidate.strip().lower()
        if not token or token in seen:
            continue
        seen.add(token)
        if token in whitelist:
            result.append(token)
    return result


def extract_structured(signals: SignalBundle, whitelist: Whitelist) -> list[str]:
    """Whitelisted ingredients from tags and detected objects (tags first)."""
    return _filter_unique([*signals.tags, *signals.objects], whitelist)


def extract_from_captions(captions: Iterable[str], whitelist: Whitelist) -> list[str]:
    """Whitelisted ingredients found as words inside caption text.

    Args:
        captions: Caption strings, concatenated before tokenizing.
        whitelist: Ingredient vocabulary.

    Returns:
        Ingredients in order of first appearance; empty if none match.
    """
    text = " ".join(captions)
    return _filter_unique(_TOKEN_SPLIT.split(text), whitelist)


def extract(signals: SignalBundle, whitelist: Whitelist) -> list[str]:
    """Extract an ingredient set from a signal bundle.

    Structured signals (tags, objects) win; captions are consulted only when
    they yield no whitelisted ingredient. Never raises on empty input.

    Args:
        signals: Raw tags, detected objects and captions for one request.
        whitelist: Ingredient vocabulary.

    Returns:
        Ordered, deduplicated, whitelisted ingredients (possibly empty).
    """
    detected = extract_structured(signals, whitelist)
    if detected:
        return detected

    if signals.captions:
        detected = extract_from_captions(signals.captions, whitelist)
        logger.debug(f"Caption fallback yielded {len(detected)} ingredient(s)")
    return detected


def normalize_ingredients(ingredients: Iterable[str]) -> list[str]:
    """Deduplicate a caller-supplied ingredient list, preserving order.

    Entries are stripped and blanks dropped. No whitelist filtering and no case
    folding: caller text is treated as already-validated input.
    """
    seen: set[str] = set()
    result: list[str] = []
    for ingredient in ingredients:
        if not isinstance(ingredient, str):
            continue
        cleaned = ingredient.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
