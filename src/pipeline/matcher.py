"""Recipe matching: ingredient set + corpus -> bounded candidate shortlist."""

from typing import Sequence

from src.models.models import Difficulty, Recipe


# Recall cap: only the first N ingredients are matched. Each one costs a full
# corpus pass and widens the prompt.
MAX_MATCH_INGREDIENTS = 2

# Shortlist cap: at most N recipes reach the prompt and the response.
MAX_SUGGESTIONS = 3


def match(
    ingredients: Sequence[str],
    corpus: Sequence[Recipe],
    max_ingredients: int = MAX_MATCH_INGREDIENTS,
    max_suggestions: int = MAX_SUGGESTIONS,
    difficulty: Difficulty = Difficulty.EASY,
) -> list[Recipe]:
    """Select a deduplicated shortlist of recipes for the given ingredients.

    For each of the first `max_ingredients` ingredients, the whole corpus is
    scanned for recipes of the requested difficulty that list the ingredient.
    Matches accumulate in ingredient order; the first occurrence of each
    recipe id wins and the result is cut to `max_suggestions`.

    Args:
        ingredients: Ordered ingredient set.
        corpus: Every recipe known to storage.
        max_ingredients: Recall cap applied before matching.
        max_suggestions: Maximum recipes returned.
        difficulty: Only recipes with this difficulty are eligible.

    Returns:
        Matching recipes in first-match order; empty if nothing matches.
    """
    matches: list[Recipe] = []
    for ingredient in ingredients[:max_ingredients]:
        # Recipe ingredients are stored lowercased
        name = ingredient.lower()
        matches.extend(
            recipe
            for recipe in corpus
            if recipe.level is difficulty and name in recipe.ingredients
        )

    seen_ids: set = set()
    shortlist: list[Recipe] = []
    for recipe in matches:
        if recipe.id in seen_ids:
            continue
        seen_ids.add(recipe.id)
        shortlist.append(recipe)

    return shortlist[:max_suggestions]
