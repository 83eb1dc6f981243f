"""Prompts for the vision and language-model collaborators.

Provides:
- SYSTEM_INSTRUCTION: fixed system message for the recommendation call
- Vision prompts asking Gemini for tags, objects and captions as JSON
- synthesize_prompt(): deterministic recommendation prompt from the shortlist

The recommendation prompt is a pure function of (ingredients, shortlist): no
randomness, no locale formatting. Identical inputs produce byte-identical
text, which keeps it testable and cacheable.
"""

from typing import Sequence, Union

from src.models.models import Recipe
from src.pipeline.matcher import MAX_SUGGESTIONS


SYSTEM_INSTRUCTION = "You are a helpful cooking assistant."


# ============================================================================
# Vision prompts
# ============================================================================

TAGS_PROMPT = (
    "List short, lowercase tags describing the visible contents of this image "
    "(foods, ingredients, dishes, objects). Return ONLY valid JSON of the form "
    '{"tags": [{"name": "tomato", "confidence": 0.95}]}. '
    "Use single words or short noun phrases, singular form."
)

OBJECTS_PROMPT = (
    "Detect the distinct physical objects in this image, one entry per object "
    "instance type. Return ONLY valid JSON of the form "
    '{"objects": [{"object": "egg", "confidence": 0.9}]}. '
    "Use lowercase singular nouns."
)


def get_captions_prompt(max_candidates: int) -> str:
    """Prompt asking for up to `max_candidates` one-sentence image descriptions."""
    return (
        f"Describe this image in at most {max_candidates} alternative short sentences, "
        "most likely first. Return ONLY valid JSON of the form "
        '{"captions": [{"text": "a bowl of fresh tomato salad", "confidence": 0.8}]}.'
    )


# ============================================================================
# Recommendation prompt
# ============================================================================


def format_cook_time(cook_time: Union[int, float]) -> str:
    """Render minutes without a trailing '.0' for whole numbers."""
    if isinstance(cook_time, float) and cook_time.is_integer():
        return str(int(cook_time))
    return str(cook_time)


def format_recipe_line(recipe: Recipe) -> str:
    return f"- {recipe.name} ({format_cook_time(recipe.cook_time)} min)"


def synthesize_prompt(
    ingredients: Sequence[str],
    shortlist: Sequence[Recipe],
    max_suggestions: int = MAX_SUGGESTIONS,
) -> str:
    """Render the recommendation prompt for the language model.

    Args:
        ingredients: Detected or supplied ingredients, in order.
        shortlist: Candidate recipes, in order.
        max_suggestions: Upper bound on recipes the model is asked to describe.

    Returns:
        Prompt text: ingredients, one `- {name} ({cook_time} min)` line per
        recipe, and the instruction to describe up to `max_suggestions` of them.
    """
    recipe_lines = "\n".join(format_recipe_line(recipe) for recipe in shortlist)
    return (
        f"I have these ingredients: {', '.join(ingredients)}.\n"
        f"Here are some easy recipes I could make:\n"
        f"{recipe_lines}\n"
        f"Recommend up to {max_suggestions} of these recipes, "
        f"giving a one-sentence description of each."
    )
