#!/usr/bin/env python3
"""Ad hoc query runner for Recipe Recommender.

Run a single recommendation directly without starting the API server.

Usage:
    python query.py tomato garlic                       # Ingredient list
    python query.py --image https://example.com/food.jpg
    python query.py --image images/pasta.png            # Local file (sent as data URL)
    python query.py --debug tomato garlic               # Show full JSON result

Features:
- Same orchestrator, collaborators and error handling as the HTTP service
- Local image files are encoded as data URLs
- Debug mode to display the full RecommendationResult as JSON
"""

import asyncio
import base64
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown

from app import build_orchestrator
from src.models.models import RecommendationResult
from src.services.errors import ClientInputError, CollaboratorError
from src.utils.logger import logger

console = Console()


def image_source(image: str) -> str:
    """Return `image` unchanged if it is a URL, otherwise encode the local file as a data URL."""
    if image.startswith(("http://", "https://", "data:")):
        return image

    image_file = Path(image)
    if not image_file.exists():
        raise ClientInputError(f"Image file not found: {image}")

    mime_type = "image/png" if image_file.suffix.lower() == ".png" else "image/jpeg"
    encoded = base64.b64encode(image_file.read_bytes()).decode("utf-8")
    logger.info(f"✓ Loaded image: {image_file.name} ({len(encoded) / 1024:.1f} KB base64)")
    return f"data:{mime_type};base64,{encoded}"


def render_result(result: RecommendationResult, debug: bool = False) -> None:
    if debug:
        console.print("[bold cyan]Debug Mode: Full Result[/bold cyan]")
        console.print_json(data=result.model_dump(mode="json"))
        console.print()

    detected = ", ".join(result.detected) or "none"
    console.print(f"[bold]Detected:[/bold] {detected}")
    for recipe in result.suggestions:
        console.print(f"  • {recipe.name} ({recipe.cook_time} min)")
    console.print()
    console.print(Markdown(result.recommendation or ""))


def run_query(ingredients: list[str], image: Optional[str] = None, debug: bool = False) -> int:
    """Execute one recommendation and print it. Returns the process exit code."""
    try:
        orchestrator = build_orchestrator()
        if image:
            coro = orchestrator.recommend_from_image(image_source(image))
        else:
            coro = orchestrator.recommend_from_ingredients(ingredients)
        result = asyncio.run(coro)
    except ClientInputError as e:
        console.print(f"[red]✗ Invalid input: {e}[/red]")
        return 2
    except CollaboratorError as e:
        console.print(f"[red]✗ {e.collaborator} service failed: {e}[/red]")
        return 1
    except ValueError as e:
        console.print(f"[red]✗ Configuration error: {e}[/red]")
        return 1

    render_result(result, debug=debug)
    return 0


def main(argv: list[str]) -> int:
    debug_mode = False
    image = None
    args = list(argv)

    while args and args[0].startswith("--"):
        flag = args.pop(0)
        if flag == "--debug":
            debug_mode = True
        elif flag == "--image":
            if not args:
                print("Error: --image flag requires a URL or file path")
                return 2
            image = args.pop(0)
        else:
            print(f"Unknown flag: {flag}")
            return 2

    if not image and not args:
        print('Usage: python query.py [--debug] [--image URL_OR_PATH] [ingredient ...]')
        return 2

    return run_query(args, image=image, debug=debug_mode)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
