"""Vision collaborator: tags, detected objects and captions for an image URL.

The VisionService protocol is what the orchestrator depends on. The
GeminiVisionService implementation backs all three operations with the
Gemini vision API:

1. fetch_image_bytes(): download the image (http/https) or decode a data URL
2. validate_image_format() / validate_image_size(): JPEG/PNG only, size limit
3. compress_image(): optional re-encode for API transmission (Pillow)
4. generate_content() with a JSON-only prompt, parsed leniently by
   parse_vision_json() and validated into typed pydantic payloads

Every failure (unreachable URL, bad format, API error, unparseable reply)
raises VisionError. Nothing degrades silently: an image the service cannot
analyze aborts the request.
"""

import asyncio
import base64
import binascii
import json
import re
from collections import OrderedDict
from io import BytesIO
from typing import Any, Callable, Optional, Protocol, TypeVar

import aiohttp
import filetype
from google import genai
from google.genai import types
from PIL import Image
from pydantic import BaseModel, ValidationError

from src.models.models import (
    DetectedObject,
    DetectedObjectsOutput,
    ImageCaption,
    ImageCaptionsOutput,
    VisionTag,
    VisionTagsOutput,
)
from src.prompts.prompts import OBJECTS_PROMPT, TAGS_PROMPT, get_captions_prompt
from src.services.errors import VisionError
from src.utils.config import config
from src.utils.logger import logger


OutputT = TypeVar("OutputT", bound=BaseModel)

# Most recent prepared images kept per service instance
IMAGE_CACHE_SIZE = 8


class VisionService(Protocol):
    """Image analysis collaborator. All methods raise VisionError on failure."""

    async def analyze_tags(self, image_url: str) -> list[VisionTag]:
        ...

    async def detect_objects(self, image_url: str) -> list[DetectedObject]:
        ...

    async def describe_image(self, image_url: str, max_candidates: int) -> list[ImageCaption]:
        ...


# ============================================================================
# Error Handling Helpers
# ============================================================================


def safe_execute_sync(
    func: Callable[[], Any],
    operation_name: str,
    log_level: str = "warning",
    default_return=None,
):
    """Run an optional step, logging and returning `default_return` on failure.

    Only used for steps that have a fallback (JSON parse strategies, image
    compression). Required steps raise VisionError instead.
    """
    try:
        return func()
    except Exception as e:
        msg = f"{operation_name}: {e}"
        if log_level == "debug":
            logger.debug(msg)
        else:
            logger.warning(msg)
        return default_return


# ============================================================================
# Image helpers
# ============================================================================


async def fetch_image_bytes(image_url: str, timeout: float = 10) -> bytes:
    """Fetch image bytes from an http(s) URL or decode a data URL.

    Args:
        image_url: http/https URL or data URL (data:image/jpeg;base64,...).
        timeout: Total download timeout in seconds.

    Returns:
        Raw image bytes.

    Raises:
        VisionError: If the image cannot be downloaded or decoded.
    """
    if image_url.startswith("data:"):
        try:
            _, encoded = image_url.split(",", 1)
            return base64.b64decode(encoded, validate=True)
        except (ValueError, binascii.Error) as e:
            raise VisionError(f"Invalid data URL: {e}") from e

    if not image_url.startswith(("http://", "https://")):
        raise VisionError(f"Unsupported image URL scheme: {image_url[:50]}")

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(image_url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                response.raise_for_status()
                return await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise VisionError(f"Image unreachable: {image_url} ({e})") from e


def validate_image_format(image_bytes: bytes) -> bool:
    """Validate image format (JPEG or PNG only).

    Uses filetype to detect the actual format from magic bytes.
    """
    kind = filetype.guess(image_bytes)
    if kind is None or kind.extension not in ("jpg", "jpeg", "png"):
        logger.warning(f"Invalid image format: {kind}. Only JPEG and PNG supported.")
        return False
    return True


def validate_image_size(image_bytes: bytes) -> bool:
    """Validate image size against MAX_IMAGE_SIZE_MB."""
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > config.MAX_IMAGE_SIZE_MB:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {config.MAX_IMAGE_SIZE_MB}MB")
        return False
    return True


def get_mime_type(image_bytes: bytes) -> str:
    kind = filetype.guess(image_bytes)
    if kind is not None and kind.extension == "png":
        return "image/png"
    return "image/jpeg"


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Compress image for API transmission using Pillow.

    Re-encodes as JPEG (quality 85, optimized, progressive), converting color
    modes to RGB and downscaling wider images. Images below
    COMPRESS_IMG_THRESHOLD_KB are returned unchanged, as is the original when
    compression fails.

    Args:
        image_bytes: Raw image bytes to compress
        max_width: Maximum image width in pixels

    Returns:
        Compressed image bytes (or the original bytes)
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(
            f"Image size {size_kb:.1f}KB below compression threshold "
            f"({config.COMPRESS_IMG_THRESHOLD_KB}KB), skipping compression"
        )
        return image_bytes

    def _compress():
        img = Image.open(BytesIO(image_bytes))

        if img.mode in ("RGBA", "LA", "P"):
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            if img.mode == "RGBA":
                rgb_img.paste(img, mask=img.split()[-1])
            else:
                rgb_img.paste(img)
            img = rgb_img

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
        logger.debug(f"Image compressed: {size_kb:.1f}KB → {len(compressed) / 1024:.1f}KB")
        return compressed

    return safe_execute_sync(_compress, "Image compression", default_return=image_bytes)


def parse_vision_json(response_text: Optional[str], schema: type[OutputT]) -> OutputT:
    """Parse JSON from a Gemini reply into `schema`.

    Tries a direct json.loads() first, then extracts the outermost {...} block
    in case the model wrapped the JSON in prose or a code fence.

    Raises:
        VisionError: If no JSON object is found or it does not match `schema`.
    """
    text = response_text or ""

    def _parse_json_direct():
        return json.loads(text)

    def _parse_json_regex():
        json_match = re.search(r"\{.*\}", text, re.DOTALL)
        if json_match:
            return json.loads(json_match.group())
        return None

    parsed = safe_execute_sync(_parse_json_direct, "Direct JSON parse", log_level="debug")
    if not isinstance(parsed, dict):
        parsed = safe_execute_sync(_parse_json_regex, "Regex JSON extraction", log_level="debug")
    if not isinstance(parsed, dict):
        raise VisionError("Vision service returned no JSON object")

    try:
        return schema.model_validate(parsed)
    except ValidationError as e:
        raise VisionError(f"Vision service returned an unexpected shape: {e.error_count()} error(s)") from e


# ============================================================================
# Gemini implementation
# ============================================================================


class GeminiVisionService:
    """VisionService backed by the Gemini vision API (google-genai)."""

    def __init__(
        self,
        api_key: str,
        model: str,
        compress: bool = True,
        client: Optional[genai.Client] = None,
    ) -> None:
        """Initialize the service.

        Args:
            api_key: Gemini API key.
            model: Vision model id (e.g. gemini-2.5-flash-lite).
            compress: Re-encode large images before upload.
            client: Pre-built client (tests); created from api_key when omitted.

        Raises:
            ValueError: If api_key is empty and no client is given.
        """
        if client is None and not api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self.model = model
        self.compress = compress
        self._client = client or genai.Client(api_key=api_key)
        # Prepared images by URL, shared by the tag/object/caption calls of a request
        self._images: OrderedDict[str, asyncio.Task] = OrderedDict()

    async def _load_image(self, image_url: str) -> tuple[bytes, str]:
        """Return (bytes, mime type) for `image_url`, fetching it at most once.

        Concurrent callers await the same load. Failed or cancelled loads are
        evicted so a later call retries the download.
        """
        task = self._images.get(image_url)
        if task is None:
            task = asyncio.ensure_future(self._prepare_image(image_url))
            self._images[image_url] = task
            while len(self._images) > IMAGE_CACHE_SIZE:
                self._images.popitem(last=False)
        else:
            self._images.move_to_end(image_url)

        try:
            return await task
        except BaseException:
            if self._images.get(image_url) is task:
                del self._images[image_url]
            raise

    async def _prepare_image(self, image_url: str) -> tuple[bytes, str]:
        image_bytes = await fetch_image_bytes(image_url)
        if not validate_image_format(image_bytes):
            raise VisionError("Invalid image format. Only JPEG and PNG are supported.")
        if not validate_image_size(image_bytes):
            raise VisionError(f"Image too large. Maximum size is {config.MAX_IMAGE_SIZE_MB}MB")
        if self.compress:
            image_bytes = compress_image(image_bytes)
        return image_bytes, get_mime_type(image_bytes)

    async def _analyze(self, image_url: str, prompt: str, schema: type[OutputT]) -> OutputT:
        image_bytes, mime_type = await self._load_image(image_url)
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=self.model,
                contents=[prompt, types.Part.from_bytes(data=image_bytes, mime_type=mime_type)],
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        except Exception as e:
            raise VisionError(f"Gemini vision API call failed: {e}") from e
        return parse_vision_json(response.text, schema)

    async def analyze_tags(self, image_url: str) -> list[VisionTag]:
        output = await self._analyze(image_url, TAGS_PROMPT, VisionTagsOutput)
        logger.debug(f"Vision tags: {[t.name for t in output.tags]}")
        return output.tags

    async def detect_objects(self, image_url: str) -> list[DetectedObject]:
        output = await self._analyze(image_url, OBJECTS_PROMPT, DetectedObjectsOutput)
        logger.debug(f"Detected objects: {[o.object for o in output.objects]}")
        return output.objects

    async def describe_image(self, image_url: str, max_candidates: int) -> list[ImageCaption]:
        output = await self._analyze(image_url, get_captions_prompt(max_candidates), ImageCaptionsOutput)
        return output.captions[:max_candidates]
