"""
Vision Logger: Vision Language Model (VLM) Integration
Sends a captured frame to Google Gemini and returns its description.
"""
import base64
import logging
import re

import google.generativeai as genai

import config
from modules.errors import AnalysisError

logger = logging.getLogger(__name__)

_DATA_URL_HEADER = re.compile(r"^data:image/(png|jpg|jpeg|webp);base64,")


def strip_data_url(image_data: str) -> str:
    """Drop a data URL header if present, leaving the bare base64 payload."""
    return _DATA_URL_HEADER.sub("", image_data, count=1)


async def analyze_image(
    api_key: str,
    image_data: str,
    model_name: str = config.GEMINI_MODEL,
) -> str:
    """
    Describe an image with Gemini.

    Args:
        api_key: Gemini API key for this session.
        image_data: JPEG as a data URL or raw base64.

    Returns:
        The description text, or a fixed placeholder if Gemini sent none.

    Raises:
        AnalysisError: for any failure at all. The underlying cause is
            logged here and not passed on.
    """
    try:
        if not api_key:
            raise ValueError("API key is empty")
        image_bytes = base64.b64decode(strip_data_url(image_data), validate=True)

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name)
        response = await model.generate_content_async([
            {"mime_type": "image/jpeg", "data": image_bytes},
            config.ANALYSIS_PROMPT,
        ])
        text = _response_text(response)
    except Exception:
        logger.exception("Gemini API error")
        raise AnalysisError(config.ANALYSIS_ERROR_MESSAGE) from None

    return text or config.NO_TEXT_PLACEHOLDER


def _response_text(response) -> str:
    # .text raises ValueError when the candidate carries no text parts
    # (e.g. blocked or empty output); that is "no text", not a failure.
    try:
        return response.text or ""
    except ValueError:
        logger.warning("Gemini returned no text parts")
        return ""
