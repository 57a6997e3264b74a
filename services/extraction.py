"""
Text extraction for uploaded study materials.
"""
from core.logging import get_logger

logger = get_logger("extraction")

TEXT_MIME_TYPES = {"text/plain", "text/markdown"}


def extract_text(content: bytes, mime_type: str) -> str:
    """
    Turn stored file bytes into text for question generation.

    Plain text and markdown are decoded as UTF-8. Every other type (PDF,
    DOCX, images) gets the same naive decode, which yields mostly binary
    noise; that limitation is logged rather than hidden. Invalid byte
    sequences become U+FFFD, so this never raises on content.
    """
    if mime_type not in TEXT_MIME_TYPES:
        logger.warning("No dedicated extractor, decoding raw bytes as UTF-8",
                       mime_type=mime_type, size=len(content))
    return content.decode("utf-8", errors="replace")
