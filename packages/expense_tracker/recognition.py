"""Seam between image text recognition and the receipt parser.

Recognition itself (camera, OCR engine) is supplied by the host application
through the :class:`TextRecognizer` protocol. This module only fixes the
contract: a recognizer returns best-effort multi-line text, possibly empty,
and signals unusable input with :class:`~expense_tracker.errors.InvalidImageError`.
"""

from __future__ import annotations

from typing import Protocol

from .errors import InvalidImageError, RecognitionError
from .logging_setup import get_logger
from .models import RawObservation
from .receipt_parser import ReceiptTextParser

logger = get_logger(__name__)


class TextRecognizer(Protocol):
    def recognize_text(self, image: bytes) -> str: ...


def scan_receipt(image: bytes, recognizer: TextRecognizer) -> RawObservation:
    """Recognize text in ``image`` and parse it into an observation.

    Raises :class:`InvalidImageError` for an empty payload without calling the
    recognizer; any :class:`RecognitionError` from the recognizer propagates
    unchanged. Text that parses to nothing is not an error.
    """

    if not image:
        raise InvalidImageError("image is empty")
    try:
        text = recognizer.recognize_text(image)
    except RecognitionError:
        logger.warning("text recognition failed for %d-byte image", len(image))
        raise
    logger.debug("recognized %d characters", len(text))
    return ReceiptTextParser.parse(text)


__all__ = [
    "TextRecognizer",
    "scan_receipt",
]
