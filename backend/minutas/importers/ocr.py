"""
Minutas — OCR import for scanned documents.

Tesseract word boxes are regrouped into lines and lines into paragraphs
using its own block/paragraph numbering.
"""

from __future__ import annotations

import io

import pytesseract
from PIL import Image, ImageFilter, UnidentifiedImageError

from minutas.errors import ConversionFailedError, ImportCorruptFileError
from minutas.utils.logging import logger, step_timer

MIN_CONFIDENCE = 0.0


def _preprocess_image(filename: str, image_bytes: bytes) -> Image.Image:
    """Grayscale and sharpen before OCR."""
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImportCorruptFileError(filename, "unreadable image") from exc
    if img.mode != "L":
        img = img.convert("L")
    return img.filter(ImageFilter.SHARPEN)


def group_words(data: dict) -> list[str]:
    """
    ``image_to_data`` dict → paragraph strings.

    Words with negative confidence are layout rows, not text.
    """
    paragraphs: dict[tuple[int, int], dict[int, list[str]]] = {}
    for i, word in enumerate(data["text"]):
        word = (word or "").strip()
        if not word or float(data["conf"][i]) < MIN_CONFIDENCE:
            continue
        key = (data["block_num"][i], data["par_num"][i])
        paragraphs.setdefault(key, {}).setdefault(data["line_num"][i], []).append(word)
    return [
        " ".join(" ".join(words) for _, words in sorted(lines.items()))
        for _, lines in sorted(paragraphs.items())
    ]


def image_to_paragraphs(filename: str, image_bytes: bytes, lang: str) -> list[str]:
    with step_timer("OCR — extract text from image"):
        img = _preprocess_image(filename, image_bytes)
        try:
            data = pytesseract.image_to_data(img, lang=lang, output_type=pytesseract.Output.DICT)
        except pytesseract.TesseractNotFoundError as exc:
            raise ConversionFailedError("OCR", "tesseract is not installed") from exc
        except pytesseract.TesseractError as exc:
            raise ConversionFailedError("OCR", str(exc)) from exc
        paragraphs = group_words(data)
        logger.info("  OCR: %d paragraph(s)", len(paragraphs))
        return paragraphs
