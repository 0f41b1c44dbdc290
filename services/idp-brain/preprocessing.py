"""Optional cleanup of scanned page images before OCR.

1. Decode image bytes
2. Deskew slightly rotated scans via Hough line detection
3. CLAHE contrast normalization on the lightness channel
4. Downscale oversized scans (never upscale, small digits need the pixels)
5. Encode as lossless PNG

Each step degrades gracefully: if it fails, the image from the previous step
continues. Undecodable input is returned untouched with its MIME type.
"""

import logging

import cv2
import numpy as np

from config import settings

logger = logging.getLogger(__name__)

MIN_SKEW_DEGREES = 0.5
MAX_SKEW_DEGREES = 15.0


def preprocess(image_bytes: bytes, mime_type: str, max_side: int | None = None) -> tuple[bytes, str]:
    """Return ``(bytes, mime_type)`` of the cleaned page, or the input on failure."""
    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode image, sending original")
        return image_bytes, mime_type

    img = _deskew(img)
    img = _normalize_contrast(img)
    img = _limit_size(img, max_side if max_side is not None else settings.MAX_IMAGE_SIDE)

    encoded = _encode_png(img)
    if encoded is None:
        return image_bytes, mime_type
    return encoded, "image/png"


def _decode(image_bytes: bytes) -> np.ndarray | None:
    if not image_bytes:
        return None
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    try:
        return cv2.imdecode(arr, cv2.IMREAD_COLOR)
    except Exception:
        return None


def _skew_angle(img: np.ndarray) -> float | None:
    """Median angle of near-horizontal lines (text baselines, table rules)."""
    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    edges = cv2.Canny(gray, 50, 150, apertureSize=3)
    min_length = max(50, img.shape[1] // 8)
    lines = cv2.HoughLinesP(edges, 1, np.pi / 360, threshold=100, minLineLength=min_length, maxLineGap=10)

    if lines is None or len(lines) < 3:
        return None

    angles = [
        np.degrees(np.arctan2(y2 - y1, x2 - x1))
        for x1, y1, x2, y2 in lines.reshape(-1, 4)
    ]
    angles = [a for a in angles if abs(a) <= MAX_SKEW_DEGREES]
    if not angles:
        return None
    return float(np.median(angles))


def _deskew(img: np.ndarray) -> np.ndarray:
    try:
        angle = _skew_angle(img)
        if angle is None or abs(angle) < MIN_SKEW_DEGREES:
            return img

        logger.debug("preprocessing: deskewing by %.2f degrees", angle)
        h, w = img.shape[:2]
        matrix = cv2.getRotationMatrix2D((w / 2, h / 2), angle, 1.0)
        # Scans have white margins; fill the rotated corners with white too
        return cv2.warpAffine(
            img, matrix, (w, h),
            flags=cv2.INTER_CUBIC,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(255, 255, 255),
        )
    except Exception as e:
        logger.warning("preprocessing: deskew failed: %s", e)
        return img


def _normalize_contrast(img: np.ndarray) -> np.ndarray:
    try:
        lab = cv2.cvtColor(img, cv2.COLOR_BGR2LAB)
        lightness, a_channel, b_channel = cv2.split(lab)
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        lab = cv2.merge([clahe.apply(lightness), a_channel, b_channel])
        return cv2.cvtColor(lab, cv2.COLOR_LAB2BGR)
    except Exception as e:
        logger.warning("preprocessing: contrast normalization failed: %s", e)
        return img


def _limit_size(img: np.ndarray, max_side: int) -> np.ndarray:
    h, w = img.shape[:2]
    longest = max(h, w)
    if longest <= max_side:
        return img

    scale = max_side / longest
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    try:
        return cv2.resize(img, size, interpolation=cv2.INTER_AREA)
    except Exception as e:
        logger.warning("preprocessing: downscale failed: %s", e)
        return img


def _encode_png(img: np.ndarray) -> bytes | None:
    try:
        success, buf = cv2.imencode(".png", img)
    except Exception as e:
        logger.warning("preprocessing: PNG encode failed: %s", e)
        return None
    return buf.tobytes() if success else None
