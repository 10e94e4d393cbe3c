"""
Image eligibility checks.

Image recognition and content types are two separate tables on purpose: an
extension can be a recognized image format and still be uploaded as
`application/octet-stream`, and the content-type lookup is case-sensitive
while format recognition is not.
"""
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Union

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ImageFormat(str, Enum):
    AVIF = "avif"
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    TIFF = "tiff"
    TGA = "tga"
    DDS = "dds"
    BMP = "bmp"
    ICO = "ico"
    HDR = "hdr"
    OPENEXR = "openexr"
    PNM = "pnm"
    FARBFELD = "farbfeld"
    QOI = "qoi"


IMAGE_EXTENSIONS: Dict[str, ImageFormat] = {
    "avif": ImageFormat.AVIF,
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "jfif": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "apng": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
    "tif": ImageFormat.TIFF,
    "tiff": ImageFormat.TIFF,
    "tga": ImageFormat.TGA,
    "dds": ImageFormat.DDS,
    "bmp": ImageFormat.BMP,
    "ico": ImageFormat.ICO,
    "hdr": ImageFormat.HDR,
    "exr": ImageFormat.OPENEXR,
    "pbm": ImageFormat.PNM,
    "pam": ImageFormat.PNM,
    "ppm": ImageFormat.PNM,
    "pgm": ImageFormat.PNM,
    "pnm": ImageFormat.PNM,
    "ff": ImageFormat.FARBFELD,
    "qoi": ImageFormat.QOI,
}

CONTENT_TYPES: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}

PathLike = Union[str, os.PathLike]


def file_extension(path: PathLike) -> str:
    """Extension without the leading dot, as written; empty when there is none."""
    return Path(path).suffix[1:]


def image_format(path: PathLike):
    return IMAGE_EXTENSIONS.get(file_extension(path).lower())


def is_image(path: PathLike) -> bool:
    return image_format(path) is not None


def is_valid_size(path: PathLike, min_size: int, max_size: int) -> bool:
    """Reads the current on-disk size. Unreadable files are never valid."""
    try:
        size = os.stat(path).st_size
    except OSError as e:
        log.debug("Could not stat %s: %s", path, e)
        return False
    return min_size <= size <= max_size


def is_eligible(path: PathLike, min_size: int, max_size: int) -> bool:
    return is_image(path) and is_valid_size(path, min_size, max_size)


def content_type_for(extension: str) -> str:
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)
