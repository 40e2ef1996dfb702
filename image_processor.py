"""
Still image watermark removal.

Load -> Validate -> BuildMask -> Dilate -> Inpaint -> Encode. Any stage
failing ends the job with that stage's error.
"""

import os
import shutil
import logging

import cv2
import numpy as np

import config
from errors import DecodeFailed, EncodeFailed
from opencv_inpaint import OpenCVInpainter
from region_mask import prepare_mask
from watermark_types import ImageInfo, ProcessResult, RemovalOptions

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95
PNG_COMPRESSION = 6
PNG_COMPRESSION_LOSSLESS = 9
WEBP_QUALITY = 95
# OpenCV switches WebP to lossless mode for quality values above 100
WEBP_QUALITY_LOSSLESS = 101

_JPEG_EXTENSIONS = {'jpg', 'jpeg'}


def _extension(path: str) -> str:
    return os.path.splitext(path)[1].lstrip('.').lower()


def encode_params(extension: str, lossless: bool = False):
    """
    Pick imwrite/imencode parameters for an output format.

    Returns:
        (params, extension) where extension is the format actually written;
        lossless JPEG requests come back as PNG.
    """
    ext = extension.lstrip('.').lower()

    if ext in _JPEG_EXTENSIONS:
        if lossless:
            return [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION_LOSSLESS], 'png'
        return [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY], ext
    if ext == 'png':
        level = PNG_COMPRESSION_LOSSLESS if lossless else PNG_COMPRESSION
        return [cv2.IMWRITE_PNG_COMPRESSION, level], ext
    if ext == 'webp':
        quality = WEBP_QUALITY_LOSSLESS if lossless else WEBP_QUALITY
        return [cv2.IMWRITE_WEBP_QUALITY, quality], ext

    # bmp, tiff, ... are written with encoder defaults
    return [], ext


def resolve_output_path(output_path: str, lossless: bool) -> str:
    """Swap a .jpg/.jpeg output for .png when a lossless encode is requested."""
    root, ext = os.path.splitext(output_path)
    if lossless and ext.lstrip('.').lower() in _JPEG_EXTENSIONS:
        return root + '.png'
    return output_path


def load_image(image_path: str) -> np.ndarray:
    """Decode an image as 3-channel BGR, raising DecodeFailed on failure."""
    if not os.path.isfile(image_path):
        raise DecodeFailed(f"Failed to load image: {image_path} does not exist")

    image = cv2.imread(image_path, cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise DecodeFailed(f"Failed to load image: {image_path} could not be decoded")
    return image


def write_image(output_path: str, image: np.ndarray, params) -> None:
    try:
        ok = cv2.imwrite(output_path, image, params)
    except cv2.error as e:
        raise EncodeFailed(f"Failed to save image {output_path}: {str(e).strip()}") from e
    if not ok:
        raise EncodeFailed(f"Failed to save image {output_path}")


def get_image_info(image_path: str) -> ImageInfo:
    image = load_image(image_path)
    h, w = image.shape[:2]
    return ImageInfo(width=w, height=h, path=image_path)


def process_image(image_path, region, options=None, output_path=None) -> ProcessResult:
    """
    Remove the watermark inside `region` from a still image.

    Args:
        image_path: Source image file
        region: Region to reconstruct
        options: RemovalOptions, defaults when None
        output_path: Destination file; a unique file in the work directory
            with the source extension is used when omitted

    Returns:
        ProcessResult with the path actually written (which may end in .png
        for a lossless JPEG request) and original/processed byte sizes
    """
    options = options or RemovalOptions()

    image = load_image(image_path)
    original_size = os.path.getsize(image_path)
    h, w = image.shape[:2]

    mask = prepare_mask(w, h, region, options.dilate_pixels, what='Image')

    inpainter = OpenCVInpainter(options)
    result = inpainter.inpaint_region(image, mask)

    if output_path is None:
        output_path = config.make_output_path('processed', _extension(image_path) or 'png')
    output_path = resolve_output_path(output_path, options.lossless)

    params, output_format = encode_params(_extension(output_path), options.lossless)
    write_image(output_path, result, params)

    processed_size = os.path.getsize(output_path)
    logger.info(
        f"Processed {image_path} ({w}x{h}, {inpainter.algorithm}) -> {output_path} "
        f"[{original_size} -> {processed_size} bytes]"
    )

    return ProcessResult(
        output_path=output_path,
        original_size=original_size,
        processed_size=processed_size,
        output_format=output_format,
        width=w,
        height=h,
    )


def reencode_lossless(data: bytes, original_ext: str):
    """
    Re-encode an encoded image buffer without further quality loss.

    Returns:
        (encoded bytes, extension) - JPEG input comes back as PNG
    """
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
    if img is None or img.size == 0:
        raise DecodeFailed("Failed to decode image for lossless re-encoding")

    ext = original_ext.lstrip('.').lower()
    if ext != 'webp':
        ext = 'png'
    params, ext = encode_params(ext, lossless=True)

    ok, encoded = cv2.imencode(f".{ext}", img, params)
    if not ok:
        raise EncodeFailed(f"Failed to encode lossless {ext} image")
    return encoded.tobytes(), ext


def save_processed_image(source_path: str, destination_path: str) -> str:
    """Copy a processed file to the location the user picked."""
    try:
        shutil.copy2(source_path, destination_path)
    except OSError as e:
        raise EncodeFailed(f"Failed to save image: {e}") from e
    return destination_path
