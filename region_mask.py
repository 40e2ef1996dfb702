"""
Region -> binary mask conversion and mask dilation.

Shared by the image and the video pipeline. Masks are (H, W) uint8 arrays
where 255 marks pixels to reconstruct and 0 marks pixels to keep.
"""

import cv2
import numpy as np

from errors import InvalidRegion, RegionOutOfBounds

MASK_SELECTED = 255
MASK_BACKGROUND = 0


def validate_region(frame_width: int, frame_height: int, region, what: str = 'Frame') -> None:
    """
    Check a region against frame dimensions.

    Args:
        frame_width: Width of the frame the region applies to
        frame_height: Height of the frame the region applies to
        region: Region (x, y, width, height)
        what: Noun used in the bounds error message ('Image', 'Video', ...)

    Raises:
        InvalidRegion: non-positive size or negative origin
        RegionOutOfBounds: region extends past the right or bottom edge
    """
    if region.x < 0 or region.y < 0 or region.width <= 0 or region.height <= 0:
        raise InvalidRegion(
            f"Invalid region dimensions: ({region.x}, {region.y}) + "
            f"{region.width}x{region.height}"
        )

    if region.x + region.width > frame_width or region.y + region.height > frame_height:
        raise RegionOutOfBounds(frame_width, frame_height, region, what=what)


def build_mask(frame_width: int, frame_height: int, region, what: str = 'Frame') -> np.ndarray:
    """
    Create a binary mask with the region filled.

    Returns:
        Mask (frame_height, frame_width) uint8 with 255 inside the region
    """
    validate_region(frame_width, frame_height, region, what=what)

    mask = np.zeros((frame_height, frame_width), dtype=np.uint8)
    mask[region.y:region.y + region.height, region.x:region.x + region.width] = MASK_SELECTED
    return mask


def dilate_mask(mask: np.ndarray, dilate_pixels: int) -> np.ndarray:
    """
    Grow the masked area by roughly `dilate_pixels` for smoother blending.

    A margin of 0 (or less) returns the mask unchanged. The input array is
    never modified.
    """
    if dilate_pixels <= 0:
        return mask

    kernel_size = dilate_pixels * 2 + 1
    kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (kernel_size, kernel_size))

    # Pixels outside the frame count as background, never as selected
    return cv2.dilate(
        mask,
        kernel,
        iterations=1,
        borderType=cv2.BORDER_CONSTANT,
        borderValue=MASK_BACKGROUND,
    )


def prepare_mask(frame_width: int, frame_height: int, region, dilate_pixels: int,
                 what: str = 'Frame') -> np.ndarray:
    """build_mask followed by dilate_mask, computed once per job."""
    mask = build_mask(frame_width, frame_height, region, what=what)
    return dilate_mask(mask, dilate_pixels)


def selected_pixel_count(mask: np.ndarray) -> int:
    return int(np.count_nonzero(mask == MASK_SELECTED))
