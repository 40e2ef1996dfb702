import logging

import cv2

from errors import InpaintingFailed
from watermark_types import ALGORITHM_TELEA, ALGORITHM_NAVIER_STOKES

logger = logging.getLogger(__name__)

_NAVIER_STOKES_NAMES = {'navier_stokes', 'ns'}
_KNOWN_NAMES = _NAVIER_STOKES_NAMES | {ALGORITHM_TELEA}


def resolve_algorithm(name) -> int:
    """
    Map an algorithm name to the OpenCV inpaint flag.

    'navier_stokes' / 'ns' (any case) select cv2.INPAINT_NS. Everything else,
    unknown names included, falls back to cv2.INPAINT_TELEA.
    """
    key = str(name or '').strip().lower()
    if key in _NAVIER_STOKES_NAMES:
        return cv2.INPAINT_NS

    if key and key not in _KNOWN_NAMES:
        logger.warning(f"Unknown inpainting algorithm {name!r}, falling back to {ALGORITHM_TELEA}")
    return cv2.INPAINT_TELEA


def algorithm_name(flag: int) -> str:
    return ALGORITHM_NAVIER_STOKES if flag == cv2.INPAINT_NS else ALGORITHM_TELEA


def inpaint(frame, mask, radius, algorithm=ALGORITHM_TELEA, frame_index=None):
    """
    Fill the masked pixels of one frame from their surroundings.

    Args:
        frame: numpy array (H, W, 3) BGR
        mask: numpy array (H, W) uint8, 255 = area to inpaint
        radius: neighbourhood radius sampled around each masked pixel (> 0)
        algorithm: algorithm name or an OpenCV INPAINT_* flag
        frame_index: frame number reported in errors (video mode)

    Returns:
        inpainted frame, same shape and dtype as the input
    """
    if not radius > 0:
        raise InpaintingFailed(f"inpaint radius must be > 0, got {radius}", frame_index)
    if frame is None or getattr(frame, 'size', 0) == 0:
        raise InpaintingFailed("empty frame buffer", frame_index)
    if mask is None or mask.shape[:2] != frame.shape[:2]:
        mask_shape = None if mask is None else mask.shape[:2]
        raise InpaintingFailed(
            f"mask shape {mask_shape} does not match frame shape {frame.shape[:2]}",
            frame_index,
        )

    flag = algorithm if isinstance(algorithm, int) else resolve_algorithm(algorithm)

    try:
        return cv2.inpaint(frame, mask, float(radius), flag)
    except cv2.error as e:
        raise InpaintingFailed(str(e).strip(), frame_index) from e


class OpenCVInpainter:
    """Inpainter bound to one set of removal options, reused across frames."""

    def __init__(self, options):
        self.radius = options.inpaint_radius
        self.flag = resolve_algorithm(options.algorithm)
        self.algorithm = algorithm_name(self.flag)

    def inpaint_region(self, image, mask, frame_index=None):
        """
        Remove watermark under the mask.

        Args:
            image: numpy array (H, W, 3) BGR
            mask: numpy array (H, W) where 255 = area to inpaint

        Returns:
            inpainted image as numpy array
        """
        return inpaint(image, mask, self.radius, self.flag, frame_index=frame_index)
