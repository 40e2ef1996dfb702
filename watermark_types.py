"""
Data records shared by the image and video pipelines.
"""

from dataclasses import dataclass, asdict
from typing import Optional

ALGORITHM_TELEA = 'telea'
ALGORITHM_NAVIER_STOKES = 'navier_stokes'

_TRUE_STRINGS = {'true', '1', 'yes', 'on'}
_FALSE_STRINGS = {'false', '0', 'no', 'off', ''}


def parse_flag(value) -> bool:
    """Strict boolean from JSON or form input; "false" stays False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass(frozen=True)
class Region:
    """Watermark rectangle in absolute pixel coordinates, top-left origin."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_dict(cls, data):
        return cls(
            x=int(data['x']),
            y=int(data['y']),
            width=int(data['width']),
            height=int(data['height']),
        )

    @classmethod
    def parse(cls, text: str):
        """Parse 'x,y,w,h' as typed on the command line."""
        parts = [p.strip() for p in text.split(',')]
        if len(parts) != 4:
            raise ValueError(f"Region must be x,y,width,height, got {text!r}")
        x, y, w, h = (int(p) for p in parts)
        return cls(x, y, w, h)

    @property
    def right(self):
        return self.x + self.width

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def area(self):
        return self.width * self.height

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class RemovalOptions:
    algorithm: str = ALGORITHM_TELEA
    dilate_pixels: int = 3
    inpaint_radius: float = 5.0
    lossless: bool = False

    def __post_init__(self):
        if self.dilate_pixels < 0:
            raise ValueError(f"dilate_pixels must be >= 0, got {self.dilate_pixels}")
        if not self.inpaint_radius > 0:
            raise ValueError(f"inpaint_radius must be > 0, got {self.inpaint_radius}")

    @classmethod
    def from_dict(cls, data):
        """Build options from a JSON-ish dict, missing keys take defaults."""
        if not data:
            return cls()
        defaults = cls()
        return cls(
            algorithm=str(data.get('algorithm', defaults.algorithm)),
            dilate_pixels=int(data.get('dilate_pixels', defaults.dilate_pixels)),
            inpaint_radius=float(data.get('inpaint_radius', defaults.inpaint_radius)),
            lossless=parse_flag(data.get('lossless', defaults.lossless)),
        )

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    path: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class VideoInfo:
    width: int
    height: int
    fps: float
    frame_count: int
    duration_secs: float
    codec: str
    path: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ProcessingProgress:
    current_frame: int = 0
    total_frames: int = 0
    percent: float = 0.0
    estimated_remaining_secs: Optional[float] = None

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ProcessResult:
    output_path: str
    original_size: int
    processed_size: int
    output_format: str
    width: int
    height: int

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class VideoProcessResult:
    output_path: str
    frames_processed: int
    duration_secs: float
    has_audio: bool = False

    def to_dict(self):
        return asdict(self)


BATCH_PENDING = 'pending'
BATCH_PROCESSING = 'processing'
BATCH_COMPLETED = 'completed'
BATCH_FAILED = 'failed'


@dataclass
class BatchItem:
    """One file in a batch run; mutated as the batch progresses."""
    path: str
    status: str = BATCH_PENDING
    output_path: Optional[str] = None
    error: Optional[str] = None
    result: Optional[ProcessResult] = None

    def to_dict(self):
        return {
            'path': self.path,
            'status': self.status,
            'output_path': self.output_path,
            'error': self.error,
        }
