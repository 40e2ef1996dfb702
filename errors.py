"""
Error taxonomy for watermark removal jobs.

Every failure is terminal for the job that raised it; nothing is retried.
The `kind` string is what the web API reports alongside the message.
"""


class WatermarkRemovalError(Exception):
    kind = 'error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class DecodeFailed(WatermarkRemovalError):
    kind = 'decode_failed'


class InvalidRegion(WatermarkRemovalError):
    kind = 'invalid_region'


class RegionOutOfBounds(InvalidRegion):
    kind = 'region_out_of_bounds'

    def __init__(self, frame_width, frame_height, region, what='Frame'):
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.region = region
        super().__init__(
            f"Region exceeds {what.lower()} bounds. {what}: {frame_width}x{frame_height}, "
            f"Region: ({region.x}, {region.y}) + {region.width}x{region.height}"
        )


class InpaintingFailed(WatermarkRemovalError):
    kind = 'inpainting_failed'

    def __init__(self, message, frame_index=None):
        self.frame_index = frame_index
        if frame_index is not None:
            message = f"Inpainting failed at frame {frame_index}: {message}"
        else:
            message = f"Inpainting failed: {message}"
        super().__init__(message)


class EncodeFailed(WatermarkRemovalError):
    kind = 'encode_failed'


class VideoOpenFailed(WatermarkRemovalError):
    kind = 'video_open_failed'


class WriterOpenFailed(WatermarkRemovalError):
    kind = 'writer_open_failed'


class Cancelled(WatermarkRemovalError):
    kind = 'cancelled'


class ExternalToolFailed(WatermarkRemovalError):
    kind = 'external_tool_failed'


class RemuxFailed(ExternalToolFailed):
    kind = 'remux_failed'

    def __init__(self, stderr):
        self.stderr = stderr
        super().__init__(f"FFmpeg merge failed: {stderr}")
