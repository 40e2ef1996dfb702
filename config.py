"""
Runtime configuration for the watermark remover.

All values come from environment variables so the CLI, the web API and the
tests can be pointed at different work directories / ffmpeg builds without
touching code.
"""

import os
import time
import uuid
import logging
import tempfile

logger = logging.getLogger(__name__)


def _env_int(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


# Work directory for generated outputs and temporary audio/video files
TEMP_DIR = os.getenv(
    'WATERMARK_TEMP_DIR',
    os.path.join(tempfile.gettempdir(), 'watermark-remover')
)

# External tools
FFMPEG_BIN = os.getenv('FFMPEG_BIN', 'ffmpeg')
FFPROBE_BIN = os.getenv('FFPROBE_BIN', 'ffprobe')
# 0 = wait for ffmpeg as long as it takes
FFMPEG_TIMEOUT = _env_int('FFMPEG_TIMEOUT', 0)

# Video output
VIDEO_FOURCC = os.getenv('VIDEO_FOURCC', 'mp4v')
AUDIO_CODEC = os.getenv('AUDIO_CODEC', 'aac')
AUDIO_BITRATE = os.getenv('AUDIO_BITRATE', '192k')

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
ENABLE_ACCESS_LOGS = str(os.getenv('ACCESS_LOGS', '0')).lower() in ('1', 'true', 'yes', 'on')

# Web API
MAX_CONTENT_LENGTH = _env_int('MAX_CONTENT_LENGTH', 1024 * 1024)

VIDEO_EXTENSIONS = {'mp4', 'mov', 'avi', 'mkv', 'webm', 'm4v'}


def ffmpeg_timeout():
    """Timeout for subprocess.run, None when disabled."""
    return FFMPEG_TIMEOUT if FFMPEG_TIMEOUT > 0 else None


def get_temp_dir() -> str:
    """Return the work directory, creating it if needed."""
    os.makedirs(TEMP_DIR, exist_ok=True)
    return TEMP_DIR


def make_output_path(prefix: str, extension: str) -> str:
    """
    Build a unique file path inside the work directory.

    Args:
        prefix: Leading part of the filename (e.g. 'processed')
        extension: File extension with or without the leading dot

    Returns:
        Absolute path like <TEMP_DIR>/processed_1a2b3c4d_1700000000.png
    """
    extension = extension.lstrip('.') or 'png'
    unique = uuid.uuid4().hex[:8]
    filename = f"{prefix}_{unique}_{int(time.time())}.{extension}"
    return os.path.join(get_temp_dir(), filename)


def cleanup_temp_files() -> int:
    """Delete every regular file in the work directory. Returns count removed."""
    if not os.path.isdir(TEMP_DIR):
        return 0

    removed = 0
    for name in os.listdir(TEMP_DIR):
        path = os.path.join(TEMP_DIR, name)
        if not os.path.isfile(path):
            continue
        try:
            os.remove(path)
            removed += 1
        except OSError as e:
            logger.warning(f"Failed to delete temp file {path}: {e}")

    logger.info(f"Cleaned up {removed} temp file(s) in {TEMP_DIR}")
    return removed


def media_kind(path: str) -> str:
    """'video' or 'image', judged from the file extension."""
    ext = os.path.splitext(path)[1].lstrip('.').lower()
    return 'video' if ext in VIDEO_EXTENSIONS else 'image'
