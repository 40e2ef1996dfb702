"""
Audio extraction and remux through the ffmpeg command line tools.

The video pipeline only talks to the two methods extract_audio / remux, so
tests can swap in any object with the same shape.
"""

import os
import logging
import subprocess

import config
from errors import ExternalToolFailed, RemuxFailed

logger = logging.getLogger(__name__)


class FFmpegMuxer:
    def __init__(self, ffmpeg_bin=None, ffprobe_bin=None, audio_codec=None,
                 audio_bitrate=None, timeout=None):
        self.ffmpeg_bin = ffmpeg_bin or config.FFMPEG_BIN
        self.ffprobe_bin = ffprobe_bin or config.FFPROBE_BIN
        self.audio_codec = audio_codec or config.AUDIO_CODEC
        self.audio_bitrate = audio_bitrate or config.AUDIO_BITRATE
        self.timeout = timeout if timeout is not None else config.ffmpeg_timeout()

    def _run(self, cmd):
        logger.debug(f"Running: {' '.join(cmd)}")
        return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)

    def has_audio_stream(self, video_path):
        """
        Ask ffprobe whether the file has an audio stream.

        Returns:
            True / False, or None when ffprobe could not answer
        """
        check_audio_cmd = [
            self.ffprobe_bin,
            '-v', 'error',
            '-select_streams', 'a:0',
            '-show_entries', 'stream=codec_type',
            '-of', 'default=noprint_wrappers=1:nokey=1',
            video_path
        ]
        try:
            result = self._run(check_audio_cmd)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"ffprobe unavailable ({e}), skipping audio probe")
            return None

        if result.returncode != 0:
            return None
        return 'audio' in result.stdout

    def extract_audio(self, video_path, audio_output_path):
        """
        Pull the audio track out of a video as AAC.

        Best effort: a missing tool, a silent source or a failed encode all
        return None instead of raising.

        Returns:
            audio_output_path on success, else None
        """
        if self.has_audio_stream(video_path) is False:
            logger.info(f"No audio track in {video_path}")
            return None

        cmd = [
            self.ffmpeg_bin,
            '-y',
            '-i', video_path,
            '-vn',
            '-acodec', self.audio_codec,
            '-b:a', self.audio_bitrate,
            audio_output_path
        ]
        try:
            result = self._run(cmd)
        except (OSError, subprocess.SubprocessError) as e:
            logger.info(f"Audio extraction skipped, ffmpeg unavailable: {e}")
            _remove_quietly(audio_output_path)
            return None

        if result.returncode != 0 or not os.path.exists(audio_output_path):
            logger.info(f"No audio extracted from {video_path} (ffmpeg exit {result.returncode})")
            _remove_quietly(audio_output_path)
            return None

        logger.info(f"Extracted audio track to {audio_output_path}")
        return audio_output_path

    def remux(self, video_path, audio_path, output_path):
        """
        Combine the processed silent video with the extracted audio.

        Video is stream-copied; audio is re-encoded. Overwrites output_path.
        """
        cmd = [
            self.ffmpeg_bin,
            '-y',
            '-i', video_path,
            '-i', audio_path,
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-c:v', 'copy',
            '-c:a', self.audio_codec,
            '-b:a', self.audio_bitrate,
            '-strict', 'experimental',
            output_path
        ]
        try:
            result = self._run(cmd)
        except OSError as e:
            raise ExternalToolFailed(f"Failed to run FFmpeg: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolFailed(f"FFmpeg merge timed out after {e.timeout}s") from e

        if result.returncode != 0:
            raise RemuxFailed(result.stderr)

        logger.info(f"Merged audio into {output_path}")
        return output_path


def _remove_quietly(path):
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
