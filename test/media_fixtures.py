"""Synthetic media and a fake muxer shared by the test modules."""

import os
import shutil
import threading

import cv2
import numpy as np

from errors import RemuxFailed

WIDTH = 64
HEIGHT = 48
FPS = 10.0
WATERMARK = (40, 30, 16, 10)  # x, y, w, h


def make_frame(width=WIDTH, height=HEIGHT, shift=0, watermark=WATERMARK):
    """Smooth gradient with a bright rectangle stamped on it."""
    xs = np.linspace(0, 160, width, dtype=np.float32)
    ys = np.linspace(0, 80, height, dtype=np.float32)
    base = (xs[None, :] + ys[:, None] + shift) % 200
    frame = np.stack([base, base * 0.5 + 40, 180 - base * 0.5], axis=-1).astype(np.uint8)
    if watermark is not None:
        x, y, w, h = watermark
        frame[y:y + h, x:x + w] = 255
    return frame


def write_image(path, width=WIDTH, height=HEIGHT):
    frame = make_frame(width, height)
    assert cv2.imwrite(path, frame), f"could not write {path}"
    return path


def write_video(path, frames=10, width=WIDTH, height=HEIGHT, fps=FPS):
    fourcc = cv2.VideoWriter_fourcc(*'mp4v')
    writer = cv2.VideoWriter(path, fourcc, fps, (width, height))
    assert writer.isOpened(), f"could not open writer for {path}"
    for i in range(frames):
        writer.write(make_frame(width, height, shift=i * 3))
    writer.release()
    return path


class FakeMuxer:
    """
    Stands in for FFmpegMuxer.

    with_audio=True pretends the source has a track: extract_audio writes a
    small file and remux copies the silent video to the output.
    """

    def __init__(self, with_audio=False, remux_error=None, block_extract=None):
        self.with_audio = with_audio
        self.remux_error = remux_error
        self.block_extract = block_extract
        self.extract_calls = []
        self.remux_calls = []
        self.extract_started = threading.Event()

    def extract_audio(self, video_path, audio_output_path):
        self.extract_calls.append((video_path, audio_output_path))
        self.extract_started.set()
        if self.block_extract is not None:
            self.block_extract.wait(10)
        if not self.with_audio:
            return None
        with open(audio_output_path, 'wb') as f:
            f.write(b'fake aac')
        return audio_output_path

    def remux(self, video_path, audio_path, output_path):
        self.remux_calls.append((video_path, audio_path, output_path))
        if self.remux_error:
            raise RemuxFailed(self.remux_error)
        shutil.copyfile(video_path, output_path)
        return output_path


def files_in(directory):
    return sorted(os.listdir(directory)) if os.path.isdir(directory) else []
