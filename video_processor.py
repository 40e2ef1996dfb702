"""
Video watermark removal.

The mask is built once per job, every frame goes through OpenCV inpainting
in read order, and the original audio track is carried over with ffmpeg
when the source has one.
"""

import os
import time
import logging

import cv2
from tqdm import tqdm

import config
from errors import (
    Cancelled,
    DecodeFailed,
    EncodeFailed,
    VideoOpenFailed,
    WriterOpenFailed,
)
from ffmpeg_audio import FFmpegMuxer
from image_processor import PNG_COMPRESSION, write_image
from job_status import default_status
from opencv_inpaint import OpenCVInpainter
from region_mask import prepare_mask, selected_pixel_count, validate_region
from watermark_types import RemovalOptions, VideoInfo, VideoProcessResult

logger = logging.getLogger(__name__)


def fourcc_to_string(fourcc) -> str:
    """Decode a fourcc code into its four raw characters (not validated)."""
    code = int(fourcc) & 0xFFFFFFFF
    return code.to_bytes(4, 'little').decode('latin-1')


def _open_capture(video_path):
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        cap.release()
        raise VideoOpenFailed(f"Failed to open video file: {video_path}")
    return cap


def _read_video_info(cap, video_path) -> VideoInfo:
    fps = cap.get(cv2.CAP_PROP_FPS)
    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    frame_count = max(0, int(cap.get(cv2.CAP_PROP_FRAME_COUNT)))
    codec = fourcc_to_string(cap.get(cv2.CAP_PROP_FOURCC))

    if width <= 0 or height <= 0 or not fps > 0:
        raise VideoOpenFailed(
            f"Invalid video properties for {video_path}: "
            f"{width}x{height} @ {fps}fps"
        )

    return VideoInfo(
        width=width,
        height=height,
        fps=fps,
        frame_count=frame_count,
        duration_secs=frame_count / fps,
        codec=codec,
        path=video_path,
    )


def get_video_info(video_path) -> VideoInfo:
    cap = _open_capture(video_path)
    try:
        return _read_video_info(cap, video_path)
    finally:
        cap.release()


def extract_frame(video_path, frame_number=0):
    """Decode a single frame (BGR numpy array) by index."""
    cap = _open_capture(video_path)
    try:
        if frame_number > 0:
            cap.set(cv2.CAP_PROP_POS_FRAMES, frame_number)
        ret, frame = cap.read()
    finally:
        cap.release()

    if not ret or frame is None or frame.size == 0:
        raise DecodeFailed(f"Failed to read frame {frame_number} from {video_path}")
    return frame


def extract_first_frame(video_path, output_path=None) -> str:
    """Save frame 0 as a PNG, e.g. for drawing the watermark region on."""
    frame = extract_frame(video_path, 0)
    if output_path is None:
        output_path = config.make_output_path('frame', 'png')
    write_image(output_path, frame, [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION])
    return output_path


def _remove_files(*paths):
    for path in paths:
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"Failed to delete {path}: {e}")


def _open_writer(path, fps, width, height):
    fourcc = cv2.VideoWriter_fourcc(*config.VIDEO_FOURCC)
    writer = cv2.VideoWriter(path, fourcc, fps, (width, height))
    if not writer.isOpened():
        writer.release()
        raise WriterOpenFailed(
            f"Failed to open video writer for {path} "
            f"({config.VIDEO_FOURCC}, {width}x{height} @ {fps}fps)"
        )
    return writer


def _process_frames(cap, writer, mask, inpainter, status, total_frames, show_progress):
    """
    Inpaint and write frames until the stream ends.

    Returns:
        number of frames written

    Raises:
        Cancelled: the status token was set before a frame was read
    """
    frames_processed = 0

    with tqdm(total=total_frames or None, desc="Processing frames",
              disable=not show_progress) as pbar:
        while True:
            if status.is_cancelled():
                raise Cancelled(
                    f"Video processing cancelled after {frames_processed} frames"
                )

            ret, frame = cap.read()
            if not ret or frame is None:
                break

            result = inpainter.inpaint_region(frame, mask, frame_index=frames_processed)

            try:
                writer.write(result)
            except cv2.error as e:
                raise EncodeFailed(
                    f"Failed to write frame {frames_processed}: {str(e).strip()}"
                ) from e

            frames_processed += 1
            status.advance(frames_processed)
            pbar.update(1)

    return frames_processed


def process_video(input_path, output_path, region, options=None, status=None,
                  muxer=None, show_progress=False, reset_cancel=True) -> VideoProcessResult:
    """
    Remove the watermark inside `region` from every frame of a video.

    Args:
        input_path: Source video
        output_path: Final video file; a unique .mp4 in the work directory
            when None
        region: Region to reconstruct, fixed for the whole video
        options: RemovalOptions, defaults when None
        status: ProcessingStatus to report progress to and take cancel
            requests from; the shared default_status when None
        muxer: object with extract_audio / remux, FFmpegMuxer() when None
        show_progress: draw a tqdm progress bar on the console
        reset_cancel: clear a pending cancel request before starting; pass
            False when the caller already reset `status` for this job

    Returns:
        VideoProcessResult with frames written and elapsed seconds

    On cancellation or any failure after the writer is opened, every
    partial output (video and extracted audio) is deleted.
    """
    options = options or RemovalOptions()
    status = status or default_status
    muxer = muxer or FFmpegMuxer()

    if reset_cancel:
        status.start(0)
    else:
        status.reset_counters(0)
    start_time = time.time()

    cap = _open_capture(input_path)
    audio_path = None
    writer = None
    writer_path = None
    try:
        info = _read_video_info(cap, input_path)
        status.set_total(info.frame_count)
        logger.info(
            f"Processing video {input_path}: {info.width}x{info.height} @ "
            f"{info.fps:.2f}fps, {info.frame_count} frames, codec {info.codec!r}"
        )

        validate_region(info.width, info.height, region, what='Video')

        if output_path is None:
            output_path = config.make_output_path('processed', 'mp4')

        audio_path = muxer.extract_audio(
            input_path, config.make_output_path('audio_temp', 'aac')
        )
        has_audio = audio_path is not None

        target = config.make_output_path('video_no_audio', 'mp4') if has_audio else output_path
        writer = _open_writer(target, info.fps, info.width, info.height)
        writer_path = target

        mask = prepare_mask(info.width, info.height, region, options.dilate_pixels, what='Video')
        inpainter = OpenCVInpainter(options)
        logger.debug(f"Mask covers {selected_pixel_count(mask)} pixels after {options.dilate_pixels}px dilation")

        frames_processed = _process_frames(
            cap, writer, mask, inpainter, status, info.frame_count, show_progress
        )
    except BaseException as e:
        if isinstance(e, (Cancelled, KeyboardInterrupt)):
            logger.warning(f"Cancelled processing of {input_path}, removing partial output")
        _release(cap, writer)
        _remove_files(writer_path, audio_path)
        raise

    _release(cap, writer)

    if has_audio:
        try:
            muxer.remux(writer_path, audio_path, output_path)
        finally:
            _remove_files(writer_path, audio_path)

    duration = time.time() - start_time
    logger.info(
        f"Finished {input_path} -> {output_path}: {frames_processed} frames in "
        f"{duration:.1f}s ({inpainter.algorithm})"
    )

    return VideoProcessResult(
        output_path=output_path,
        frames_processed=frames_processed,
        duration_secs=duration,
        has_audio=has_audio,
    )


def _release(cap, writer):
    if writer is not None:
        writer.release()
    if cap is not None:
        cap.release()
