#!/usr/bin/env python3
"""
Command line watermark remover.

Usage:
    python remove_watermark.py photo.jpg --region 20,30,120,40
    python remove_watermark.py clip.mp4 --region 10,10,200,60 -o clean.mp4 --algorithm ns
    python remove_watermark.py a.png b.png c.png --region 0,0,64,32 --lossless
    python remove_watermark.py clip.mp4 --info
"""

import sys
import signal
import logging
import argparse

import config
from batch_processor import process_batch
from errors import Cancelled, WatermarkRemovalError
from image_processor import get_image_info, process_image
from job_status import ProcessingStatus
from log_config import setup_logging
from video_processor import get_video_info, process_video
from watermark_types import BATCH_COMPLETED, Region, RemovalOptions

logger = logging.getLogger('remove_watermark')

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def build_parser():
    parser = argparse.ArgumentParser(
        description="Remove a rectangular watermark from images or videos by inpainting"
    )
    parser.add_argument('inputs', nargs='*', help="Image or video file(s)")
    parser.add_argument('--region', type=Region.parse,
                        help="Watermark rectangle as x,y,width,height")
    parser.add_argument('-o', '--output', help="Output file (single input only)")
    parser.add_argument('--algorithm', default='telea',
                        help="telea (default) or navier_stokes / ns")
    parser.add_argument('--dilate', type=int, default=3,
                        help="Grow the mask by this many pixels (default 3)")
    parser.add_argument('--radius', type=float, default=5.0,
                        help="Inpainting radius (default 5.0)")
    parser.add_argument('--lossless', action='store_true',
                        help="Lossless output (JPEG becomes PNG)")
    parser.add_argument('--info', action='store_true',
                        help="Print media dimensions and exit")
    parser.add_argument('--cleanup', action='store_true',
                        help="Delete files in the work directory and exit")
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def _print_info(path):
    if config.media_kind(path) == 'video':
        info = get_video_info(path)
        print(f"{path}: {info.width}x{info.height} @ {info.fps:.2f}fps, "
              f"{info.frame_count} frames, {info.duration_secs:.1f}s, codec {info.codec!r}")
    else:
        info = get_image_info(path)
        print(f"{path}: {info.width}x{info.height}")


def _run_video(path, output, region, options):
    status = ProcessingStatus()

    def _on_sigint(signum, frame):
        print("\nCancelling after the current frame...")
        status.request_cancel()

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        result = process_video(path, output, region, options, status=status, show_progress=True)
    finally:
        signal.signal(signal.SIGINT, previous)

    audio = "with audio" if result.has_audio else "no audio"
    print(f"Saved {result.output_path} ({result.frames_processed} frames, "
          f"{result.duration_secs:.1f}s, {audio})")


def _run_images(paths, output, region, options):
    if len(paths) == 1:
        result = process_image(paths[0], region, options, output_path=output)
        print(f"Saved {result.output_path} "
              f"({result.original_size} -> {result.processed_size} bytes)")
        return EXIT_OK

    items = process_batch(paths, region, options)
    for item in items:
        if item.status == BATCH_COMPLETED:
            print(f"  OK    {item.path} -> {item.output_path}")
        else:
            print(f"  FAIL  {item.path}: {item.error}")
    return EXIT_OK if all(i.status == BATCH_COMPLETED for i in items) else EXIT_FAILED


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging('DEBUG' if args.verbose else None)

    if args.cleanup:
        removed = config.cleanup_temp_files()
        print(f"Removed {removed} file(s) from {config.TEMP_DIR}")
        return EXIT_OK

    if not args.inputs:
        parser.error("at least one input file is required")

    try:
        if args.info:
            for path in args.inputs:
                _print_info(path)
            return EXIT_OK

        if args.region is None:
            parser.error("--region is required")
        if args.output and len(args.inputs) > 1:
            parser.error("--output can only be used with a single input")

        try:
            options = RemovalOptions(
                algorithm=args.algorithm,
                dilate_pixels=args.dilate,
                inpaint_radius=args.radius,
                lossless=args.lossless,
            )
        except ValueError as e:
            parser.error(str(e))

        videos = [p for p in args.inputs if config.media_kind(p) == 'video']
        if videos and len(args.inputs) > 1:
            parser.error("videos must be processed one at a time")

        if videos:
            _run_video(videos[0], args.output, args.region, options)
            return EXIT_OK
        return _run_images(args.inputs, args.output, args.region, options)

    except Cancelled as e:
        logger.warning(e.message)
        return EXIT_CANCELLED
    except WatermarkRemovalError as e:
        logger.error(e.message)
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
