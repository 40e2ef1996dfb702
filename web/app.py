#!/usr/bin/env python3
"""
Flask backend for the watermark remover.

Exposes the image/video pipelines as a JSON API for a local front end.
Files are referenced by path on the machine running the server.
Video jobs run on a background thread; the client polls
/api/video/progress and may POST /api/video/cancel.
"""

import time
import logging
import threading

from flask import Flask, g, jsonify, request
from flask_cors import CORS

import config
from batch_processor import process_batch
from errors import (
    Cancelled,
    DecodeFailed,
    InvalidRegion,
    VideoOpenFailed,
    WatermarkRemovalError,
)
from image_processor import get_image_info, process_image, save_processed_image
from job_status import ProcessingStatus
from log_config import setup_logging
from video_processor import extract_first_frame, get_video_info, process_video
from watermark_types import Region, RemovalOptions

logger = logging.getLogger(__name__)

JOB_IDLE = 'idle'
JOB_RUNNING = 'running'
JOB_COMPLETED = 'completed'
JOB_FAILED = 'failed'
JOB_CANCELLED = 'cancelled'


class InvalidRequest(Exception):
    pass


class VideoJobRunner:
    """Runs one video job at a time on a worker thread."""

    def __init__(self, status=None, muxer=None):
        self.status = status or ProcessingStatus()
        self.muxer = muxer
        self._lock = threading.Lock()
        self._thread = None
        self.state = JOB_IDLE
        self.result = None
        self.error = None
        self.error_kind = None

    def is_running(self):
        with self._lock:
            return self.state == JOB_RUNNING

    def start(self, input_path, output_path, region, options):
        """Returns False when a job is already in flight."""
        with self._lock:
            if self.state == JOB_RUNNING:
                return False
            self.state = JOB_RUNNING
            self.result = None
            self.error = None
            self.error_kind = None
            # The only cancel reset for this job; a cancel sent after 202 must stick
            self.status.start(0)
            self._thread = threading.Thread(
                target=self._run,
                args=(input_path, output_path, region, options),
                name='video-job',
                daemon=True,
            )
            self._thread.start()
        return True

    def _run(self, input_path, output_path, region, options):
        try:
            result = process_video(
                input_path, output_path, region, options,
                status=self.status, muxer=self.muxer, reset_cancel=False,
            )
        except Cancelled as e:
            self._finish(JOB_CANCELLED, error=e)
        except WatermarkRemovalError as e:
            logger.error(f"Video job failed: {e.message}")
            self._finish(JOB_FAILED, error=e)
        except Exception as e:
            logger.exception("Unexpected error in video job")
            self._finish(JOB_FAILED, error=WatermarkRemovalError(str(e)))
        else:
            self._finish(JOB_COMPLETED, result=result)

    def _finish(self, state, result=None, error=None):
        with self._lock:
            self.state = state
            self.result = result
            if error is not None:
                self.error = error.message
                self.error_kind = error.kind

    def join(self, timeout=None):
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def to_dict(self):
        payload = self.status.snapshot().to_dict()
        with self._lock:
            payload['state'] = self.state
            payload['result'] = self.result.to_dict() if self.result else None
            payload['error'] = self.error
            payload['kind'] = self.error_kind
        return payload


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _require(data, key):
    value = data.get(key)
    if value in (None, ''):
        raise InvalidRequest(f"'{key}' is required")
    return value


def _path(data, key='path'):
    value = _require(data, key)
    if not isinstance(value, str):
        raise InvalidRequest(f"'{key}' must be a string")
    return value


def _optional_path(data, key='output_path'):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidRequest(f"'{key}' must be a string")
    return value or None


def _region(data):
    raw = _require(data, 'region')
    try:
        return Region.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidRequest(f"Invalid region: {e}")


def _options(data):
    try:
        return RemovalOptions.from_dict(data.get('options'))
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidRequest(f"Invalid options: {e}")


def _error_status(exc):
    if isinstance(exc, InvalidRegion):
        return 400
    if isinstance(exc, (DecodeFailed, VideoOpenFailed)):
        return 422
    if isinstance(exc, Cancelled):
        return 409
    return 500


def create_app(status=None, muxer=None):
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    jobs = VideoJobRunner(status=status, muxer=muxer)
    app.extensions['video_jobs'] = jobs

    @app.before_request
    def _log_request_start():
        if config.ENABLE_ACCESS_LOGS:
            g._req_start = time.time()

    @app.after_request
    def _log_request_end(response):
        if config.ENABLE_ACCESS_LOGS:
            dur_ms = int((time.time() - getattr(g, '_req_start', time.time())) * 1000)
            logger.info(f"{response.status_code} {dur_ms}ms {request.method} {request.path}")
        return response

    @app.errorhandler(InvalidRequest)
    def _bad_request(exc):
        return jsonify({'error': str(exc), 'kind': 'bad_request'}), 400

    @app.errorhandler(WatermarkRemovalError)
    def _removal_error(exc):
        return jsonify({'error': exc.message, 'kind': exc.kind}), _error_status(exc)

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'video_job': jobs.state,
        })

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    @app.route('/api/image/info', methods=['POST'])
    def image_info():
        data = _json_body()
        return jsonify(get_image_info(_path(data)).to_dict())

    @app.route('/api/image/remove', methods=['POST'])
    def image_remove():
        data = _json_body()
        result = process_image(
            _path(data),
            _region(data),
            _options(data),
            output_path=_optional_path(data),
        )
        return jsonify(result.to_dict())

    @app.route('/api/image/batch', methods=['POST'])
    def image_batch():
        data = _json_body()
        paths = _require(data, 'paths')
        if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
            raise InvalidRequest("'paths' must be a list of strings")
        items = process_batch(paths, _region(data), _options(data))
        return jsonify({'items': [item.to_dict() for item in items]})

    @app.route('/api/image/save', methods=['POST'])
    def image_save():
        data = _json_body()
        destination = save_processed_image(_path(data, 'source'), _path(data, 'destination'))
        return jsonify({'path': destination})

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    @app.route('/api/video/info', methods=['POST'])
    def video_info():
        data = _json_body()
        return jsonify(get_video_info(_path(data)).to_dict())

    @app.route('/api/video/frame', methods=['POST'])
    def video_frame():
        data = _json_body()
        path = extract_first_frame(_path(data), _optional_path(data))
        return jsonify({'path': path})

    @app.route('/api/video/process', methods=['POST'])
    def video_process():
        data = _json_body()
        input_path = _path(data)
        region = _region(data)
        options = _options(data)

        if not jobs.start(input_path, _optional_path(data), region, options):
            return jsonify({
                'error': 'A video is already being processed',
                'kind': 'busy',
            }), 409
        return jsonify(jobs.to_dict()), 202

    @app.route('/api/video/progress', methods=['GET'])
    def video_progress():
        return jsonify(jobs.to_dict())

    @app.route('/api/video/cancel', methods=['POST'])
    def video_cancel():
        jobs.status.request_cancel()
        return jsonify({'cancel_requested': True}), 202

    @app.route('/api/cleanup', methods=['POST'])
    def cleanup():
        if jobs.is_running():
            return jsonify({
                'error': 'Cannot clean up while a video is being processed',
                'kind': 'busy',
            }), 409
        return jsonify({'removed': config.cleanup_temp_files()})

    return app


if __name__ == '__main__':
    setup_logging()
    logger.info(f"Work directory: {config.get_temp_dir()}")
    create_app().run(host='127.0.0.1', port=5000)
