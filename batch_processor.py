import logging

from errors import WatermarkRemovalError
from image_processor import process_image
from watermark_types import (
    BATCH_COMPLETED,
    BATCH_FAILED,
    BATCH_PROCESSING,
    BatchItem,
    RemovalOptions,
)

logger = logging.getLogger(__name__)


def process_batch(image_paths, region, options=None, on_update=None):
    """
    Run the image pipeline over several files with the same region/options.

    A failing file is marked failed and the batch moves on.

    Args:
        image_paths: Source image files, processed in order
        region: Region applied to every image
        options: RemovalOptions shared by every image
        on_update: Optional callback(item) fired on each status change

    Returns:
        List of BatchItem, one per input path
    """
    options = options or RemovalOptions()
    items = [BatchItem(path=p) for p in image_paths]

    def _notify(item):
        if on_update is not None:
            on_update(item)

    for index, item in enumerate(items, start=1):
        item.status = BATCH_PROCESSING
        _notify(item)
        logger.info(f"Batch {index}/{len(items)}: {item.path}")

        try:
            result = process_image(item.path, region, options)
        except WatermarkRemovalError as e:
            item.status = BATCH_FAILED
            item.error = e.message
            logger.warning(f"Batch item failed: {item.path}: {e.message}")
        else:
            item.status = BATCH_COMPLETED
            item.result = result
            item.output_path = result.output_path
        _notify(item)

    completed = sum(1 for item in items if item.status == BATCH_COMPLETED)
    logger.info(f"Batch finished: {completed} of {len(items)} files processed successfully")
    return items
