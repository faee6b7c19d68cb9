"""
Mark Worker - Async Batch Watermarking
======================================
QThread worker that stamps one image watermark onto many files in place.

Workflow:
1. Load the watermark once from the configured path
2. For each image in the queue:
   a. Skip (or fail) files whose extension is not supported
   b. Watermark the file in place
3. Emit progress signals during processing
4. Emit finished signal with results
"""

import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from overlaymark.core import Position, Watermark, WatermarkError, is_allowed_ext

logger = logging.getLogger(__name__)


@dataclass
class MarkConfig:
    """Complete configuration for a batch watermarking run."""
    image_paths: List[Path] = field(default_factory=list)
    watermark_path: Optional[Path] = None
    padding: int = 10
    position: Position = Position.BOTTOM_RIGHT

    # Unsupported files are reported as skipped rather than failed
    skip_unsupported: bool = True


@dataclass
class MarkResult:
    """Result of the marking operation for a single image."""
    source_path: Path
    success: bool = False
    skipped: bool = False
    error_message: str = ""


class MarkWorker(QThread):
    """
    Worker thread for watermarking image files in place.

    Signals:
        progress(int, int, str): (current, total, current_file_name)
        image_completed(MarkResult): Emitted when each image is processed
        finished_all(list[MarkResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # current, total, filename
    image_completed = pyqtSignal(object)  # MarkResult
    finished_all = pyqtSignal(list)  # List[MarkResult]
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: MarkConfig, parent=None):
        """
        Initialize the mark worker.

        Args:
            config: MarkConfig with the watermark and target settings.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False
        self._watermark: Optional[Watermark] = None

    def cancel(self):
        """Request cancellation of the worker."""
        self._is_cancelled = True

    def _process_single_image(self, image_path: Path) -> MarkResult:
        """
        Watermark a single image file.

        Args:
            image_path: Path to the target image, rewritten in place.

        Returns:
            MarkResult with processing outcome.
        """
        result = MarkResult(source_path=image_path)

        if not image_path.suffix or not is_allowed_ext(image_path.suffix):
            if self.config.skip_unsupported:
                logger.warning("Skipping unsupported file %s", image_path)
                result.skipped = True
            else:
                result.error_message = f"Unsupported image type: {image_path.suffix!r}"
            return result

        try:
            self._watermark.mark_file(image_path)
            result.success = True
            logger.info("Watermarked %s", image_path)

        except (WatermarkError, OSError) as e:
            result.error_message = str(e)
            logger.warning("Failed to watermark %s: %s", image_path, e)

        return result

    def run(self):
        """
        Main worker execution.

        Loads the watermark and processes all images, emitting progress signals.
        """
        results: List[MarkResult] = []
        total = len(self.config.image_paths)

        if total == 0:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        if self.config.watermark_path is None:
            self.error.emit("Watermark image is not set")
            self.finished_all.emit(results)
            return

        try:
            self._watermark = Watermark.from_file(
                self.config.watermark_path,
                padding=self.config.padding,
                position=self.config.position
            )
        except (WatermarkError, OSError) as e:
            self.error.emit(f"Cannot load watermark: {e}")
            self.finished_all.emit(results)
            return

        try:
            for idx, image_path in enumerate(self.config.image_paths):
                if self._is_cancelled:
                    break

                image_path = Path(image_path)
                self.progress.emit(idx + 1, total, image_path.name)

                result = self._process_single_image(image_path)
                results.append(result)

                self.image_completed.emit(result)

        except Exception as e:
            self.error.emit(f"Critical error: {str(e)}")
            traceback.print_exc()

        finally:
            self._watermark = None

        self.finished_all.emit(results)
