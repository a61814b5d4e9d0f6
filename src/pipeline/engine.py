"""
Stream pipeline: capture -> detect -> consume.

Three roles share two single-slot mailboxes:
- capture thread: reads the source and sends FrameData into `frames`
- detection thread: receives frames, predicts and annotates, sends
  AnnotatedFrame into `results`
- consumer (the thread calling run()): receives results, prints, records,
  displays and invokes callbacks

By default `frames` is non-blocking, so the detector always picks up the
newest frame and stale ones are dropped under load, while `results` is
blocking, so every detection result reaches the consumer. Video file sources
always get a blocking `frames` mailbox so no frame of the file is skipped.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from concurrency import Mailbox, MailboxTimeout
from detection import DetectionHelper, draw_fps, print_results
from imaging import resize_keeping_aspect_ratio
from models.config import StreamConfig
from models.frame import AnnotatedFrame, FrameData
from observation import ObservationSource
from .rate import RateMeter

WINDOW_NAME = "Detections"


@dataclass
class PipelineStats:
    """Runtime counters for the pipeline."""
    frames_captured: int = 0
    frames_processed: int = 0
    results_consumed: int = 0
    detection_errors: int = 0
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.time)


class StreamPipeline:
    """
    Runs detection over a live or recorded source.

    Example:
        source = create_source_from_config(SourceConfig(device_id=0))
        helper = DetectionHelper.from_config(detector_cfg)
        pipeline = StreamPipeline(source, helper, StreamConfig(display=True))
        pipeline.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        helper: DetectionHelper,
        config: Optional[StreamConfig] = None,
        resize_to: Optional[Tuple[int, int]] = None,
    ):
        self.source = source
        self.helper = helper
        self.config = config or StreamConfig()
        self.resize_to = resize_to
        self.stats = PipelineStats()

        self._make_mailboxes()
        self.capture_rate = RateMeter()
        self.detect_rate = RateMeter()

        self._stop = threading.Event()
        self._capture_done = threading.Event()
        self._detect_done = threading.Event()
        self._callbacks: List[Callable[[AnnotatedFrame], None]] = []
        self._video_writer: Optional[cv2.VideoWriter] = None

    def _make_mailboxes(self) -> None:
        # A video file has no newest frame to skip to, so every frame is handed over
        blocking_frames = self.config.blocking_frames or bool(getattr(self.source, "is_file", False))
        self.frames: Mailbox[FrameData] = Mailbox(blocking=blocking_frames)
        self.results: Mailbox[AnnotatedFrame] = Mailbox(blocking=self.config.blocking_results)

    def add_callback(self, callback: Callable[[AnnotatedFrame], None]) -> None:
        """Register a function called by the consumer with each result."""
        self._callbacks.append(callback)

    def stop(self) -> None:
        """Ask all stages to finish; run() returns once they have."""
        self._stop.set()

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def run(self) -> PipelineStats:
        """Open the source, run until it is exhausted or stopped, then clean up."""
        self._stop.clear()
        self._capture_done.clear()
        self._detect_done.clear()
        self.stats = PipelineStats()
        # Fresh slots so nothing left over from a previous run is delivered
        self._make_mailboxes()

        try:
            self.source.open()
        except RuntimeError as e:
            logging.error(f"Failed to open source: {e}")
            return self.stats

        logging.info(
            f"Pipeline started: source={self.source.source_id}, "
            f"blocking_frames={self.frames.blocking}, blocking_results={self.results.blocking}"
        )
        capture = threading.Thread(target=self._capture_loop, name="capture", daemon=True)
        detect = threading.Thread(target=self._detect_loop, name="detect", daemon=True)
        capture.start()
        detect.start()

        try:
            self._consume_loop()
        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._stop.set()
            capture.join(timeout=2.0)
            detect.join(timeout=2.0)
            self._cleanup()

        return self.stats

    def _capture_loop(self) -> None:
        try:
            while not self._stop.is_set():
                frame_data = self.source.read()
                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if getattr(self.source, "is_file", False):
                        break
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping capture"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    self._stop.wait(0.5)
                    continue

                self.stats.consecutive_failures = 0
                self.stats.frames_captured += 1
                self.capture_rate.tick()
                if not self._send(self.frames, frame_data):
                    break
        finally:
            self._capture_done.set()

    def _detect_loop(self) -> None:
        try:
            while not self._stop.is_set():
                frame_data = self._receive(self.frames, self._capture_done)
                if frame_data is None:
                    break

                try:
                    detections = self.helper.predict(frame_data.frame)
                    annotated = self.helper.annotate()
                except Exception as e:
                    self.stats.detection_errors += 1
                    logging.error(f"Detection error on frame {frame_data.frame_index}: {e}")
                    continue

                self.detect_rate.tick()
                self.stats.frames_processed += 1
                result = AnnotatedFrame(
                    frame_data=frame_data,
                    detections=detections,
                    annotated=annotated,
                    duration=self.helper.duration,
                )
                if not self._send(self.results, result):
                    break
        finally:
            self._detect_done.set()

    def _consume_loop(self) -> None:
        while not self._stop.is_set():
            result = self._receive(self.results, self._detect_done)
            if result is None:
                break
            self.stats.results_consumed += 1

            if self.config.print_results:
                print_results(result.detections, self.helper.names)

            for callback in self._callbacks:
                try:
                    callback(result)
                except Exception as e:
                    logging.warning(f"Callback error: {e}")

            if result.annotated is None:
                continue
            frame = self._prepare_output(result.annotated)

            if self.config.record_path:
                self._write_frame(frame)

            if self.config.display and not self._handle_display(frame):
                break

    def _send(self, mailbox: Mailbox, value) -> bool:
        """Send, retrying on timeout until delivered or stopped."""
        while not self._stop.is_set():
            try:
                mailbox.send(value, timeout=self.config.receive_timeout)
                return True
            except MailboxTimeout:
                continue
        return False

    def _receive(self, mailbox: Mailbox, upstream_done: threading.Event):
        """Receive the next value; None once stopped or upstream finished and drained."""
        while not self._stop.is_set():
            try:
                return mailbox.receive(timeout=self.config.receive_timeout)
            except MailboxTimeout:
                if upstream_done.is_set() and not mailbox.is_value_present():
                    return None
        return None

    def _prepare_output(self, annotated: np.ndarray) -> np.ndarray:
        frame = annotated
        if self.resize_to:
            frame = resize_keeping_aspect_ratio(frame, self.resize_to)
        if frame is annotated:
            frame = annotated.copy()
        return draw_fps(frame, self.detect_rate.fps, self.capture_rate.fps)

    def _write_frame(self, frame: np.ndarray) -> None:
        if self._video_writer is None:
            h, w = frame.shape[:2]
            fps = getattr(self.source, "get_fps", lambda: 0.0)() or 30.0
            fourcc = cv2.VideoWriter_fourcc(*"XVID")
            self._video_writer = cv2.VideoWriter(self.config.record_path, fourcc, fps, (w, h), True)
            logging.info(f"Video recording started: {self.config.record_path} ({w}x{h} @ {fps:.1f})")
        self._video_writer.write(frame)

    def _handle_display(self, frame: np.ndarray) -> bool:
        """Show frame; returns False if the user pressed 'q' or ESC."""
        cv2.imshow(WINDOW_NAME, frame)
        key = cv2.waitKey(1) & 0xFF
        return key not in (ord("q"), 27)

    def _cleanup(self) -> None:
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self._video_writer is not None:
            self._video_writer.release()
            self._video_writer = None
            logging.info(f"Video saved: {self.config.record_path}")

        if self.config.display:
            cv2.destroyAllWindows()

        elapsed = time.time() - self.stats.start_time
        logging.info(
            f"Pipeline stopped: captured={self.stats.frames_captured}, "
            f"processed={self.stats.frames_processed}, consumed={self.stats.results_consumed}, "
            f"elapsed={elapsed:.1f}s"
        )
