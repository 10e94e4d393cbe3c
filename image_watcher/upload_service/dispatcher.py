"""Filesystem change notifications and the sequential dispatch loop."""
import logging
import os
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from image_watcher.exceptions import ConfigurationError, UploadException
from image_watcher.settings import WatchRule
from image_watcher.upload_service.classifier import is_image
from image_watcher.upload_service.matching import tag_for_directory
from image_watcher.upload_service.models import UploadResult
from image_watcher.upload_service.scanner import DirectoryScanner
from image_watcher.upload_service.service import UploadPipeline

log = logging.getLogger(__name__)


class EventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    OTHER = "other"


@dataclass
class FileEvent:
    kind: EventKind
    paths: List[str] = field(default_factory=list)
    detail: str = ""


def translate_event(event: FileSystemEvent) -> FileEvent:
    """Maps a watchdog event onto the kinds the dispatcher acts on."""
    src_path = os.fsdecode(event.src_path)
    if event.is_directory:
        return FileEvent(EventKind.OTHER, [src_path], detail=f"directory {event.event_type}")
    if event.event_type == "created":
        return FileEvent(EventKind.CREATED, [src_path])
    if event.event_type == "modified":
        return FileEvent(EventKind.MODIFIED, [src_path])
    if event.event_type == "deleted":
        return FileEvent(EventKind.REMOVED, [src_path])
    if event.event_type == "moved":
        # a rename delivers a finished file at the destination
        return FileEvent(EventKind.MODIFIED, [os.fsdecode(event.dest_path)])
    return FileEvent(EventKind.OTHER, [src_path], detail=event.event_type)


class EventDispatcher:
    """
    Single consumer of filesystem notifications.

    Events and rescan requests share one queue and are handled one at a time
    on the dispatcher thread, so uploads never run concurrently.
    """

    _SCAN = object()
    _STOP = object()

    def __init__(
        self,
        pipeline: UploadPipeline,
        rules: Sequence[WatchRule],
        use_wildcard: bool,
        common_tags: Optional[Mapping[str, str]] = None,
        scanner: Optional[DirectoryScanner] = None,
        poll_interval: float = 1.0,
    ):
        self.pipeline = pipeline
        self.rules = list(rules)
        self.use_wildcard = use_wildcard
        self.common_tags = dict(common_tags or {})
        self.scanner = scanner
        self.poll_interval = poll_interval
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, event: FileEvent):
        self._queue.put(event)

    def request_scan(self):
        self._queue.put(self._SCAN)

    def handle_event(self, event: FileEvent) -> List[UploadResult]:
        if event.kind == EventKind.CREATED:
            log.info("File created: %s", event.paths)
            return []
        if event.kind == EventKind.REMOVED:
            log.info("File removed: %s", event.paths)
            return []
        if event.kind == EventKind.OTHER:
            log.info("Other event (%s): %s", event.detail or "unknown", event.paths)
            return []

        results = []
        for path in event.paths:
            log.info("File modified: %s", path)
            if not is_image(path):
                log.info("Skipping %s: not a recognized image format", path)
                continue
            directory = os.path.dirname(path)
            dir_tag = tag_for_directory(directory, self.rules, self.use_wildcard) or ""
            try:
                results.append(self.pipeline.upload(path, dir_tag, self.common_tags))
            except UploadException as e:
                log.error(f"Failed to upload file to S3: {e.detail}")
        return results

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """Processes one queued item. Returns False once a stop was requested."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return True
        if item is self._STOP:
            return False
        try:
            if item is self._SCAN:
                if self.scanner is None:
                    log.warning("Rescan requested but no scanner is configured")
                else:
                    self.scanner.upload_existing()
            else:
                self.handle_event(item)
        except Exception:
            # the watch loop outlives any single item
            log.exception("Unexpected error while dispatching %s", "rescan" if item is self._SCAN else item)
        return True

    def drain(self):
        """Processes everything queued so far on the calling thread."""
        while not self._queue.empty():
            if not self.run_once(timeout=0):
                break

    def run(self):
        while self.run_once(timeout=self.poll_interval):
            pass
        log.info("Event dispatcher stopped")

    def start(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="event-dispatcher", daemon=True)
        self._thread.start()
        log.info("Event dispatcher started")

    def stop(self, timeout: float = 5.0):
        if self._thread is None:
            return
        self._queue.put(self._STOP)
        self._thread.join(timeout=timeout)
        self._thread = None


class WatchEventHandler(FileSystemEventHandler):
    """Forwards watchdog events to the dispatcher queue."""

    def __init__(self, dispatcher: EventDispatcher):
        super().__init__()
        self.dispatcher = dispatcher

    def on_any_event(self, event: FileSystemEvent):
        self.dispatcher.submit(translate_event(event))


class WatchObserver:
    """Wrapper around the watchdog observer for the configured directories."""

    def __init__(self, dispatcher: EventDispatcher):
        self._observer = Observer()
        self._handler = WatchEventHandler(dispatcher)
        self._started = False
        self.directories: List[str] = []

    def schedule(self, directory: str):
        if not os.path.isdir(directory):
            raise ConfigurationError(f"Watched directory does not exist: {directory}")
        self._observer.schedule(self._handler, directory, recursive=True)
        self.directories.append(directory)
        log.info("Monitoring directory: %s", directory)

    def start(self):
        if self._started:
            return
        self._observer.start()
        self._started = True

    def stop(self):
        if not self._started:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._started = False
