"""
Keep the palette of a changing image source up to date in the background.

Each new source cancels the run in flight, a single worker extracts the
palette, and only the latest run's result is published. Observers get one
call per published result.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional

from loguru import logger

from extract_colors import CancellationToken, ExtractionCancelled, PaletteResult, extract
from palette_config import PaletteConfig
from raster_image import GRAB_SIZE, as_raster


class PaletteUpdater:
    """Owns the current source and the latest published PaletteResult."""

    def __init__(self, config: Optional[PaletteConfig] = None,
                 executor: Optional[ThreadPoolExecutor] = None,
                 grab_size: Optional[int] = GRAB_SIZE):
        self.config = config or PaletteConfig()
        self.grab_size = grab_size
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='palette')
        self._lock = threading.Lock()
        self._image = None
        self._token = None
        self._future = None
        self._result = PaletteResult.empty()
        self._observers = []

    # -------------------------------------------------------------------------
    # Source and dispatch
    # -------------------------------------------------------------------------

    @property
    def image(self):
        return self._image

    def set_source(self, source) -> Optional[Future]:
        """Replace the source image and schedule a new extraction."""
        self._image = as_raster(source, grab_size=self.grab_size)
        return self.update()

    def update(self) -> Optional[Future]:
        """
        Cancel the run in flight and start one for the current image.

        Returns the future of the new run, or None when there is no image.
        """
        with self._lock:
            self._cancel_locked()
            if self._image is None:
                return None

            image = self._image
            token = CancellationToken()
            future = self._executor.submit(extract, image, self.config, token)
            self._token = token
            self._future = future

        logger.debug(f"Dispatched palette extraction for {image}")
        future.add_done_callback(partial(self._on_finished, token))
        return future

    def cancel(self) -> None:
        """Cancel the run in flight, if any. The published result is kept."""
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._future.cancel()
            self._token = None
            self._future = None

    def _on_finished(self, token: CancellationToken, future: Future) -> None:
        if future.cancelled() or token.cancelled:
            logger.debug("Discarding result of a cancelled palette extraction")
            return

        error = future.exception()
        if isinstance(error, ExtractionCancelled):
            return
        if error is not None:
            logger.error(f"Palette extraction failed: {type(error).__name__}: {error}")
            return

        result = future.result()
        with self._lock:
            if token is not self._token:
                logger.debug("Discarding result of a superseded palette extraction")
                return
            self._result = result
            self._token = None
            self._future = None
            observers = list(self._observers)

        for callback in observers:
            try:
                callback(result)
            except Exception:
                logger.exception(f"Palette observer {callback!r} failed")

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Callable[[PaletteResult], None]) -> Callable[[], None]:
        """Call callback with every published result. Returns an unsubscribe function."""
        with self._lock:
            self._observers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Published result
    # -------------------------------------------------------------------------

    @property
    def result(self) -> PaletteResult:
        with self._lock:
            return self._result

    @property
    def palette(self) -> tuple:
        return self.result.palette

    @property
    def dominant(self):
        return self.result.dominant

    @property
    def most_saturated(self):
        return self.result.most_saturated

    @property
    def closest_to_black(self):
        return self.result.closest_to_black

    @property
    def closest_to_white(self):
        return self.result.closest_to_white

    @property
    def suggested_contrast(self):
        return self.result.suggested_contrast

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
