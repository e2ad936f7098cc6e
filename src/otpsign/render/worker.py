"""
Single dedicated render thread.

Rendering engines are typically not reentrant and expect one-time global
initialization on the thread that uses them. RenderWorker owns that
thread: startup, every conversion and teardown run on it, and callers
submit work through a FIFO queue.
"""

import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Deque, Optional, Union

import structlog

from .backend import Renderer, RenderOptions

logger = structlog.get_logger()

RenderCallback = Callable[[bool, str], None]

_NOT_INITIALIZED = "Render worker is not initialized"


@dataclass(frozen=True)
class RenderStats:
    initialized: bool
    running: bool
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    queue_depth: int
    last_error: str

    def to_dict(self):
        return asdict(self)


@dataclass
class _RenderTask:
    html_path: Path
    pdf_path: Path
    future: Optional[Future] = None
    callback: Optional[RenderCallback] = None


class RenderWorker:
    """
    Serializes HTML to PDF conversions onto one thread.

    Tasks run strictly in submission order; at most one renderer call is
    in progress at any time.
    """

    def __init__(self, renderer: Renderer, options: Optional[RenderOptions] = None):
        """
        Initialize the worker (the thread is not started until initialize()).

        Args:
            renderer: Backend called only from the worker thread
            options: Rendering options applied to every task
        """
        self.renderer = renderer
        self.options = options or RenderOptions()

        self._condition = threading.Condition()
        self._queue: Deque[_RenderTask] = deque()
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._startup_ok = False

        self._initialized = False
        self._running = False
        self._stopping = False

        self._total = 0
        self._completed = 0
        self._failed = 0
        self._last_error = ""

    # ==================== Lifecycle ====================

    def initialize(self) -> bool:
        """
        Start the worker thread and wait for the engine to come up.

        Returns:
            True if the engine started; calling again after success is a no-op
        """
        with self._condition:
            if self._initialized:
                return True
            if self._thread is not None and self._thread.is_alive():
                return False
            self._stopping = False
            self._startup_ok = False
            self._ready.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="otpsign-render-worker",
                daemon=True,
            )
            self._thread.start()

        self._ready.wait()

        with self._condition:
            if not self._startup_ok:
                self._thread = None
                return False
            self._initialized = True
            self._running = True

        logger.info("render_worker_initialized")
        return True

    def shutdown(self, wait_for_completion: bool = True):
        """
        Stop the worker after the queued tasks have been processed.

        Args:
            wait_for_completion: Join the thread before returning
        """
        with self._condition:
            if not self._initialized:
                return
            self._initialized = False
            self._stopping = True
            self._condition.notify_all()
            thread = self._thread

        if wait_for_completion and thread is not None:
            thread.join()
            with self._condition:
                if self._thread is thread:
                    self._thread = None

        logger.info("render_worker_shutdown", joined=wait_for_completion)

    def is_running(self) -> bool:
        with self._condition:
            return self._initialized and self._running

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    # ==================== Submission ====================

    def convert_sync(self, html_path: Union[str, Path], pdf_path: Union[str, Path]) -> bool:
        """
        Convert and block until the worker has finished this task.

        Returns:
            True on success; False on render failure or when not initialized
        """
        future: Future = Future()
        if not self._submit(_RenderTask(Path(html_path), Path(pdf_path), future=future)):
            return False
        return future.result()

    def convert_async(
        self,
        html_path: Union[str, Path],
        pdf_path: Union[str, Path],
        callback: Optional[RenderCallback] = None,
    ) -> bool:
        """
        Queue a conversion and return immediately.

        The callback receives (success, error_message) on the worker thread.

        Returns:
            True if the task was queued
        """
        task = _RenderTask(Path(html_path), Path(pdf_path), callback=callback)
        if self._submit(task):
            return True
        if callback is not None:
            self._invoke_callback(callback, False, _NOT_INITIALIZED)
        return False

    def _submit(self, task: _RenderTask) -> bool:
        with self._condition:
            if not self._initialized or self._stopping:
                return False
            self._queue.append(task)
            self._total += 1
            self._condition.notify()
        return True

    # ==================== Stats ====================

    def get_stats(self) -> RenderStats:
        with self._condition:
            return RenderStats(
                initialized=self._initialized,
                running=self._running,
                total_tasks=self._total,
                completed_tasks=self._completed,
                failed_tasks=self._failed,
                queue_depth=len(self._queue),
                last_error=self._last_error,
            )

    # ==================== Worker thread ====================

    def _run(self):
        try:
            self.renderer.startup()
        except Exception as e:
            logger.error("render_engine_startup_failed", error=str(e))
            with self._condition:
                self._startup_ok = False
                self._last_error = f"Engine startup failed: {e}"
            self._ready.set()
            return

        self._startup_ok = True
        self._ready.set()

        try:
            while True:
                with self._condition:
                    self._condition.wait_for(lambda: self._queue or self._stopping)
                    if not self._queue:
                        break
                    task = self._queue.popleft()
                self._process(task)
        finally:
            try:
                self.renderer.teardown()
            except Exception as e:
                logger.warning("render_engine_teardown_failed", error=str(e))
            with self._condition:
                self._running = False
                if self._thread is threading.current_thread():
                    self._thread = None
            logger.info("render_worker_stopped")

    def _process(self, task: _RenderTask):
        error_message = ""
        try:
            success = bool(
                self.renderer.render_html_file_to_pdf(task.html_path, task.pdf_path, self.options)
            )
            if not success:
                error_message = f"Rendering failed: {task.html_path}"
        except Exception as e:
            success = False
            error_message = f"Rendering failed: {task.html_path}: {e}"

        with self._condition:
            if success:
                self._completed += 1
            else:
                self._failed += 1
                self._last_error = error_message

        if not success:
            logger.warning(
                "render_task_failed",
                html_path=str(task.html_path),
                error=error_message,
            )

        if task.future is not None:
            task.future.set_result(success)
        if task.callback is not None:
            self._invoke_callback(task.callback, success, error_message)

    @staticmethod
    def _invoke_callback(callback: RenderCallback, success: bool, error_message: str):
        try:
            callback(success, error_message)
        except Exception as e:
            logger.warning("render_callback_failed", error=str(e))
