"""
Runs the App on an asyncio loop and renders it with a Rich Live display.

All messages go through a single queue consumed by ``Program.run``. Effects
run as tasks, bounded by a semaphore, and report back by enqueueing the
message they return.
"""

import asyncio
from typing import Callable, Iterable, Optional, Protocol

from rich.console import Console
from rich.live import Live

from epub_downloader.utils.structured_logger import StructuredLogger

from .app import App
from .messages import Effect, ErrorMessage, Message, ResizeMessage


class InputReader(Protocol):
    """Source of key and resize messages living outside the loop."""

    def start(self, post: Callable[[Message], None]) -> None: ...

    def stop(self) -> None: ...


class Program:
    def __init__(
        self,
        app: App,
        console: Optional[Console] = None,
        input_reader: Optional[InputReader] = None,
        max_concurrency: int = 5,
        logger: Optional[StructuredLogger] = None,
        screen: bool = True,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.app = app
        self.console = console or Console()
        self.input_reader = input_reader
        self.max_concurrency = max_concurrency
        self.logger = logger or StructuredLogger.disabled()
        self.screen = screen

        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_effects(self) -> int:
        return len(self._tasks)

    def send(self, msg: Message) -> None:
        """Enqueue a message. Must be called from the loop's thread."""
        self._queue.put_nowait(msg)

    def send_threadsafe(self, msg: Message) -> None:
        """Enqueue a message from any thread."""
        if self._loop is None:
            raise RuntimeError("program is not running")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, msg)

    def schedule(self, effects: Iterable[Effect]) -> None:
        for effect in effects:
            task = asyncio.create_task(self._run_effect(effect))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run_effect(self, effect: Effect) -> None:
        if self._semaphore is None:
            raise RuntimeError("program is not running")
        async with self._semaphore:
            try:
                msg = await effect()
            except Exception as e:
                self.logger.log_error("effect_failed", e)
                msg = ErrorMessage(e)
        if msg is not None:
            self.send(msg)

    async def run(self) -> None:
        """Process messages until the app stops running."""
        self._loop = asyncio.get_running_loop()
        self._semaphore = asyncio.Semaphore(self.max_concurrency)

        width, height = self.console.size
        self.send(ResizeMessage(width, height))
        self.schedule(self.app.init())

        if self.input_reader is not None:
            self.input_reader.start(self.send_threadsafe)
        self.logger.info("ui_started", width=width, height=height)
        try:
            with Live(
                self.app.view(),
                console=self.console,
                screen=self.screen,
                auto_refresh=False,
                redirect_stdout=False,
                redirect_stderr=False,
            ) as live:
                while self.app.running:
                    msg = await self._queue.get()
                    self.schedule(self.app.update(msg))
                    live.update(self.app.view(), refresh=True)
        finally:
            if self.input_reader is not None:
                self.input_reader.stop()
            await self._cancel_pending()
            self._loop = None
            self.logger.info("ui_stopped")

    async def _cancel_pending(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
