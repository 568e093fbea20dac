from __future__ import annotations

from pathlib import Path
from typing import Callable

from loguru import logger
from PySide6.QtCore import QObject, QThread, Signal, Slot

from .codec import ImageCodec
from .compress import compress_request
from .errors import CompressionError
from .models import (
    CompressionComplete,
    CompressionRequest,
    CompressionResult,
    Compressing,
    Failed,
    Idle,
    ImageSelected,
    Saved,
    UiState,
)
from .storage import save_result


class CompressWorker(QObject):
    finished = Signal(int, object)
    failed = Signal(int, str)

    def __init__(self, generation: int, request: CompressionRequest, codec: ImageCodec | None = None) -> None:
        super().__init__()
        self.generation = generation
        self.request = request
        self.codec = codec

    def run(self) -> None:
        try:
            result = compress_request(self.request, self.codec)
        except CompressionError as exc:
            self.failed.emit(self.generation, f"压缩失败：{exc}")
            return
        except MemoryError:
            self.failed.emit(self.generation, "压缩失败：内存不足")
            return
        self.finished.emit(self.generation, result)


class CompressorSession(QObject):

    state_changed = Signal(object)

    def __init__(
        self,
        codec: ImageCodec | None = None,
        dispatcher: Callable[[CompressWorker], None] | None = None,
    ) -> None:
        super().__init__()
        self.codec = codec
        self.dispatcher = dispatcher or self.start_thread
        self._state: UiState = Idle()
        self._data = b""
        self._generation = 0
        self._jobs: dict[int, tuple[QThread, CompressWorker]] = {}

    @property
    def state(self) -> UiState:
        return self._state

    def set_state(self, state: UiState) -> None:
        self._state = state
        logger.debug(f"State -> {type(state).__name__}")
        self.state_changed.emit(state)

    def select_image(self, source: Path) -> None:
        self._generation += 1
        try:
            data = source.read_bytes()
        except OSError as exc:
            logger.warning(f"Cannot read {source}: {exc}")
            self._data = b""
            self.set_state(Failed(f"无法读取图片：{source.name}"))
            return
        original_size_kb = len(data) // 1024
        if original_size_kb == 0:
            self._data = b""
            self.set_state(Failed(f"无法读取图片：{source.name}"))
            return
        self._data = data
        self.set_state(ImageSelected(source, original_size_kb))

    def compress(self, target_kb: int) -> None:
        selected = self.selected_image()
        if selected is None:
            self.set_state(Failed("请先选择图片"))
            return
        if isinstance(self._state, Compressing):
            return
        try:
            request = CompressionRequest(self._data, target_kb)
        except CompressionError:
            self.set_state(Failed("目标大小必须为正整数"))
            return
        self._generation += 1
        generation = self._generation
        self.set_state(Compressing(selected.source, selected.original_size_kb, target_kb))
        worker = CompressWorker(generation, request, self.codec)
        worker.finished.connect(self.on_worker_finished)
        worker.failed.connect(self.on_worker_failed)
        self.dispatcher(worker)

    def cancel(self) -> None:
        state = self._state
        if not isinstance(state, Compressing):
            return
        self._generation += 1
        logger.info(f"Compression of {state.source.name} cancelled")
        self.set_state(ImageSelected(state.source, state.original_size_kb))

    def save(self, output_dir: Path | None = None) -> None:
        state = self._state
        if not isinstance(state, CompressionComplete):
            self.set_state(Failed("没有可保存的压缩结果"))
            return
        try:
            output = save_result(state.result, output_dir)
        except OSError as exc:
            logger.error(f"Saving failed: {exc}")
            self.set_state(Failed(f"保存失败：{exc}"))
            return
        self.set_state(Saved(state.source, state.original_size_kb, state.target_kb, state.result, output))

    def back_to_image_selected(self) -> None:
        selected = self.selected_image()
        if selected is not None:
            self._generation += 1
            self.set_state(ImageSelected(selected.source, selected.original_size_kb))

    def reset(self) -> None:
        self._generation += 1
        self._data = b""
        self.set_state(Idle())

    def selected_image(self) -> ImageSelected | None:
        state = self._state
        if isinstance(state, ImageSelected):
            return state
        if isinstance(state, (Compressing, CompressionComplete, Saved)) and self._data:
            return ImageSelected(state.source, state.original_size_kb)
        return None

    @Slot(int, object)
    def on_worker_finished(self, generation: int, result: CompressionResult) -> None:
        self.release(generation)
        state = self._state
        if generation != self._generation or not isinstance(state, Compressing):
            logger.debug(f"Discarding stale result of job {generation}")
            return
        self.set_state(CompressionComplete(state.source, state.original_size_kb, state.target_kb, result))

    @Slot(int, str)
    def on_worker_failed(self, generation: int, message: str) -> None:
        self.release(generation)
        if generation != self._generation or not isinstance(self._state, Compressing):
            return
        self.set_state(Failed(message))

    def start_thread(self, worker: CompressWorker) -> None:
        thread = QThread()
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        self._jobs[worker.generation] = (thread, worker)
        thread.start()

    def release(self, generation: int) -> None:
        job = self._jobs.pop(generation, None)
        if job is None:
            return
        thread, _ = job
        thread.quit()
        thread.wait()

    def shutdown(self) -> None:
        self._generation += 1
        for generation in list(self._jobs):
            self.release(generation)
