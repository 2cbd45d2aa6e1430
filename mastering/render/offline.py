"""
Offline render job: one immutable settings snapshot, one source buffer, one encoded WAV.
State machine: IDLE -> CONFIGURING -> RUNNING -> COMPLETED | CANCELLED | FAILED.
Cancellation is cooperative and checked between blocks and between stages of the job,
never inside a block. No file is written unless every step completed.
"""
import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from mastering.analysis.qc import analyze
from mastering.core.errors import NoAudioLoaded, RenderCancelled, RenderError
from mastering.core.types import RenderResult, RenderState, SampleBuffer
from mastering.export.exporter import Exporter
from mastering.export.pcm import encode_wav
from mastering.params.settings import MasteringSettings
from mastering.render.graph import DEFAULT_BLOCK_SIZE, prepare_source, render_offline

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int, Optional[str]], None]

# Progress milestones (percent)
PROGRESS_PREPARED = 5
PROGRESS_STARTED = 10
PROGRESS_RENDERED = 70
PROGRESS_ENCODED = 90
PROGRESS_WRITTEN = 100


class CancelToken:
    """Thread-safe cancellation flag shared between caller and job."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise RenderCancelled()


class RenderJob:
    def __init__(
        self,
        source: Optional[SampleBuffer],
        settings: Optional[MasteringSettings] = None,
        progress: Optional[ProgressSink] = None,
        output_path: Optional[str] = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        write_sidecar: bool = False,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.source = source
        self.settings = settings or MasteringSettings()
        self.output_path = output_path
        self.block_size = block_size
        self.write_sidecar = write_sidecar
        self.token = cancel_token or CancelToken()
        self._progress = progress
        self._last_percent = -1
        self._state = RenderState.IDLE
        self._lock = threading.Lock()
        self.warnings: List[str] = []
        self.report: Optional[dict] = None

    @property
    def state(self) -> RenderState:
        return self._state

    def cancel(self) -> None:
        self.token.cancel()

    def _set_state(self, state: RenderState) -> None:
        with self._lock:
            self._state = state

    def _report(self, percent: int, label: Optional[str] = None) -> None:
        # Non-decreasing; repeated percentages are dropped
        percent = max(0, min(100, int(percent)))
        if percent <= self._last_percent:
            return
        self._last_percent = percent
        if self._progress is not None:
            self._progress(percent, label)

    def _on_block(self, done: int, total: int) -> None:
        span = PROGRESS_RENDERED - PROGRESS_STARTED
        percent = PROGRESS_STARTED + (span * done) // max(total, 1)
        self._report(min(percent, PROGRESS_RENDERED - 1), "Rendering audio...")

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self) -> RenderResult:
        """Execute the render. Taxonomy errors become a RenderResult; nothing is raised."""
        if self._state != RenderState.IDLE:
            raise RuntimeError(f"RenderJob already used (state={self._state.value})")
        self._set_state(RenderState.CONFIGURING)
        started = time.perf_counter()
        try:
            data, rendered = self._run()
        except NoAudioLoaded as e:
            logger.error("[Offline Render] %s", e)
            self._set_state(RenderState.FAILED)
            return RenderResult.failed(str(e), warnings=self.warnings)
        except RenderCancelled:
            logger.info("[Offline Render] cancelled")
            self._set_state(RenderState.CANCELLED)
            return RenderResult.cancelled(warnings=self.warnings)
        except RenderError as e:
            logger.error("[Offline Render] aborted: %s", e)
            self._set_state(RenderState.FAILED)
            return RenderResult.failed(str(e), warnings=self.warnings)
        except Exception as e:
            logger.exception("[Offline Render] unexpected failure")
            self._set_state(RenderState.FAILED)
            return RenderResult.failed(f"{type(e).__name__}: {e}", warnings=self.warnings)

        self._set_state(RenderState.COMPLETED)
        logger.info(
            "[Offline Render] Complete! %.2fs @ %d Hz, %d bytes in %.2fs",
            rendered.duration, rendered.sample_rate, len(data), time.perf_counter() - started,
        )
        return RenderResult.success(
            data, buffer=rendered, output_path=self.output_path, warnings=self.warnings,
        )

    def _run(self):
        if self.source is None:
            raise NoAudioLoaded()
        settings = self.settings
        token = self.token
        token.check()

        target_rate = settings.output_sample_rate_hz
        logger.info(
            "[Offline Render] Starting... duration=%.2fs source=%d Hz target=%d Hz/%d-bit",
            self.source.duration, self.source.sample_rate, target_rate, settings.output_bit_depth,
        )
        prepared, normalization = prepare_source(self.source, settings, target_rate)
        if normalization is not None and normalization.warning is not None:
            self.warnings.append(str(normalization.warning))
        self._report(PROGRESS_PREPARED, "Preparing audio...")
        token.check()

        self._set_state(RenderState.RUNNING)
        self._report(PROGRESS_STARTED, "Rendering audio...")
        rendered = render_offline(
            prepared, settings, self.block_size,
            is_cancelled=lambda: token.cancelled,
            on_block=self._on_block,
        )
        self._report(PROGRESS_RENDERED, "Encoding...")
        token.check()

        data = encode_wav(rendered, target_rate, settings.output_bit_depth)
        self._report(PROGRESS_ENCODED, "Saving file..." if self.output_path else "Encoded")
        token.check()

        if self.output_path:
            if self.write_sidecar:
                self.report = analyze(rendered, settings.ceiling_db, settings.target_lufs)
            written = Exporter.write_atomic(self.output_path, data)
            if self.write_sidecar:
                try:
                    Exporter.write_sidecar(self.output_path, settings.to_dict(), self.report, self.warnings)
                except OSError:
                    # Master and sidecar land together or not at all
                    written.unlink(missing_ok=True)
                    raise
        self._report(PROGRESS_WRITTEN, "Complete!")
        return data, rendered

    def start(self, executor: Optional[Executor] = None) -> Future:
        """Run on a worker thread; returns a Future resolving to the RenderResult."""
        if executor is not None:
            return executor.submit(self.run)
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="render")
        future = pool.submit(self.run)
        pool.shutdown(wait=False)
        return future
