from __future__ import annotations

import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass

from PySide6.QtCore import QObject, QThread, Signal, Slot

from labrun.client import CommandFailure, RunManagerClient
from labrun.log import get_logger
from labrun.model import Run, Workflow

log = get_logger(__name__)

REFRESH = "refresh"
LOAD_RUN = "load_run"


@dataclass(frozen=True)
class CommandRequest:
    operation: str  # pause | resume | stop | skip_task | retry_task | refresh | load_run
    run_id: str
    task_id: str | None = None


@dataclass(frozen=True)
class CommandOutcome:
    request: CommandRequest
    # Set for `refresh` and `load_run`; commands only report success.
    run: Run | None = None
    # Set for `load_run`: the workflow the run executes.
    workflow: Workflow | None = None


ClientFactory = Callable[[], RunManagerClient]


class CommandWorker(QObject):
    succeeded = Signal(int, object)  # (token, CommandOutcome)
    failed = Signal(int, str, str)  # (token, operation, error_text)
    finished = Signal(int)  # (token)

    def __init__(
        self,
        *,
        token: int,
        request: CommandRequest,
        client_factory: ClientFactory,
    ) -> None:
        super().__init__()
        self._token = token
        self._request = request
        self._client_factory = client_factory

    @Slot()
    def run(self) -> None:
        req = self._request
        try:
            with self._client_factory() as client:
                if req.operation == REFRESH:
                    outcome = CommandOutcome(request=req, run=client.get_run(req.run_id))
                elif req.operation == LOAD_RUN:
                    run = client.get_run(req.run_id)
                    workflow = client.get_workflow(run.workflow_id)
                    outcome = CommandOutcome(request=req, run=run, workflow=workflow)
                else:
                    client.issue(req.operation, req.run_id, req.task_id)
                    outcome = CommandOutcome(request=req)
            self.succeeded.emit(self._token, outcome)
        except CommandFailure as e:
            self.failed.emit(self._token, req.operation, str(e))
        except Exception:  # noqa: BLE001 - show traceback for unexpected failures
            self.failed.emit(self._token, req.operation, traceback.format_exc())
        finally:
            self.finished.emit(self._token)


class RunController(QObject):
    """Sends run-manager commands off the UI thread, one at a time.

    The outcome of a command is only a success/failure notification; the new
    run state is observed through a subsequent `refresh`.
    """

    started = Signal(int, str)  # (token, operation)
    succeeded = Signal(int, object)  # (token, CommandOutcome)
    failed = Signal(int, str, str)  # (token, operation, error_text)
    finished = Signal(int, float)  # (token, elapsed_seconds)
    idle = Signal()  # worker thread fully stopped; a new command may start

    def __init__(self, *, client_factory: ClientFactory | None = None) -> None:
        super().__init__()
        self._client_factory: ClientFactory = client_factory or RunManagerClient
        self._next_token = 1
        self._active_token: int | None = None
        self._active_request: CommandRequest | None = None

        # Hold the QThread/worker wrappers until the thread has really stopped;
        # dropping them early destroys a running QThread.
        self._thread: QThread | None = None
        self._worker: CommandWorker | None = None
        self._started_at: float | None = None

    def is_running(self) -> bool:
        return self._active_token is not None

    def active_token(self) -> int | None:
        return self._active_token

    def active_request(self) -> CommandRequest | None:
        return self._active_request

    def start(self, request: CommandRequest) -> int:
        if self._thread is not None:
            raise RuntimeError("Command already active")

        token = self._next_token
        self._next_token += 1
        self._active_token = token
        self._active_request = request
        self._started_at = time.monotonic()
        log.info(
            "run_command_started",
            token=token,
            operation=request.operation,
            run_id=request.run_id,
            task_id=request.task_id,
        )

        thread = QThread()
        worker = CommandWorker(
            token=token, request=request, client_factory=self._client_factory
        )
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.succeeded.connect(self.succeeded)
        worker.failed.connect(self.failed)
        worker.finished.connect(self._on_worker_finished)
        worker.finished.connect(thread.quit)

        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(self._on_thread_finished)
        thread.finished.connect(thread.deleteLater)

        self._thread = thread
        self._worker = worker

        self.started.emit(token, request.operation)
        thread.start()
        return token

    @Slot()
    def shutdown(self) -> None:
        """Wait for an in-flight request; HTTP calls are bounded by the client timeout."""

        if self._thread is None:
            return
        try:
            self._thread.wait()
        except RuntimeError:
            # Can happen during interpreter teardown.
            pass

    @Slot(int)
    def _on_worker_finished(self, token: int) -> None:
        elapsed = 0.0
        if self._started_at is not None:
            elapsed = max(0.0, time.monotonic() - self._started_at)
        log.info("run_command_finished", token=token, elapsed=round(elapsed, 3))
        # Thread/worker refs are cleared in `_on_thread_finished`, which fires
        # after the QThread has actually stopped.
        self.finished.emit(token, elapsed)

    @Slot()
    def _on_thread_finished(self) -> None:
        self._thread = None
        self._worker = None
        self._active_token = None
        self._active_request = None
        self._started_at = None
        self.idle.emit()
