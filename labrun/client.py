"""HTTP client for the external run manager.

Commands (pause/resume/stop/skip/retry) only ask the backend to change the run;
their effect is observed on the next `get_run`. Nothing here touches a locally
held timeline.
"""

from __future__ import annotations

from typing import Any

import httpx

from labrun.log import get_logger
from labrun.model import Run, TaskSchedule, Workflow
from labrun.settings import get_settings

log = get_logger(__name__)

API_PREFIX = "/api/v1"

RUN_COMMANDS = ("pause", "resume", "stop")
TASK_COMMANDS = ("skip_task", "retry_task")


class CommandFailure(RuntimeError):
    """A run-manager request failed; the run state is unchanged."""

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        run_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.run_id = run_id
        self.status_code = status_code
        self.message = message
        target = f" run '{run_id}'" if run_id else ""
        super().__init__(f"{operation}{target} failed: {message}")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


class RunManagerClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        headers = {"Accept": "application/json"}
        token = token if token is not None else settings.api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.base_url = (base_url or settings.api_url).rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout if timeout is not None else settings.http_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RunManagerClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        run_id: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        log.info("run_manager_request", operation=operation, run_id=run_id, path=path)
        try:
            response = self._http.request(method, f"{API_PREFIX}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            detail = _error_detail(e.response)
            log.warning(
                "run_manager_rejected",
                operation=operation,
                run_id=run_id,
                status_code=code,
                detail=detail,
            )
            raise CommandFailure(
                operation, f"HTTP {code}: {detail}", run_id=run_id, status_code=code
            ) from e
        except httpx.HTTPError as e:
            log.warning(
                "run_manager_unreachable", operation=operation, run_id=run_id, error=str(e)
            )
            raise CommandFailure(operation, str(e) or type(e).__name__, run_id=run_id) from e

        log.info("run_manager_ok", operation=operation, run_id=run_id)
        return response

    def _decode(self, operation: str, response: httpx.Response, run_id: str | None, parse):
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise CommandFailure(
                operation, f"unexpected response: {e}", run_id=run_id
            ) from e

    # Commands.

    def pause(self, run_id: str) -> None:
        self._request("pause", "POST", f"/runs/{run_id}/pause", run_id=run_id)

    def resume(self, run_id: str) -> None:
        self._request("resume", "POST", f"/runs/{run_id}/resume", run_id=run_id)

    def stop(self, run_id: str) -> None:
        self._request("stop", "POST", f"/runs/{run_id}/stop", run_id=run_id)

    def skip_task(self, run_id: str, task_id: str) -> None:
        self._request(
            "skip_task", "POST", f"/runs/{run_id}/tasks/{task_id}/skip", run_id=run_id
        )

    def retry_task(self, run_id: str, task_id: str) -> None:
        self._request(
            "retry_task", "POST", f"/runs/{run_id}/tasks/{task_id}/retry", run_id=run_id
        )

    def issue(self, operation: str, run_id: str, task_id: str | None = None) -> None:
        """Dispatch a command by name (used by the CLI and the UI controller)."""

        if operation in RUN_COMMANDS:
            getattr(self, operation)(run_id)
            return
        if operation in TASK_COMMANDS:
            if not task_id:
                raise ValueError(f"{operation} requires a task id")
            getattr(self, operation)(run_id, task_id)
            return
        raise ValueError(f"Unknown run command: {operation!r}")

    # Reads.

    def get_run(self, run_id: str) -> Run:
        resp = self._request("get_run", "GET", f"/runs/{run_id}", run_id=run_id)
        return self._decode("get_run", resp, run_id, Run.from_json)

    def list_runs(self, skip: int = 0, limit: int = 20) -> tuple[list[Run], int]:
        resp = self._request(
            "list_runs", "GET", "/runs/", params={"skip": skip, "limit": limit}
        )
        return self._decode(
            "list_runs",
            resp,
            None,
            lambda body: ([Run.from_json(r) for r in body["items"]], int(body["total"])),
        )

    def start_run(self, workflow_id: str, workcell_id: str, em_version: str) -> Run:
        resp = self._request(
            "start_run",
            "POST",
            "/runs/start",
            json={
                "workflow_id": workflow_id,
                "workcell_id": workcell_id,
                "em_version": em_version,
            },
        )
        return self._decode("start_run", resp, None, Run.from_json)

    def get_workflow(self, workflow_id: str) -> Workflow:
        resp = self._request("get_workflow", "GET", f"/workflows/{workflow_id}")
        return self._decode("get_workflow", resp, None, Workflow.from_json)

    def get_workflow_schedule(self, workflow_id: str) -> dict[str, TaskSchedule]:
        resp = self._request("get_workflow_schedule", "GET", f"/workflows/{workflow_id}/schedule")
        return self._decode(
            "get_workflow_schedule",
            resp,
            None,
            lambda body: {str(k): TaskSchedule.from_json(v) for k, v in body.items()},
        )
