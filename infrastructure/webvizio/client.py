import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from config import WebvizioConfig
from core import (
    GenericFailure,
    NoProjectSelected,
    NormalizedApiError,
    Project,
    Task,
    TaskListing,
    TasksFound,
)

from .error_mapping import error_from_exception, error_from_response

PROJECT_NOT_FOUND = "Project not found"


def _is_empty(body: Any) -> bool:
    return body is None or body == ""


def _field(body: Any, name: str) -> Any:
    return body.get(name) if isinstance(body, dict) else None


class WebvizioClient:
    """Authenticated calls to the Webvizio MCP API.

    Successful bodies are returned as parsed JSON; every failure is raised as
    ``NormalizedApiError`` (transport/status) or ``GenericFailure`` (a 2xx
    body without the field the operation needs). No retries.
    """

    def __init__(
        self,
        config: WebvizioConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger("webvizio_mcp.api")
        if not config.verify_tls:
            self.logger.warning("TLS certificate verification is DISABLED for %s", config.base_url)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.logger.debug("%s %s", method.upper(), url)
        try:
            response = getattr(self.session, method)(url, timeout=self.config.timeout, **kwargs)
        except (requests.RequestException, ValueError) as exc:
            error = error_from_exception(exc)
            self.logger.error("%s %s failed: [%s] %s", method.upper(), url, error.code, error.message)
            raise error from exc
        if response.status_code >= 400:
            error = error_from_response(response)
            self.logger.error(
                "%s %s failed: [%s] %s details=%r", method.upper(), url, error.code, error.message, error.details
            )
            raise error
        return response

    def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        kwargs: Dict[str, Any] = {"headers": self._headers(), "verify": self.config.verify_tls}
        if payload is not None:
            kwargs["json"] = payload
        response = self._send(method, self._url(path), **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _warn_unidentified(self, kind: str, items: List[Any]) -> List[Any]:
        missing = sum(1 for item in items if not item.identifier)
        if missing:
            self.logger.warning("%d %s record(s) without uuid", missing, kind)
        return items

    def _task_path(self, identifier: str, suffix: str = "") -> str:
        path = f"task/{quote(str(identifier), safe='')}"
        return f"{path}/{suffix}" if suffix else path

    # Projects

    def get_projects(self) -> List[Project]:
        body = self.request("get", "projects")
        if _is_empty(body) or not isinstance(body, list):
            raise GenericFailure("Failed to fetch projects")
        return self._warn_unidentified("project", [Project.from_dict(item) for item in body])

    def get_current_project(self) -> Project:
        body = self.request("get", "current-project")
        if _is_empty(body) or not isinstance(body, dict):
            raise GenericFailure("Failed to fetch current project")
        return Project.from_dict(body)

    def set_project(self, identifier: str) -> bool:
        body = self.request("post", "set-project", {"uuid": identifier})
        if _is_empty(body):
            raise GenericFailure("Failed to set project")
        if isinstance(body, dict):
            return bool(body.get("success"))
        return bool(body)

    # Tasks

    def get_tasks(self) -> TaskListing:
        try:
            body = self.request("get", "tasks")
        except NormalizedApiError as exc:
            if _field(exc.details, "message") == PROJECT_NOT_FOUND:
                self.logger.info("No current project selected")
                return NoProjectSelected()
            raise
        if _is_empty(body) or not isinstance(body, list):
            raise GenericFailure("Failed to fetch tasks")
        return TasksFound(self._warn_unidentified("task", [Task.from_dict(item) for item in body]))

    def get_task_description(self, identifier: str) -> str:
        description = _field(self.request("get", self._task_path(identifier)), "description")
        if not description:
            raise GenericFailure("Failed to get task description")
        return str(description)

    def get_task_prompt(self, identifier: str) -> str:
        prompt = _field(self.request("get", self._task_path(identifier, "prompt")), "prompt")
        if not prompt:
            raise GenericFailure("Failed to get task prompt")
        return str(prompt)

    def _task_logs(self, identifier: str, kind: str) -> str:
        # Empty logs are a normal state, not a failure.
        logs = _field(self.request("get", self._task_path(identifier, f"{kind}-logs")), "prompt")
        return str(logs) if logs else ""

    def get_task_console_logs(self, identifier: str) -> str:
        return self._task_logs(identifier, "console")

    def get_task_network_logs(self, identifier: str) -> str:
        return self._task_logs(identifier, "network")

    def get_task_action_logs(self, identifier: str) -> str:
        return self._task_logs(identifier, "action")

    def get_task_error_logs(self, identifier: str) -> str:
        return self._task_logs(identifier, "error")

    def get_task_screenshot(self, identifier: str) -> str:
        """Return the task screenshot as base64 text.

        The API answers with an image URL; the image itself is fetched
        without the API credentials.
        """
        url = _field(self.request("get", self._task_path(identifier, "screenshot")), "screenshot")
        if not url:
            raise GenericFailure("Failed to get task screenshot")
        image = self._send("get", str(url))
        return base64.b64encode(image.content).decode("ascii")

    def close_task(self, identifier: str) -> Optional[bool]:
        success = _field(self.request("post", self._task_path(identifier, "close")), "success")
        return None if success is None else bool(success)
