"""Tool catalog and invocation dispatcher.

Each tool is one gateway call plus a formatting step. Handler failures never
escape ``ToolDispatcher.call_tool``: they come back as a ``ToolResult`` with
``is_error`` set.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import jsonschema

from application.ports import WebvizioGateway
from core import GenericFailure, NoProjectSelected, NormalizedApiError, ToolValidationError

SCREENSHOT_MIME_TYPE = "image/png"
NO_PROJECT_SELECTED_HINT = (
    "No project selected. You need to get the list of projects via get_projects tool "
    "select the uuid of the required project and set it using set_project tool"
)
TASK_CLOSED_TEXT = "Task closed successfully"
UNKNOWN_ERROR_TEXT = "Unknown error occurred"

_SUPPLEMENTARY_HINT = (
    "Use this tool if the task prompt lacks sufficient information for execution. "
    "Do not use this tool if the task and its solution methods are entirely clear from the task prompt"
)


@dataclass(frozen=True)
class ToolResult:
    content: List[Dict[str, Any]]
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"content": list(self.content), "isError": self.is_error}

    @property
    def text(self) -> str:
        return "\n".join(str(item.get("text", "")) for item in self.content if item.get("type") == "text")


def text_result(text: str, *, is_error: bool = False) -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": text}], is_error=is_error)


def image_result(data: str, mime_type: str = SCREENSHOT_MIME_TYPE) -> ToolResult:
    return ToolResult(content=[{"type": "image", "data": data, "mimeType": mime_type}])


def _pretty(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def error_result(exc: BaseException) -> ToolResult:
    if isinstance(exc, NormalizedApiError):
        text = f"Error {exc.code}: {exc.message}"
        if exc.details not in (None, ""):
            text += f"\nDetails: {_pretty(exc.details)}"
        return text_result(text, is_error=True)
    return text_result(f"Error: {str(exc) or UNKNOWN_ERROR_TEXT}", is_error=True)


Handler = Callable[[WebvizioGateway, Dict[str, Any]], ToolResult]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    title: str
    description: str
    handler: Handler
    input_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    @property
    def requires_identifier(self) -> bool:
        return "identifier" in self.input_schema.get("required", [])

    def definition(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "annotations": {"title": self.title},
        }


def _identifier_schema(subject: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "identifier": {
                "type": "string",
                "minLength": 1,
                "description": f"The identifier (uuid) of the {subject}",
            },
            "uuid": {"type": "string", "description": "Alias for identifier."},
        },
        "required": ["identifier"],
    }


def _identifier(args: Dict[str, Any], tool: str) -> str:
    value = str(args.get("identifier") or "").strip()
    if not value:
        raise ToolValidationError(f"{tool} requires a non-empty identifier")
    return value


# Handlers


def _get_projects(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    projects = gateway.get_projects()
    return text_result(f"Found {len(projects)} projects:\n\n{_pretty([p.to_dict() for p in projects])}")


def _get_current_project(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    project = gateway.get_current_project()
    return text_result(f"Current project details:\n\n{_pretty(project.to_dict())}")


def _set_project(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    identifier = _identifier(args, "set_project")
    if gateway.set_project(identifier):
        return text_result(f"Successfully set project {identifier} as current")
    return text_result(f"Failed to set project {identifier} as current")


def _get_tasks(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    listing = gateway.get_tasks()
    if isinstance(listing, NoProjectSelected):
        return text_result(NO_PROJECT_SELECTED_HINT)
    tasks = [t.to_dict() for t in listing.tasks]
    return text_result(f"Found {len(tasks)} tasks:\n\n{_pretty(tasks)}")


def _get_task_description(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    description = gateway.get_task_description(_identifier(args, "get_task_description"))
    return text_result(f"Task description:\n\n{description}")


def _get_task_prompt(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    prompt = gateway.get_task_prompt(_identifier(args, "get_task_prompt"))
    return text_result(f"Task prompt:\n\n{prompt}")


def _logs_handler(kind: str) -> Handler:
    tool = f"get_task_{kind}_logs"

    def handler(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
        logs = getattr(gateway, tool)(_identifier(args, tool))
        if not logs:
            return text_result(f"No {kind} logs found")
        return text_result(f"Task {kind} logs:\n\n{logs}")

    handler.__name__ = f"_{tool}"
    return handler


def _get_task_screenshot(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    return image_result(gateway.get_task_screenshot(_identifier(args, "get_task_screenshot")))


def _close_task(gateway: WebvizioGateway, args: Dict[str, Any]) -> ToolResult:
    identifier = _identifier(args, "close_task")
    if gateway.close_task(identifier) is False:
        raise GenericFailure(f"Failed to close task {identifier}")
    return text_result(TASK_CLOSED_TEXT)


TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name="get_projects",
        title="Get Projects",
        description="Fetch all available Webvizio projects",
        handler=_get_projects,
    ),
    ToolSpec(
        name="get_current_project",
        title="Get Current Project",
        description="Fetch details of the currently selected Webvizio project",
        handler=_get_current_project,
    ),
    ToolSpec(
        name="set_project",
        title="Set Project",
        description="Set the current Webvizio project",
        handler=_set_project,
        input_schema=_identifier_schema("project to set as current"),
    ),
    ToolSpec(
        name="get_tasks",
        title="Get Tasks",
        description=(
            "Fetches the users task list. Use this tool if a user asks to see their tasks. "
            "You should also use it if the user wants to execute a specific task but you don't have its "
            "identifier to use with the get_task_prompt tool. Display received tasks as <task number>: <title>. "
            "For example, 123: Prepare Q2 Report. Do not show the UUID."
        ),
        handler=_get_tasks,
    ),
    ToolSpec(
        name="get_task_description",
        title="Get Task Description",
        description=(
            "Fetches the task description. Use this tool only if the user ask you to provide the task "
            "description. If you need information for task execution, use get_task_prompt tool instead"
        ),
        handler=_get_task_description,
        input_schema=_identifier_schema("task to get the description for"),
    ),
    ToolSpec(
        name="get_task_prompt",
        title="Get Task Prompt",
        description=(
            "Fetches the task prompt that includes a description of the task and relevant technical data to "
            "facilitate proper understanding and execution. You should use this tool whenever a user requests "
            "the execution of a specific task, by name, number, or by providing a link such as "
            "\"https://app.webvizio.com/task/8ad64d4a-176a-41a0-9e4a-d20adcf25da3/show.\" In cases where a link "
            "is provided, extract the UUID from the URL and pass it as the identifier. If you are unable to "
            "obtain the identifier based on the task's title or number, use the get_tasks tool to retrieve a "
            "list of all available tasks."
        ),
        handler=_get_task_prompt,
        input_schema=_identifier_schema("task to get the prompt for"),
    ),
    ToolSpec(
        name="get_task_console_logs",
        title="Get Task Console Logs",
        description=(
            "Fetches the task console logs (Browser console logs) which have been added to the task. "
            + _SUPPLEMENTARY_HINT
        ),
        handler=_logs_handler("console"),
        input_schema=_identifier_schema("task to get the console logs for"),
    ),
    ToolSpec(
        name="get_task_network_logs",
        title="Get Task Network Logs",
        description=(
            "Fetches the task network logs (Network requests) which have been added to the task. "
            + _SUPPLEMENTARY_HINT
        ),
        handler=_logs_handler("network"),
        input_schema=_identifier_schema("task to get the network logs for"),
    ),
    ToolSpec(
        name="get_task_action_logs",
        title="Get Task Action Logs",
        description=(
            "Fetches the task action logs (Repro steps) which have been added to the task. " + _SUPPLEMENTARY_HINT
        ),
        handler=_logs_handler("action"),
        input_schema=_identifier_schema("task to get the action logs for"),
    ),
    ToolSpec(
        name="get_task_screenshot",
        title="Get Task Screenshot",
        description=(
            "Fetches the task screenshot. By default, a screenshot is automatically generated when a task is "
            "created, displaying the page in the browser exactly as the user saw it at that moment. A distinctive "
            "lilac marker on the screenshot indicates the location of the element on the page that the task "
            "refers to. In some cases, the task author may also add additional hints and instructions directly "
            "onto the screenshot. Analyzing a screenshot can also be particularly useful for tasks related to "
            "layout or resolving visual bugs. " + _SUPPLEMENTARY_HINT
        ),
        handler=_get_task_screenshot,
        input_schema=_identifier_schema("task to get the screenshot for"),
    ),
    ToolSpec(
        name="close_task",
        title="Close Task",
        description=(
            "Closes the task. Use this tool only if the user ask you to close the task. "
            "DO NOT use this tool until the user confirms the task is complete."
        ),
        handler=_close_task,
        input_schema=_identifier_schema("task to close"),
    ),
]

TOOLS_BY_NAME: Dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


def get_tool_definitions() -> List[Dict[str, Any]]:
    return [spec.definition() for spec in TOOL_SPECS]


class ToolDispatcher:
    def __init__(self, gateway: WebvizioGateway, logger: Optional[logging.Logger] = None) -> None:
        self.gateway = gateway
        self.logger = logger or logging.getLogger("webvizio_mcp.tools")

    def has_tool(self, name: Any) -> bool:
        return isinstance(name, str) and name in TOOLS_BY_NAME

    def validate_arguments(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Fold the ``uuid`` alias into ``identifier`` and check the input schema."""
        spec = TOOLS_BY_NAME.get(name) if isinstance(name, str) else None
        if spec is None:
            raise ToolValidationError(f"Unknown tool: {name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ToolValidationError("arguments must be an object")
        args = dict(arguments)
        alias = args.pop("uuid", None)
        if spec.requires_identifier and "identifier" not in args and alias is not None:
            args["identifier"] = alias
        try:
            jsonschema.validate(instance=args, schema=spec.input_schema)
        except jsonschema.ValidationError as exc:
            raise ToolValidationError(f"Invalid arguments for {name}: {exc.message}") from exc
        return args

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        try:
            args = self.validate_arguments(name, arguments)
            self.logger.info("Tool %s called", name)
            return TOOLS_BY_NAME[name].handler(self.gateway, args)
        except Exception as exc:
            self.logger.error("Error handling tool %s: %s", name, exc)
            return error_result(exc)
