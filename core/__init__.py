from .errors import (
    NETWORK_ERROR_CODE,
    REQUEST_ERROR_CODE,
    WebvizioError,
    NormalizedApiError,
    GenericFailure,
    ToolValidationError,
)
from .project import Project
from .task import Task, TasksFound, NoProjectSelected, TaskListing

__all__ = [
    "Project",
    "Task",
    "TasksFound",
    "NoProjectSelected",
    "TaskListing",
    # Errors
    "NETWORK_ERROR_CODE",
    "REQUEST_ERROR_CODE",
    "WebvizioError",
    "NormalizedApiError",
    "GenericFailure",
    "ToolValidationError",
]
