from typing import Protocol, List, Optional
from core import Project, TaskListing


class WebvizioGateway(Protocol):
    def get_projects(self) -> List[Project]:
        ...

    def get_current_project(self) -> Project:
        ...

    def set_project(self, identifier: str) -> bool:
        ...

    def get_tasks(self) -> TaskListing:
        ...

    def get_task_description(self, identifier: str) -> str:
        ...

    def get_task_prompt(self, identifier: str) -> str:
        ...

    def get_task_console_logs(self, identifier: str) -> str:
        ...

    def get_task_network_logs(self, identifier: str) -> str:
        ...

    def get_task_action_logs(self, identifier: str) -> str:
        ...

    def get_task_error_logs(self, identifier: str) -> str:
        ...

    def get_task_screenshot(self, identifier: str) -> str:
        ...

    def close_task(self, identifier: str) -> Optional[bool]:
        ...
