"""Productivity tool integrations.

Provides interfaces for:
- Asana: Task and project management
- Notion: Pages, databases and blocks
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from ..transform import unwrap
from .base import BaseClient


# ==============================================================================
# Asana Integration
# ==============================================================================


@dataclass
class AsanaClient(BaseClient):
    """Asana task management integration.

    Environment variables:
        ASANA_ACCESS_TOKEN: Personal access token
        ASANA_ENABLED: Set to 'true' to enable

    Every Asana payload travels inside a ``{"data": ...}`` envelope in both
    directions; methods return the unwrapped value.
    """

    DISPLAY_NAME: ClassVar[str] = "Asana"
    BASE_URL: ClassVar[str] = "https://app.asana.com/api/1.0"
    ENV_PREFIX: ClassVar[str] = "ASANA"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "1.0", "rate_limit_per_minute": 150}
    REQUIRED_CREDENTIALS = ("access_token",)

    name: str = "asana"

    async def _get(self, path: str, query: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.http.get(path, query)
        return unwrap(response.data)

    async def _send(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        body = {"data": data} if data is not None else None
        response = await getattr(self.http, method)(path, body)
        return unwrap(response.data)

    # Users & workspaces

    async def get_current_user(self) -> Dict[str, Any]:
        return await self._get("/users/me")

    async def list_workspaces(self) -> List[Dict[str, Any]]:
        return await self._get("/workspaces")

    # Projects

    async def list_projects(
        self,
        workspace_id: Optional[str] = None,
        archived: Optional[bool] = None,
        team_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._get(
            "/projects",
            {"workspace": workspace_id, "archived": archived, "team": team_id},
        )

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        return await self._get(f"/projects/{project_id}")

    async def create_project(
        self,
        workspace_id: str,
        name: str,
        notes: Optional[str] = None,
        color: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {"workspace": workspace_id, "name": name}
        if notes:
            data["notes"] = notes
        if color:
            data["color"] = color
        if team_id:
            data["team"] = team_id
        return await self._send("post", "/projects", data)

    # Tasks

    async def list_tasks(self, project_id: str, completed_since: Optional[str] = None) -> List[Dict[str, Any]]:
        """List tasks in a project."""
        return await self._get("/tasks", {"project": project_id, "completed_since": completed_since})

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        return await self._get(f"/tasks/{task_id}")

    async def create_task(
        self,
        project_id: str,
        name: str,
        notes: Optional[str] = None,
        assignee: Optional[str] = None,
        due_on: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Create an Asana task in *project_id*."""
        data: Dict[str, Any] = {"name": name, "projects": [project_id]}
        if notes:
            data["notes"] = notes
        if assignee:
            data["assignee"] = assignee
        if due_on:
            data["due_on"] = due_on
        if tags:
            data["tags"] = tags
        return await self._send("post", "/tasks", data)

    async def update_task(self, task_id: str, **changes: Any) -> Dict[str, Any]:
        return await self._send("put", f"/tasks/{task_id}", changes)

    async def complete_task(self, task_id: str) -> Dict[str, Any]:
        """Mark a task as complete."""
        return await self.update_task(task_id, completed=True)

    async def delete_task(self, task_id: str) -> None:
        await self.http.delete(f"/tasks/{task_id}")

    async def add_comment(self, task_id: str, text: str) -> Dict[str, Any]:
        """Add a comment (story) to a task."""
        return await self._send("post", f"/tasks/{task_id}/stories", {"text": text})

    async def search_tasks(
        self,
        workspace_id: str,
        text: str,
        project_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        return await self._get(
            f"/workspaces/{workspace_id}/tasks/search",
            {
                "text": text,
                "projects.any": project_id,
                "assignee.any": assignee_id,
                "completed": completed,
            },
        )


# ==============================================================================
# Notion Integration
# ==============================================================================


@dataclass
class NotionClient(BaseClient):
    """Notion workspace integration.

    Environment variables:
        NOTION_ACCESS_TOKEN: Integration token
        NOTION_ENABLED: Set to 'true' to enable
    """

    NOTION_VERSION: ClassVar[str] = "2022-06-28"

    DISPLAY_NAME: ClassVar[str] = "Notion"
    BASE_URL: ClassVar[str] = "https://api.notion.com/v1"
    ENV_PREFIX: ClassVar[str] = "NOTION"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v1", "rate_limit_per_minute": 300}
    DEFAULT_HEADERS: ClassVar[Dict[str, str]] = {"Notion-Version": NOTION_VERSION}
    REQUIRED_CREDENTIALS = ("access_token",)

    name: str = "notion"

    async def get_current_user(self) -> Dict[str, Any]:
        response = await self.http.get("/users/me")
        return response.data

    async def list_users(self, start_cursor: Optional[str] = None) -> Dict[str, Any]:
        response = await self.http.get("/users", {"start_cursor": start_cursor})
        return _page(response.data)

    # Pages

    async def get_page(self, page_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/pages/{page_id}")
        return response.data

    async def create_page(
        self,
        parent: Dict[str, str],
        properties: Dict[str, Any],
        children: Optional[List[Dict[str, Any]]] = None,
        icon: Optional[Dict[str, Any]] = None,
        cover: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a page under a database or another page.

        *parent* is either ``{"database_id": ...}`` or ``{"page_id": ...}``.
        """
        body: Dict[str, Any] = {"parent": parent, "properties": properties}
        if children:
            body["children"] = children
        if icon:
            body["icon"] = icon
        if cover:
            body["cover"] = cover
        response = await self.http.post("/pages", body)
        return response.data

    async def update_page(
        self,
        page_id: str,
        properties: Optional[Dict[str, Any]] = None,
        archived: Optional[bool] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if properties is not None:
            body["properties"] = properties
        if archived is not None:
            body["archived"] = archived
        response = await self.http.patch(f"/pages/{page_id}", body)
        return response.data

    async def archive_page(self, page_id: str) -> Dict[str, Any]:
        return await self.update_page(page_id, archived=True)

    # Databases

    async def get_database(self, database_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/databases/{database_id}")
        return response.data

    async def query_database(
        self,
        database_id: str,
        filter: Optional[Dict[str, Any]] = None,
        sorts: Optional[List[Dict[str, Any]]] = None,
        start_cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Query a Notion database."""
        body: Dict[str, Any] = {}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        if start_cursor:
            body["start_cursor"] = start_cursor
        if page_size:
            body["page_size"] = page_size
        response = await self.http.post(f"/databases/{database_id}/query", body)
        return _page(response.data)

    # Blocks

    async def get_block_children(self, block_id: str, start_cursor: Optional[str] = None) -> Dict[str, Any]:
        response = await self.http.get(f"/blocks/{block_id}/children", {"start_cursor": start_cursor})
        return _page(response.data)

    async def append_block_children(self, block_id: str, children: List[Dict[str, Any]]) -> Dict[str, Any]:
        response = await self.http.patch(f"/blocks/{block_id}/children", {"children": children})
        return {"results": response.data.get("results", [])}

    async def search(
        self,
        query: Optional[str] = None,
        filter_type: Optional[str] = None,
        start_cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Search pages and databases shared with the integration."""
        body: Dict[str, Any] = {}
        if query:
            body["query"] = query
        if filter_type:
            body["filter"] = {"property": "object", "value": filter_type}
        if start_cursor:
            body["start_cursor"] = start_cursor
        if page_size:
            body["page_size"] = page_size
        response = await self.http.post("/search", body)
        return _page(response.data)


def _page(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "results": data.get("results", []),
        "nextCursor": data.get("next_cursor"),
        "hasMore": bool(data.get("has_more")),
    }


__all__ = ["AsanaClient", "NotionClient"]
