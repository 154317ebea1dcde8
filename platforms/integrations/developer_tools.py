"""Developer tools integrations.

Provides interfaces for:
- GitHub: Repositories, issues, pull requests, Actions and releases
- Docker: Containers, images, networks and volumes on a Docker daemon
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from ..config import get_env_var
from ..errors import PlatformError
from ..transform import camelize, to_camel_case
from .base import BaseClient

logger = logging.getLogger(__name__)


# ==============================================================================
# GitHub Integration
# ==============================================================================


@dataclass
class GitHubClient(BaseClient):
    """GitHub REST API client.

    Environment variables:
        GITHUB_ACCESS_TOKEN: Personal access token or OAuth token
        GITHUB_ENABLED: Set to 'true' to enable

    Features:
        - Repository management
        - Issues and pull requests
        - Workflow dispatch and runs
        - Release management
    """

    DISPLAY_NAME: ClassVar[str] = "GitHub"
    BASE_URL: ClassVar[str] = "https://api.github.com"
    ENV_PREFIX: ClassVar[str] = "GITHUB"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "2022-11-28", "rate_limit_per_minute": 5000}
    DEFAULT_HEADERS: ClassVar[Dict[str, str]] = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    REQUIRED_CREDENTIALS = ("access_token",)

    name: str = "github"

    # =====================
    # Users
    # =====================

    async def get_current_user(self) -> Dict[str, Any]:
        response = await self.http.get("/user")
        return camelize(response.data)

    async def get_user(self, username: str) -> Dict[str, Any]:
        response = await self.http.get(f"/users/{username}")
        return camelize(response.data)

    # =====================
    # Repositories
    # =====================

    async def list_user_repos(
        self,
        type: str = "owner",
        sort: str = "updated",
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        """List repositories of the authenticated user."""
        response = await self.http.get(
            "/user/repos",
            {"type": type, "sort": sort, "per_page": per_page},
        )
        return camelize(response.data)

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        response = await self.http.get(f"/repos/{owner}/{repo}")
        return camelize(response.data)

    async def create_repo(
        self,
        name: str,
        description: Optional[str] = None,
        private: bool = False,
        auto_init: Optional[bool] = None,
        gitignore_template: Optional[str] = None,
        license_template: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name, "private": private}
        if description:
            body["description"] = description
        if auto_init is not None:
            body["auto_init"] = auto_init
        if gitignore_template:
            body["gitignore_template"] = gitignore_template
        if license_template:
            body["license_template"] = license_template

        response = await self.http.post("/user/repos", body)
        return camelize(response.data)

    async def fork_repo(self, owner: str, repo: str, organization: Optional[str] = None) -> Dict[str, Any]:
        body = {"organization": organization} if organization else None
        response = await self.http.post(f"/repos/{owner}/{repo}/forks", body)
        return camelize(response.data)

    async def delete_repo(self, owner: str, repo: str) -> None:
        await self.http.delete(f"/repos/{owner}/{repo}")

    # =====================
    # Issues
    # =====================

    async def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "open",
        labels: Optional[List[str]] = None,
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"state": state, "per_page": per_page}
        if labels:
            query["labels"] = ",".join(labels)
        response = await self.http.get(f"/repos/{owner}/{repo}/issues", query)
        return camelize(response.data)

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: Optional[str] = None,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Create a GitHub issue."""
        payload: Dict[str, Any] = {"title": title, "labels": labels or []}
        if body:
            payload["body"] = body
        if assignees:
            payload["assignees"] = assignees

        response = await self.http.post(f"/repos/{owner}/{repo}/issues", payload)
        return camelize(response.data)

    async def update_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        **changes: Any,
    ) -> Dict[str, Any]:
        """Patch an issue; *changes* are GitHub field names (title, state, ...)."""
        response = await self.http.patch(f"/repos/{owner}/{repo}/issues/{issue_number}", changes)
        return camelize(response.data)

    # =====================
    # Pull Requests
    # =====================

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "open",
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        response = await self.http.get(
            f"/repos/{owner}/{repo}/pulls",
            {"state": state, "per_page": per_page},
        )
        return camelize(response.data)

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: Optional[str] = None,
        draft: bool = False,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "head": head, "base": base, "draft": draft}
        if body:
            payload["body"] = body
        response = await self.http.post(f"/repos/{owner}/{repo}/pulls", payload)
        return camelize(response.data)

    async def merge_pull_request(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        merge_method: str = "merge",
        commit_title: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"merge_method": merge_method}
        if commit_title:
            payload["commit_title"] = commit_title
        response = await self.http.put(f"/repos/{owner}/{repo}/pulls/{pull_number}/merge", payload)
        return response.data

    # =====================
    # Actions
    # =====================

    async def list_workflows(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        response = await self.http.get(f"/repos/{owner}/{repo}/actions/workflows")
        return camelize(response.data.get("workflows", []))

    async def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        """Get recent workflow runs, optionally for a single workflow."""
        path = f"/repos/{owner}/{repo}/actions/runs"
        if workflow_id:
            path = f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/runs"
        response = await self.http.get(path, {"status": status, "per_page": per_page})
        return camelize(response.data.get("workflow_runs", []))

    async def trigger_workflow(
        self,
        owner: str,
        repo: str,
        workflow_id: str,
        ref: str = "main",
        inputs: Optional[Dict[str, str]] = None,
    ) -> None:
        """Trigger a GitHub Actions workflow."""
        await self.http.post(
            f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
            {"ref": ref, "inputs": inputs or {}},
        )

    # =====================
    # Releases
    # =====================

    async def list_releases(self, owner: str, repo: str, per_page: int = 30) -> List[Dict[str, Any]]:
        response = await self.http.get(f"/repos/{owner}/{repo}/releases", {"per_page": per_page})
        return camelize(response.data)

    async def create_release(
        self,
        owner: str,
        repo: str,
        tag_name: str,
        name: Optional[str] = None,
        body: Optional[str] = None,
        draft: bool = False,
        prerelease: bool = False,
        target_commitish: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a GitHub release."""
        payload: Dict[str, Any] = {
            "tag_name": tag_name,
            "name": name or tag_name,
            "draft": draft,
            "prerelease": prerelease,
        }
        if body:
            payload["body"] = body
        if target_commitish:
            payload["target_commitish"] = target_commitish

        response = await self.http.post(f"/repos/{owner}/{repo}/releases", payload)
        return camelize(response.data)


# ==============================================================================
# Docker Integration
# ==============================================================================


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _pascal(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Rename ``snake_case`` keys to the daemon's ``PascalCase``."""
    if values is None:
        return None
    renamed = {}
    for key, value in values.items():
        camel = to_camel_case(key)
        renamed[camel[:1].upper() + camel[1:]] = value
    return _compact(renamed)


def _filters(filters: Optional[Dict[str, List[str]]]) -> Optional[Dict[str, str]]:
    return {"filters": json.dumps(filters)} if filters else None


@dataclass
class DockerClient(BaseClient):
    """Docker Engine API client.

    Talks to the daemon over TCP. The default host is a loopback address,
    which the URL policy only allows outside production.

    Environment variables:
        DOCKER_HOST: Daemon address (default: http://localhost:2375)
        DOCKER_ENABLED: Set to 'true' to enable
    """

    DISPLAY_NAME: ClassVar[str] = "Docker"
    BASE_URL: ClassVar[str] = "http://localhost:2375"
    ENV_PREFIX: ClassVar[str] = "DOCKER"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v1.43", "timeout": 60.0}
    REQUIRED_CREDENTIALS = ()

    name: str = "docker"

    @classmethod
    def base_url(cls, environ: Optional[Mapping[str, str]] = None) -> str:
        host = get_env_var("DOCKER_HOST", environ=environ) or cls.BASE_URL
        if host.startswith("tcp://"):
            host = "http://" + host[len("tcp://"):]
        return host

    @property
    def configured(self) -> bool:
        return True

    def health_check(self) -> Dict[str, Any]:
        result = super().health_check()
        result["host"] = self.config.base_url
        return result

    # =====================
    # System
    # =====================

    async def info(self) -> Dict[str, Any]:
        response = await self.http.get("/info")
        return response.data

    async def version(self) -> Dict[str, Any]:
        response = await self.http.get("/version")
        return response.data

    async def ping(self) -> bool:
        """Return True when the daemon answers ``/_ping``."""
        try:
            await self.http.get("/_ping")
        except PlatformError as exc:
            logger.debug("Docker ping failed: %s", exc)
            return False
        return True

    # =====================
    # Containers
    # =====================

    async def list_containers(
        self,
        all: bool = False,
        limit: Optional[int] = None,
        filters: Optional[Dict[str, List[str]]] = None,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"all": all or None, "limit": limit, **(_filters(filters) or {})}
        response = await self.http.get("/containers/json", query)
        return response.data

    async def get_container(self, container_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/containers/{container_id}/json")
        return response.data

    async def create_container(
        self,
        image: str,
        name: Optional[str] = None,
        cmd: Optional[List[str]] = None,
        entrypoint: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        exposed_ports: Optional[Dict[str, Any]] = None,
        host_config: Optional[Dict[str, Any]] = None,
        labels: Optional[Dict[str, str]] = None,
        working_dir: Optional[str] = None,
        user: Optional[str] = None,
        networking_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a container.

        *host_config* takes ``snake_case`` keys (``port_bindings``,
        ``restart_policy``, ``auto_remove``, ...) and is sent as the daemon's
        ``HostConfig``.
        """
        body = _compact({
            "Image": image,
            "Cmd": cmd,
            "Entrypoint": entrypoint,
            "Env": [f"{key}={value}" for key, value in env.items()] if env else None,
            "ExposedPorts": exposed_ports,
            "HostConfig": _pascal(host_config),
            "Labels": labels,
            "WorkingDir": working_dir,
            "User": user,
            "NetworkingConfig": networking_config,
        })
        response = await self.http.post("/containers/create", body, query={"name": name})
        data = response.data or {}
        return {"id": data.get("Id"), "warnings": data.get("Warnings") or []}

    async def start_container(self, container_id: str) -> None:
        await self.http.post(f"/containers/{container_id}/start")

    async def stop_container(self, container_id: str, timeout: Optional[int] = None) -> None:
        await self.http.post(f"/containers/{container_id}/stop", query={"t": timeout})

    async def restart_container(self, container_id: str, timeout: Optional[int] = None) -> None:
        await self.http.post(f"/containers/{container_id}/restart", query={"t": timeout})

    async def kill_container(self, container_id: str, signal: Optional[str] = None) -> None:
        await self.http.post(f"/containers/{container_id}/kill", query={"signal": signal})

    async def remove_container(self, container_id: str, force: bool = False, v: bool = False) -> None:
        await self.http.delete(f"/containers/{container_id}", query={"force": force or None, "v": v or None})

    async def pause_container(self, container_id: str) -> None:
        await self.http.post(f"/containers/{container_id}/pause")

    async def unpause_container(self, container_id: str) -> None:
        await self.http.post(f"/containers/{container_id}/unpause")

    async def get_container_logs(
        self,
        container_id: str,
        stdout: bool = True,
        stderr: bool = True,
        tail: Optional[int] = None,
        since: Optional[int] = None,
        timestamps: bool = False,
    ) -> str:
        query = {
            "stdout": stdout,
            "stderr": stderr,
            "tail": tail,
            "since": since,
            "timestamps": timestamps or None,
        }
        response = await self.http.get(f"/containers/{container_id}/logs", query)
        return response.data or ""

    async def exec_in_container(
        self,
        container_id: str,
        cmd: List[str],
        attach_stdout: bool = True,
        attach_stderr: bool = True,
        tty: bool = False,
        user: Optional[str] = None,
        working_dir: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an exec instance; start it separately."""
        body = _compact({
            "AttachStdout": attach_stdout,
            "AttachStderr": attach_stderr,
            "Tty": tty,
            "Cmd": cmd,
            "User": user,
            "WorkingDir": working_dir,
        })
        response = await self.http.post(f"/containers/{container_id}/exec", body)
        return {"id": (response.data or {}).get("Id")}

    # =====================
    # Images
    # =====================

    async def list_images(
        self,
        all: bool = False,
        filters: Optional[Dict[str, List[str]]] = None,
    ) -> List[Dict[str, Any]]:
        response = await self.http.get("/images/json", {"all": all or None, **(_filters(filters) or {})})
        return response.data

    async def get_image(self, image_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/images/{image_id}/json")
        return response.data

    async def pull_image(self, image: str, tag: Optional[str] = None) -> None:
        await self.http.post("/images/create", query={"fromImage": image, "tag": tag})

    async def tag_image(self, image_id: str, repo: str, tag: Optional[str] = None) -> None:
        await self.http.post(f"/images/{image_id}/tag", query={"repo": repo, "tag": tag})

    async def remove_image(self, image_id: str, force: bool = False, noprune: bool = False) -> None:
        await self.http.delete(f"/images/{image_id}", query={"force": force or None, "noprune": noprune or None})

    # =====================
    # Networks
    # =====================

    async def list_networks(self, filters: Optional[Dict[str, List[str]]] = None) -> List[Dict[str, Any]]:
        response = await self.http.get("/networks", _filters(filters))
        return response.data

    async def get_network(self, network_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/networks/{network_id}")
        return response.data

    async def create_network(
        self,
        name: str,
        driver: str = "bridge",
        internal: Optional[bool] = None,
        attachable: Optional[bool] = None,
        ipam: Optional[Dict[str, Any]] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        body = _compact({
            "Name": name,
            "Driver": driver,
            "Internal": internal,
            "Attachable": attachable,
            "IPAM": ipam,
            "Labels": labels,
        })
        response = await self.http.post("/networks/create", body)
        data = response.data or {}
        return {"id": data.get("Id"), "warning": data.get("Warning", "")}

    async def remove_network(self, network_id: str) -> None:
        await self.http.delete(f"/networks/{network_id}")

    async def connect_container_to_network(
        self,
        network_id: str,
        container_id: str,
        aliases: Optional[List[str]] = None,
    ) -> None:
        body = _compact({
            "Container": container_id,
            "EndpointConfig": {"Aliases": aliases} if aliases else None,
        })
        await self.http.post(f"/networks/{network_id}/connect", body)

    async def disconnect_container_from_network(
        self,
        network_id: str,
        container_id: str,
        force: Optional[bool] = None,
    ) -> None:
        await self.http.post(
            f"/networks/{network_id}/disconnect",
            _compact({"Container": container_id, "Force": force}),
        )

    # =====================
    # Volumes
    # =====================

    async def list_volumes(self, filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        response = await self.http.get("/volumes", _filters(filters))
        data = response.data or {}
        return {"volumes": data.get("Volumes") or [], "warnings": data.get("Warnings") or []}

    async def get_volume(self, volume_name: str) -> Dict[str, Any]:
        response = await self.http.get(f"/volumes/{volume_name}")
        return response.data

    async def create_volume(
        self,
        name: Optional[str] = None,
        driver: str = "local",
        driver_opts: Optional[Dict[str, str]] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        body = _compact({"Name": name, "Driver": driver, "DriverOpts": driver_opts, "Labels": labels})
        response = await self.http.post("/volumes/create", body)
        return response.data

    async def remove_volume(self, volume_name: str, force: bool = False) -> None:
        await self.http.delete(f"/volumes/{volume_name}", query={"force": force or None})

    # =====================
    # Cleanup
    # =====================

    async def _prune(self, kind: str, filters: Optional[Dict[str, List[str]]]) -> Dict[str, Any]:
        response = await self.http.post(f"/{kind}/prune", query=_filters(filters))
        return response.data or {}

    async def prune_containers(self, filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        data = await self._prune("containers", filters)
        return {
            "containersDeleted": data.get("ContainersDeleted") or [],
            "spaceReclaimed": data.get("SpaceReclaimed") or 0,
        }

    async def prune_images(self, filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        data = await self._prune("images", filters)
        deleted = [
            {"deleted": item.get("Deleted"), "untagged": item.get("Untagged")}
            for item in data.get("ImagesDeleted") or []
        ]
        return {"imagesDeleted": deleted, "spaceReclaimed": data.get("SpaceReclaimed") or 0}

    async def prune_volumes(self, filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        data = await self._prune("volumes", filters)
        return {
            "volumesDeleted": data.get("VolumesDeleted") or [],
            "spaceReclaimed": data.get("SpaceReclaimed") or 0,
        }

    async def prune_networks(self, filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        data = await self._prune("networks", filters)
        return {"networksDeleted": data.get("NetworksDeleted") or []}


__all__ = ["DockerClient", "GitHubClient"]
