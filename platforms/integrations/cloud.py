"""Cloud platform integrations.

Provides interfaces for:
- Railway: GraphQL projects, services, deployments and variables
- Cloudflare: Zones, DNS, Workers, KV, Pages and Tunnels
- Vercel: Projects, deployments, env vars and domains
- DigitalOcean: Droplets, sizes, regions and SSH keys
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from ..transform import camelize, edges, unwrap_cloudflare, unwrap_graphql
from .base import BEARER, BaseClient


# ==============================================================================
# Railway Integration
# ==============================================================================


@dataclass
class RailwayClient(BaseClient):
    """Railway deployment integration (GraphQL).

    Environment variables:
        RAILWAY_API_KEY: API token for Railway
        RAILWAY_ENABLED: Set to 'true' to enable
    """

    DISPLAY_NAME: ClassVar[str] = "Railway"
    BASE_URL: ClassVar[str] = "https://backboard.railway.app/graphql/v2"
    ENV_PREFIX: ClassVar[str] = "RAILWAY"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v2", "rate_limit_per_minute": 100, **BEARER}

    name: str = "railway"

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a GraphQL query and return its ``data``."""
        response = await self.http.post("", {"query": query, "variables": variables or {}})
        return unwrap_graphql(response.data, self.DISPLAY_NAME)

    async def list_projects(self) -> List[Dict[str, Any]]:
        query = """
        query {
            me {
                projects {
                    edges { node { id name description createdAt updatedAt } }
                }
            }
        }
        """
        data = await self.graphql(query)
        return edges((data.get("me") or {}).get("projects"))

    async def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        query = """
        query GetProject($id: String!) {
            project(id: $id) {
                id
                name
                description
                environments { edges { node { id name } } }
                services { edges { node { id name } } }
            }
        }
        """
        data = await self.graphql(query, {"id": project_id})
        project = data.get("project")
        if not project:
            return None
        return {
            **project,
            "environments": edges(project.get("environments")),
            "services": edges(project.get("services")),
        }

    async def list_services(self, project_id: str) -> List[Dict[str, Any]]:
        project = await self.get_project(project_id)
        return project["services"] if project else []

    async def deploy(self, service_id: str, environment_id: str) -> Dict[str, Any]:
        """Redeploy a service in an environment."""
        query = """
        mutation Deploy($serviceId: String!, $environmentId: String!) {
            serviceInstanceDeploy(serviceId: $serviceId, environmentId: $environmentId)
        }
        """
        data = await self.graphql(query, {"serviceId": service_id, "environmentId": environment_id})
        return {"ok": bool(data.get("serviceInstanceDeploy")), "serviceId": service_id}

    async def get_deployment_status(self, deployment_id: str) -> Dict[str, Any]:
        query = """
        query GetDeployment($id: String!) {
            deployment(id: $id) { id status createdAt staticUrl }
        }
        """
        data = await self.graphql(query, {"id": deployment_id})
        return data.get("deployment") or {}

    async def set_variable(
        self,
        project_id: str,
        environment_id: str,
        name: str,
        value: str,
        service_id: Optional[str] = None,
    ) -> bool:
        query = """
        mutation UpsertVariable($input: VariableUpsertInput!) {
            variableUpsert(input: $input)
        }
        """
        payload: Dict[str, Any] = {
            "projectId": project_id,
            "environmentId": environment_id,
            "name": name,
            "value": value,
        }
        if service_id:
            payload["serviceId"] = service_id
        data = await self.graphql(query, {"input": payload})
        return bool(data.get("variableUpsert"))

    async def get_logs(self, deployment_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        query = """
        query GetLogs($deploymentId: String!, $limit: Int) {
            deploymentLogs(deploymentId: $deploymentId, limit: $limit) { timestamp message severity }
        }
        """
        data = await self.graphql(query, {"deploymentId": deployment_id, "limit": limit})
        return data.get("deploymentLogs") or []


# ==============================================================================
# Cloudflare Integration
# ==============================================================================


@dataclass
class CloudflareClient(BaseClient):
    """Cloudflare integration for DNS, Workers, KV, Pages and Tunnels.

    Environment variables:
        CLOUDFLARE_API_KEY: API token
        CLOUDFLARE_ACCOUNT_ID: Account ID
    """

    DISPLAY_NAME: ClassVar[str] = "Cloudflare"
    BASE_URL: ClassVar[str] = "https://api.cloudflare.com/client/v4"
    ENV_PREFIX: ClassVar[str] = "CLOUDFLARE"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v4", "rate_limit_per_minute": 1200, **BEARER}

    name: str = "cloudflare"
    account_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self.account_id = self.account_id or os.getenv("CLOUDFLARE_ACCOUNT_ID", "")

    async def _result(self, method: str, path: str, *args: Any) -> Any:
        response = await getattr(self.http, method)(path, *args)
        return unwrap_cloudflare(response.data)

    # Zones & DNS

    async def list_zones(self) -> List[Dict[str, Any]]:
        return await self._result("get", "/zones")

    async def get_zone(self, zone_id: str) -> Dict[str, Any]:
        return await self._result("get", f"/zones/{zone_id}")

    async def list_dns_records(self, zone_id: str) -> List[Dict[str, Any]]:
        return await self._result("get", f"/zones/{zone_id}/dns_records")

    async def create_dns_record(
        self,
        zone_id: str,
        type: str,
        name: str,
        content: str,
        ttl: int = 1,
        proxied: bool = False,
    ) -> Dict[str, Any]:
        return await self._result(
            "post",
            f"/zones/{zone_id}/dns_records",
            {"type": type, "name": name, "content": content, "ttl": ttl, "proxied": proxied},
        )

    async def update_dns_record(self, zone_id: str, record_id: str, **changes: Any) -> Dict[str, Any]:
        return await self._result("patch", f"/zones/{zone_id}/dns_records/{record_id}", changes)

    async def delete_dns_record(self, zone_id: str, record_id: str) -> None:
        await self.http.delete(f"/zones/{zone_id}/dns_records/{record_id}")

    async def purge_cache(self, zone_id: str, urls: Optional[List[str]] = None) -> Dict[str, Any]:
        """Purge Cloudflare cache."""
        payload: Dict[str, Any] = {"files": urls} if urls else {"purge_everything": True}
        return await self._result("post", f"/zones/{zone_id}/purge_cache", payload)

    # Workers & KV

    async def list_workers(self) -> List[Dict[str, Any]]:
        return await self._result("get", f"/accounts/{self.account_id}/workers/scripts")

    async def delete_worker(self, name: str) -> None:
        await self.http.delete(f"/accounts/{self.account_id}/workers/scripts/{name}")

    async def list_kv_namespaces(self) -> List[Dict[str, Any]]:
        return await self._result("get", f"/accounts/{self.account_id}/storage/kv/namespaces")

    async def create_kv_namespace(self, title: str) -> Dict[str, Any]:
        return await self._result(
            "post",
            f"/accounts/{self.account_id}/storage/kv/namespaces",
            {"title": title},
        )

    # Pages & Tunnels

    async def list_pages_projects(self) -> List[Dict[str, Any]]:
        """List all Pages projects."""
        return await self._result("get", f"/accounts/{self.account_id}/pages/projects")

    async def get_pages_project(self, project_name: str) -> Dict[str, Any]:
        return await self._result("get", f"/accounts/{self.account_id}/pages/projects/{project_name}")

    async def list_tunnels(self) -> List[Dict[str, Any]]:
        tunnels = await self._result("get", f"/accounts/{self.account_id}/cfd_tunnel")
        return [
            {
                "id": t.get("id"),
                "name": t.get("name"),
                "status": t.get("status"),
                "createdAt": t.get("created_at"),
            }
            for t in tunnels or []
        ]

    def health_check(self) -> Dict[str, Any]:
        result = super().health_check()
        result["account_id_set"] = bool(self.account_id)
        return result


# ==============================================================================
# Vercel Integration
# ==============================================================================


@dataclass
class VercelClient(BaseClient):
    """Vercel deployment integration.

    Environment variables:
        VERCEL_ACCESS_TOKEN: API token
        VERCEL_TEAM_ID: Team scope for every request (optional)
    """

    DISPLAY_NAME: ClassVar[str] = "Vercel"
    BASE_URL: ClassVar[str] = "https://api.vercel.com"
    ENV_PREFIX: ClassVar[str] = "VERCEL"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v9", "rate_limit_per_minute": 60}
    REQUIRED_CREDENTIALS = ("access_token",)

    name: str = "vercel"
    team_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self.team_id = self.team_id or os.getenv("VERCEL_TEAM_ID")

    def _scoped(self, query: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {**(query or {}), "teamId": self.team_id}

    async def list_projects(self, limit: int = 20, since: Optional[int] = None) -> List[Dict[str, Any]]:
        response = await self.http.get("/v9/projects", self._scoped({"limit": limit, "since": since}))
        return response.data.get("projects", [])

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        """Get project details."""
        response = await self.http.get(f"/v9/projects/{project_id}", self._scoped())
        return response.data

    async def create_project(
        self,
        name: str,
        framework: Optional[str] = None,
        git_repository: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name}
        if framework:
            body["framework"] = framework
        if git_repository:
            body["gitRepository"] = git_repository
        response = await self.http.post("/v10/projects", body, query=self._scoped())
        return response.data

    async def delete_project(self, project_id: str) -> None:
        await self.http.delete(f"/v9/projects/{project_id}", query=self._scoped())

    async def list_deployments(
        self,
        project_id: Optional[str] = None,
        limit: int = 10,
        state: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List recent deployments."""
        response = await self.http.get(
            "/v6/deployments",
            self._scoped({"projectId": project_id, "limit": limit, "state": state}),
        )
        return response.data.get("deployments", [])

    async def get_deployment(self, deployment_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/v13/deployments/{deployment_id}", self._scoped())
        return response.data

    async def cancel_deployment(self, deployment_id: str) -> None:
        await self.http.patch(f"/v12/deployments/{deployment_id}/cancel", query=self._scoped())

    async def list_env_vars(self, project_id: str) -> List[Dict[str, Any]]:
        response = await self.http.get(f"/v9/projects/{project_id}/env", self._scoped())
        return response.data.get("envs", [])

    async def create_env_var(
        self,
        project_id: str,
        key: str,
        value: str,
        target: Optional[List[str]] = None,
        type: str = "encrypted",
    ) -> Dict[str, Any]:
        body = {
            "key": key,
            "value": value,
            "target": target or ["production", "preview", "development"],
            "type": type,
        }
        response = await self.http.post(f"/v10/projects/{project_id}/env", body, query=self._scoped())
        return response.data

    async def delete_env_var(self, project_id: str, env_id: str) -> None:
        await self.http.delete(f"/v9/projects/{project_id}/env/{env_id}", query=self._scoped())

    async def list_domains(self, project_id: str) -> List[Dict[str, Any]]:
        response = await self.http.get(f"/v9/projects/{project_id}/domains", self._scoped())
        return response.data.get("domains", [])

    async def add_domain(self, project_id: str, domain: str, git_branch: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": domain}
        if git_branch:
            body["gitBranch"] = git_branch
        response = await self.http.post(f"/v10/projects/{project_id}/domains", body, query=self._scoped())
        return response.data

    async def remove_domain(self, project_id: str, domain: str) -> None:
        await self.http.delete(f"/v9/projects/{project_id}/domains/{domain}", query=self._scoped())

    async def get_current_user(self) -> Dict[str, Any]:
        response = await self.http.get("/v2/user")
        return response.data.get("user", {})


# ==============================================================================
# DigitalOcean Integration
# ==============================================================================


@dataclass
class DigitalOceanClient(BaseClient):
    """DigitalOcean Droplet integration.

    Environment variables:
        DIGITALOCEAN_API_KEY: API token
    """

    DISPLAY_NAME: ClassVar[str] = "DigitalOcean"
    BASE_URL: ClassVar[str] = "https://api.digitalocean.com/v2"
    ENV_PREFIX: ClassVar[str] = "DIGITALOCEAN"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v2", "rate_limit_per_minute": 250, **BEARER}

    name: str = "digitalocean"

    async def list_droplets(self, tag_name: Optional[str] = None, per_page: int = 100) -> List[Dict[str, Any]]:
        """List all droplets."""
        response = await self.http.get("/droplets", {"tag_name": tag_name, "per_page": per_page})
        return camelize(response.data.get("droplets", []))

    async def get_droplet(self, droplet_id: int) -> Dict[str, Any]:
        response = await self.http.get(f"/droplets/{droplet_id}")
        return camelize(response.data.get("droplet", {}))

    async def create_droplet(
        self,
        name: str,
        region: str,
        size: str,
        image: Any,
        ssh_keys: Optional[List[Any]] = None,
        tags: Optional[List[str]] = None,
        user_data: Optional[str] = None,
        monitoring: bool = True,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "name": name,
            "region": region,
            "size": size,
            "image": image,
            "monitoring": monitoring,
        }
        if ssh_keys:
            body["ssh_keys"] = ssh_keys
        if tags:
            body["tags"] = tags
        if user_data:
            body["user_data"] = user_data
        response = await self.http.post("/droplets", body)
        return camelize(response.data.get("droplet", {}))

    async def delete_droplet(self, droplet_id: int) -> None:
        await self.http.delete(f"/droplets/{droplet_id}")

    async def _droplet_action(self, droplet_id: int, action: str, **extra: Any) -> Dict[str, Any]:
        response = await self.http.post(f"/droplets/{droplet_id}/actions", {"type": action, **extra})
        return camelize((response.data or {}).get("action", {}))

    async def power_on(self, droplet_id: int) -> Dict[str, Any]:
        return await self._droplet_action(droplet_id, "power_on")

    async def power_off(self, droplet_id: int) -> Dict[str, Any]:
        return await self._droplet_action(droplet_id, "power_off")

    async def reboot(self, droplet_id: int) -> Dict[str, Any]:
        return await self._droplet_action(droplet_id, "reboot")

    async def snapshot(self, droplet_id: int, name: str) -> Dict[str, Any]:
        return await self._droplet_action(droplet_id, "snapshot", name=name)

    async def list_sizes(self) -> List[Dict[str, Any]]:
        response = await self.http.get("/sizes")
        return camelize(response.data.get("sizes", []))

    async def list_regions(self) -> List[Dict[str, Any]]:
        response = await self.http.get("/regions")
        return camelize(response.data.get("regions", []))

    async def list_ssh_keys(self) -> List[Dict[str, Any]]:
        response = await self.http.get("/account/keys")
        return camelize(response.data.get("ssh_keys", []))

    async def create_ssh_key(self, name: str, public_key: str) -> Dict[str, Any]:
        response = await self.http.post("/account/keys", {"name": name, "public_key": public_key})
        return camelize(response.data.get("ssh_key", {}))

    async def delete_ssh_key(self, key_id: int) -> None:
        await self.http.delete(f"/account/keys/{key_id}")


__all__ = ["CloudflareClient", "DigitalOceanClient", "RailwayClient", "VercelClient"]
