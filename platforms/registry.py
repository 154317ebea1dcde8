"""Static registry of supported platforms and a client factory."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Type

from .errors import MissingCredentialsError, UnknownPlatformError
from .integrations.ai_ml import HuggingFaceClient
from .integrations.auth_payments import ClerkClient, StripeClient
from .integrations.base import BaseClient
from .integrations.cloud import CloudflareClient, DigitalOceanClient, RailwayClient, VercelClient
from .integrations.developer_tools import DockerClient, GitHubClient
from .integrations.productivity import AsanaClient, NotionClient

logger = logging.getLogger(__name__)

CATEGORIES = ("cloud-deployment", "developer-tools", "productivity", "auth-payments", "ai-ml")


@dataclass(frozen=True)
class PlatformEntry:
    name: str
    category: str
    description: str
    env_prefix: str
    required_env_vars: List[str] = field(default_factory=list)
    optional_env_vars: List[str] = field(default_factory=list)
    docs: Optional[str] = None


PLATFORM_REGISTRY: List[PlatformEntry] = [
    # Cloud Deployment
    PlatformEntry(
        name="Railway",
        category="cloud-deployment",
        description="Railway.app deployment platform",
        env_prefix="RAILWAY",
        required_env_vars=["RAILWAY_API_KEY"],
        optional_env_vars=["RAILWAY_ENABLED"],
        docs="https://docs.railway.app/reference/public-api",
    ),
    PlatformEntry(
        name="Cloudflare",
        category="cloud-deployment",
        description="Cloudflare Workers, DNS, KV, Pages and Tunnels",
        env_prefix="CLOUDFLARE",
        required_env_vars=["CLOUDFLARE_API_KEY", "CLOUDFLARE_ACCOUNT_ID"],
        optional_env_vars=["CLOUDFLARE_ENABLED"],
        docs="https://developers.cloudflare.com/api/",
    ),
    PlatformEntry(
        name="Vercel",
        category="cloud-deployment",
        description="Vercel deployment platform",
        env_prefix="VERCEL",
        required_env_vars=["VERCEL_ACCESS_TOKEN"],
        optional_env_vars=["VERCEL_TEAM_ID", "VERCEL_ENABLED"],
        docs="https://vercel.com/docs/rest-api",
    ),
    PlatformEntry(
        name="DigitalOcean",
        category="cloud-deployment",
        description="DigitalOcean Droplets, sizes, regions and SSH keys",
        env_prefix="DIGITALOCEAN",
        required_env_vars=["DIGITALOCEAN_API_KEY"],
        optional_env_vars=["DIGITALOCEAN_ENABLED"],
        docs="https://docs.digitalocean.com/reference/api/",
    ),
    # Developer Tools
    PlatformEntry(
        name="GitHub",
        category="developer-tools",
        description="GitHub repositories, issues, PRs, and Actions",
        env_prefix="GITHUB",
        required_env_vars=["GITHUB_ACCESS_TOKEN"],
        optional_env_vars=["GITHUB_ENABLED"],
        docs="https://docs.github.com/en/rest",
    ),
    PlatformEntry(
        name="Docker",
        category="developer-tools",
        description="Docker container management",
        env_prefix="DOCKER",
        required_env_vars=[],
        optional_env_vars=["DOCKER_HOST", "DOCKER_ENABLED"],
        docs="https://docs.docker.com/engine/api/",
    ),
    # Productivity
    PlatformEntry(
        name="Asana",
        category="productivity",
        description="Asana project and task management",
        env_prefix="ASANA",
        required_env_vars=["ASANA_ACCESS_TOKEN"],
        optional_env_vars=["ASANA_ENABLED"],
        docs="https://developers.asana.com/docs/",
    ),
    PlatformEntry(
        name="Notion",
        category="productivity",
        description="Notion workspace, pages, and databases",
        env_prefix="NOTION",
        required_env_vars=["NOTION_ACCESS_TOKEN"],
        optional_env_vars=["NOTION_ENABLED"],
        docs="https://developers.notion.com/",
    ),
    # Auth & Payments
    PlatformEntry(
        name="Clerk",
        category="auth-payments",
        description="Clerk authentication and user management",
        env_prefix="CLERK",
        required_env_vars=["CLERK_API_KEY"],
        optional_env_vars=["CLERK_WEBHOOK_SECRET", "CLERK_ENABLED"],
        docs="https://clerk.com/docs/reference/backend-api",
    ),
    PlatformEntry(
        name="Stripe",
        category="auth-payments",
        description="Stripe payments, subscriptions, and billing",
        env_prefix="STRIPE",
        required_env_vars=["STRIPE_API_KEY"],
        optional_env_vars=["STRIPE_WEBHOOK_SECRET", "STRIPE_ENABLED"],
        docs="https://stripe.com/docs/api",
    ),
    # AI & ML
    PlatformEntry(
        name="HuggingFace",
        category="ai-ml",
        description="Hugging Face models, datasets, and inference",
        env_prefix="HUGGINGFACE",
        required_env_vars=["HUGGINGFACE_API_KEY"],
        optional_env_vars=["HUGGINGFACE_ENABLED"],
        docs="https://huggingface.co/docs/api-inference",
    ),
]

_CLIENTS: Dict[str, Type[BaseClient]] = {
    "railway": RailwayClient,
    "cloudflare": CloudflareClient,
    "vercel": VercelClient,
    "digitalocean": DigitalOceanClient,
    "github": GitHubClient,
    "docker": DockerClient,
    "asana": AsanaClient,
    "notion": NotionClient,
    "clerk": ClerkClient,
    "stripe": StripeClient,
    "huggingface": HuggingFaceClient,
}

# Client fields filled from variables outside the <PREFIX>_* credential set.
_EXTRA_FIELDS: Dict[str, Dict[str, str]] = {
    "cloudflare": {"account_id": "CLOUDFLARE_ACCOUNT_ID"},
    "vercel": {"team_id": "VERCEL_TEAM_ID"},
}


def get_platforms_by_category(category: str) -> List[PlatformEntry]:
    return [p for p in PLATFORM_REGISTRY if p.category == category]


def get_platform_by_name(name: str) -> Optional[PlatformEntry]:
    """Look up a platform, ignoring case."""
    lowered = name.lower()
    for platform in PLATFORM_REGISTRY:
        if platform.name.lower() == lowered:
            return platform
    return None


def get_required_env_vars(name: str) -> List[str]:
    platform = get_platform_by_name(name)
    return list(platform.required_env_vars) if platform else []


def missing_env_vars(name: str, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    env = os.environ if environ is None else environ
    return [var for var in get_required_env_vars(name) if not env.get(var)]


def is_platform_configured(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when every required variable of *name* is set and non-empty."""
    if get_platform_by_name(name) is None:
        return False
    return not missing_env_vars(name, environ)


def get_configured_platforms(environ: Optional[Mapping[str, str]] = None) -> List[PlatformEntry]:
    return [p for p in PLATFORM_REGISTRY if is_platform_configured(p.name, environ)]


def get_unconfigured_platforms(environ: Optional[Mapping[str, str]] = None) -> List[PlatformEntry]:
    return [p for p in PLATFORM_REGISTRY if not is_platform_configured(p.name, environ)]


def generate_env_template() -> str:
    """Render a ``.env`` template listing every platform's variables.

    Required variables appear as ``NAME=`` lines, optional ones commented out.
    """
    lines = [
        "# BlackRoad Platform Integrations Environment Variables",
        "# Generated by blackroad-platforms",
        "",
    ]
    seen: List[str] = []
    for platform in PLATFORM_REGISTRY:
        if platform.category not in seen:
            seen.append(platform.category)

    for category in seen:
        lines.append("# =====================")
        lines.append(f"# {category.upper().replace('-', ' ')}")
        lines.append("# =====================")
        lines.append("")
        for platform in get_platforms_by_category(category):
            lines.append(f"# {platform.name}: {platform.description}")
            lines.extend(f"{var}=" for var in platform.required_env_vars)
            lines.extend(f"# {var}=" for var in platform.optional_env_vars)
            lines.append("")
    return "\n".join(lines) + "\n"


def create_platform_client(name: str, environ: Optional[Mapping[str, str]] = None) -> BaseClient:
    """Build a client for *name* from the environment.

    Raises:
        UnknownPlatformError: *name* is not in the registry.
        MissingCredentialsError: a required variable is unset.
    """
    platform = get_platform_by_name(name)
    if platform is None:
        raise UnknownPlatformError(name)

    missing = missing_env_vars(platform.name, environ)
    if missing:
        logger.warning("Platform %s is not configured; missing %s", platform.name, ", ".join(missing))
        raise MissingCredentialsError(platform.name, missing)

    key = platform.name.lower()
    client_cls = _CLIENTS[key]
    env = os.environ if environ is None else environ
    extra = {attr: env.get(var) for attr, var in _EXTRA_FIELDS.get(key, {}).items()}
    return client_cls(config=client_cls.build_config(environ=environ), **extra)


__all__ = [
    "CATEGORIES",
    "PLATFORM_REGISTRY",
    "PlatformEntry",
    "create_platform_client",
    "generate_env_template",
    "get_configured_platforms",
    "get_platform_by_name",
    "get_platforms_by_category",
    "get_required_env_vars",
    "get_unconfigured_platforms",
    "is_platform_configured",
    "missing_env_vars",
]
