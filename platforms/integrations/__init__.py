"""Platform integrations for BlackRoad.

Every client is built on :class:`platforms.http_client.SafeHttpClient`:
- Cloud Platforms: Railway, Cloudflare, Vercel, DigitalOcean
- Developer Tools: GitHub, Docker
- Productivity: Asana, Notion
- Auth & Payments: Clerk, Stripe
- AI/ML: HuggingFace
"""
from __future__ import annotations

from .base import BaseClient
from .cloud import (
    CloudflareClient,
    DigitalOceanClient,
    RailwayClient,
    VercelClient,
)
from .developer_tools import DockerClient, GitHubClient
from .productivity import (
    AsanaClient,
    NotionClient,
)
from .auth_payments import (
    ClerkClient,
    StripeClient,
)
from .ai_ml import HuggingFaceClient

__all__ = [
    "BaseClient",
    # Cloud Platforms
    "CloudflareClient",
    "DigitalOceanClient",
    "RailwayClient",
    "VercelClient",
    # Developer Tools
    "DockerClient",
    "GitHubClient",
    # Productivity
    "AsanaClient",
    "NotionClient",
    # Auth & Payments
    "ClerkClient",
    "StripeClient",
    # AI/ML
    "HuggingFaceClient",
]
