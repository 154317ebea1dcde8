"""AI/ML platform integrations.

Provides interfaces for:
- Hugging Face: Hub models, datasets and spaces, hosted inference, and
  a pre-download safety check of model repositories

The inference API lives on a separate host with its own, stricter rate limit
and a longer timeout, so :class:`HuggingFaceClient` carries two
:class:`SafeHttpClient` instances.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, List, Optional, Union

from ..config import PlatformConfig
from ..http_client import SafeHttpClient
from .base import BEARER, BaseClient

logger = logging.getLogger(__name__)

PICKLE_SUFFIXES = (".pkl", ".pickle", ".bin")


# ==============================================================================
# Hugging Face Integration
# ==============================================================================


@dataclass
class HuggingFaceClient(BaseClient):
    """Hugging Face Hub and Inference API client.

    Environment variables:
        HUGGINGFACE_API_KEY: Access token (hf_...)
        HUGGINGFACE_ENABLED: Set to 'true' to enable
    """

    DISPLAY_NAME: ClassVar[str] = "HuggingFace"
    BASE_URL: ClassVar[str] = "https://huggingface.co/api"
    ENV_PREFIX: ClassVar[str] = "HUGGINGFACE"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v1", "rate_limit_per_minute": 60, **BEARER}

    INFERENCE_URL: ClassVar[str] = "https://api-inference.huggingface.co/models"

    name: str = "huggingface"
    inference_config: Optional[PlatformConfig] = None
    inference_http: Optional[SafeHttpClient] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.inference_config is None:
            # Same credentials, separate host and budget.
            self.inference_config = replace(
                self.config,
                name="HuggingFaceInference",
                base_url=self.INFERENCE_URL,
                rate_limit_per_minute=30,
                timeout=120.0,
            )
        if self.inference_http is None:
            self.inference_http = SafeHttpClient(
                self.inference_config,
                production=self.production,
                transport=self.transport,
            )

    # =====================
    # Models
    # =====================

    async def list_models(
        self,
        search: Optional[str] = None,
        author: Optional[str] = None,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        limit: Optional[int] = None,
        full: bool = False,
    ) -> List[Dict[str, Any]]:
        """Search the Hub for models.

        Args:
            search: Free-text search
            author: Organization or user
            filter: Tag filter, e.g. a pipeline tag like ``text-generation``
            sort: ``downloads``, ``likes`` or ``lastModified``
            direction: ``asc`` or ``desc``
            limit: Maximum number of results
            full: Include file listings (``siblings``)
        """
        query = _listing_query(search, author, filter, sort, direction, limit)
        if full:
            query["full"] = True
        response = await self.http.get("/models", query)
        return response.data

    async def get_model(self, model_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/models/{model_id}")
        return response.data

    async def list_model_files(self, model_id: str, revision: str = "main") -> List[Dict[str, Any]]:
        response = await self.http.get(f"/models/{model_id}/tree/{revision}")
        return response.data

    # =====================
    # Datasets & Spaces
    # =====================

    async def list_datasets(
        self,
        search: Optional[str] = None,
        author: Optional[str] = None,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        response = await self.http.get("/datasets", _listing_query(search, author, filter, sort, direction, limit))
        return response.data

    async def get_dataset(self, dataset_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/datasets/{dataset_id}")
        return response.data

    async def list_spaces(
        self,
        search: Optional[str] = None,
        author: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        response = await self.http.get("/spaces", _listing_query(search, author, None, sort, direction, limit))
        return response.data

    # =====================
    # Inference
    # =====================

    async def inference(
        self,
        model_id: str,
        inputs: Any,
        parameters: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Run a model on the hosted Inference API."""
        body: Dict[str, Any] = {"inputs": inputs}
        if parameters:
            body["parameters"] = {key: value for key, value in parameters.items() if value is not None}
        if options:
            body["options"] = options
        response = await self.inference_http.post(f"/{model_id}", body)
        return response.data

    async def text_generation(
        self,
        model_id: str,
        prompt: str,
        max_new_tokens: int = 100,
        temperature: float = 0.7,
        top_k: Optional[int] = None,
        top_p: Optional[float] = None,
        repetition_penalty: Optional[float] = None,
        do_sample: bool = True,
    ) -> str:
        result = await self.inference(
            model_id,
            prompt,
            parameters={
                "max_new_tokens": max_new_tokens,
                "temperature": temperature,
                "top_k": top_k,
                "top_p": top_p,
                "repetition_penalty": repetition_penalty,
                "do_sample": do_sample,
            },
        )
        if isinstance(result, list):
            result = result[0] if result else {}
        return (result or {}).get("generated_text", "")

    # =====================
    # Safety
    # =====================

    async def check_model_safety(self, model_id: str) -> Dict[str, Any]:
        """Inspect a model repository before it is downloaded.

        Flags pickle weights without a safetensors alternative, an unknown
        license, a missing model card, and disabled or gated models. A model
        is safe when it is not disabled and no warning was raised; model card
        warnings are reported separately and do not affect the verdict.
        """
        model = await self.get_model(model_id)
        files = await self.list_model_files(model_id)
        paths = [f.get("path", "") for f in files or []]

        has_pickle = any(path.endswith(PICKLE_SUFFIXES) for path in paths)
        has_safetensors = any(path.endswith(".safetensors") for path in paths)
        card_exists = "README.md" in paths

        license_tag = next((t for t in model.get("tags", []) if t.startswith("license:")), None)
        license_id = license_tag[len("license:"):] if license_tag else "unknown"

        warnings: List[str] = []
        card_warnings: List[str] = []
        if has_pickle and not has_safetensors:
            warnings.append(
                "Model uses pickle format which may contain arbitrary code. Consider using safetensors format."
            )
        if license_id == "unknown":
            warnings.append("Model license is unknown. Verify licensing before use.")
        if not card_exists:
            card_warnings.append("Model card (README.md) is missing. Model documentation is incomplete.")
        if model.get("disabled"):
            warnings.append("Model has been disabled by Hugging Face.")
        if model.get("gated"):
            warnings.append("Model is gated. Access may require approval.")

        is_safe = not model.get("disabled") and not warnings
        if not is_safe:
            logger.info("Model %s failed safety check: %s", model_id, "; ".join(warnings))

        return {
            "modelId": model_id,
            "isSafe": is_safe,
            "warnings": warnings,
            "license": license_id,
            "hasPickle": has_pickle,
            "hasSafetensors": has_safetensors,
            "cardExists": card_exists,
            "cardWarnings": card_warnings,
        }

    async def aclose(self) -> None:
        await super().aclose()
        await self.inference_http.aclose()


def _listing_query(
    search: Optional[str],
    author: Optional[str],
    filter: Optional[str],
    sort: Optional[str],
    direction: Optional[str],
    limit: Optional[int],
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"search": search, "author": author, "filter": filter, "sort": sort, "limit": limit}
    if direction:
        query["direction"] = "1" if direction == "asc" else "-1"
    return query


__all__ = ["HuggingFaceClient"]
