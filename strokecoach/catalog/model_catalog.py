# strokecoach/catalog/model_catalog.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from strokecoach.config import settings
from strokecoach.credentials import CredentialStore
from strokecoach.errors import AuthError, NetworkError, ProviderResponseError, StrokeCoachError
from strokecoach.models import ModelCapability, ModelDescriptor, TokenCost

logger = logging.getLogger(__name__)

CAPABILITIES: List[ModelCapability] = ["text", "vision", "audio"]

# Curated allow-lists. Text/audio match by keyword on the model id, vision by exact id.
TEXT_KEYWORDS = ["gpt-3.5-turbo", "gpt-4", "claude", "gemini", "llama", "mistral"]
AUDIO_KEYWORDS = ["whisper"]
VISION_ALLOWED_IDS = ["openai/gpt-4-vision-preview", "anthropic/claude-3-opus"]


def _fallback(capability: ModelCapability, rows) -> List[ModelDescriptor]:
    return [
        ModelDescriptor(
            id=model_id,
            display_name=name,
            description=desc,
            capability=capability,
            cost_per_million_tokens=TokenCost(input=cin, output=cout),
        )
        for model_id, name, desc, cin, cout in rows
    ]


FALLBACK_MODELS: Dict[str, List[ModelDescriptor]] = {
    "text": _fallback("text", [
        ("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet",
         "Most intelligent model, excellent for detailed language analysis", 3, 15),
        ("openai/gpt-4-turbo", "GPT-4 Turbo", "Advanced reasoning with large context window", 10, 30),
        ("openai/gpt-3.5-turbo", "GPT-3.5 Turbo", "Fast and cost-effective for general tasks", 0.5, 1.5),
        ("google/gemini-pro", "Gemini Pro", "Google's advanced language model", 0.5, 1.5),
    ]),
    "vision": _fallback("vision", [
        ("openai/gpt-4-vision-preview", "GPT-4 Vision", "Analyze handwriting and provide visual feedback", 10, 30),
        ("anthropic/claude-3-opus", "Claude 3 Opus", "Advanced vision capabilities for detailed analysis", 15, 75),
    ]),
    "audio": _fallback("audio", [
        ("openai/whisper-1", "Whisper", "Speech recognition and transcription", 6, 0),
    ]),
}


class RefreshResult(BaseModel):
    ok: bool
    model_count: int = 0
    error_kind: Optional[str] = None
    error_reason: Optional[str] = None


def categorize(model_id: str) -> ModelCapability:
    mid = model_id.lower()
    if "vision" in mid or "claude-3" in mid:
        return "vision"
    if "whisper" in mid or "audio" in mid:
        return "audio"
    return "text"


def _per_million(raw: Any) -> Optional[float]:
    try:
        value = float(raw) * 1_000_000
    except (TypeError, ValueError):
        return None
    if value < 0:
        return None
    return value


def parse_model(raw: Dict[str, Any]) -> Optional[ModelDescriptor]:
    """Provider model entry -> ModelDescriptor. None if id or pricing is unusable."""
    model_id = raw.get("id")
    if not model_id or not isinstance(model_id, str):
        return None
    pricing = raw.get("pricing") or {}
    cin = _per_million(pricing.get("prompt"))
    cout = _per_million(pricing.get("completion"))
    if cin is None or cout is None:
        logger.debug("Skipping %s: unusable pricing %r", model_id, pricing)
        return None
    return ModelDescriptor(
        id=model_id,
        display_name=raw.get("name") or model_id,
        description=raw.get("description") or "Advanced AI model",
        capability=categorize(model_id),
        cost_per_million_tokens=TokenCost(input=cin, output=cout),
        context_length=raw.get("context_length"),
    )


def sort_by_cost(models: List[ModelDescriptor]) -> List[ModelDescriptor]:
    # sorted() is stable: equal costs keep provider order
    return sorted(models, key=lambda m: m.combined_cost)


def filter_and_rank(
    models: List[ModelDescriptor],
    capability: ModelCapability,
    limit: int = settings.CATALOG_LIMIT,
) -> List[ModelDescriptor]:
    if capability == "vision":
        seen = set()
        kept = []
        for m in models:
            if m.id in VISION_ALLOWED_IDS and m.id not in seen:
                seen.add(m.id)
                kept.append(m)
        return sort_by_cost(kept)

    keywords = TEXT_KEYWORDS if capability == "text" else AUDIO_KEYWORDS
    kept = [m for m in models if any(k in m.id.lower() for k in keywords)]
    return sort_by_cost(kept)[:limit]


def build_catalog(raw_models: List[Dict[str, Any]]) -> Dict[str, List[ModelDescriptor]]:
    buckets: Dict[str, List[ModelDescriptor]] = {c: [] for c in CAPABILITIES}
    for raw in raw_models:
        if not isinstance(raw, dict):
            continue
        model = parse_model(raw)
        if model is not None:
            buckets[model.capability].append(model)
    return {c: filter_and_rank(buckets[c], c) for c in CAPABILITIES}


class ModelCatalog:
    """Holds the provider's model list, curated and ranked per capability.

    A refresh replaces the whole catalog at once; a failed refresh keeps the
    previous one. Without a credential the static fallback set is served.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        api_url: str = settings.PROVIDER_API_URL,
    ):
        self._credentials = credentials
        self._http = http_client
        self._api_url = api_url.rstrip("/")
        self._models: Optional[Dict[str, List[ModelDescriptor]]] = None

    def list(self, capability: ModelCapability) -> List[ModelDescriptor]:
        if capability not in CAPABILITIES:
            raise ValueError(f"Unknown capability: {capability}")
        if not self._credentials.has_credential() or self._models is None:
            return list(FALLBACK_MODELS[capability])
        return list(self._models[capability])

    def models(self) -> Dict[str, List[ModelDescriptor]]:
        return {c: self.list(c) for c in CAPABILITIES}

    @property
    def is_live(self) -> bool:
        return self._models is not None and self._credentials.has_credential()

    async def refresh(self, credential: Optional[str] = None) -> RefreshResult:
        key = credential or self._credentials.get()
        if not key:
            return RefreshResult(ok=False, error_kind=AuthError.kind, error_reason="No API key configured")

        try:
            raw_models = await self._fetch(key)
            catalog = build_catalog(raw_models)
            count = sum(len(v) for v in catalog.values())
            if count == 0:
                raise ProviderResponseError("Provider returned no usable models")
            # text feedback and Q&A both need a text model; keep the old set rather than an empty list
            if not catalog["text"]:
                raise ProviderResponseError("Provider returned no usable text models")
        except StrokeCoachError as e:
            logger.warning("Model catalog refresh failed (%s): %s", e.kind, e.reason)
            return RefreshResult(ok=False, error_kind=e.kind, error_reason=e.reason)

        self._models = catalog
        logger.info("Model catalog refreshed: %d models", count)
        return RefreshResult(ok=True, model_count=count)

    async def test_connection(self) -> Dict[str, Any]:
        result = await self.refresh()
        if result.ok:
            return {"success": True}
        return {"success": False, "error": result.error_reason or "Connection test failed"}

    async def _fetch(self, key: str) -> List[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
        url = f"{self._api_url}/models"
        try:
            if self._http is not None:
                resp = await self._http.get(url, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"Could not reach provider: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthError(f"HTTP {resp.status_code}: provider rejected the API key")
        if resp.status_code >= 400:
            raise NetworkError(f"HTTP {resp.status_code}: {resp.reason_phrase}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderResponseError("Invalid response format") from e
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise ProviderResponseError("Invalid response format")
        return data["data"]
