# strokecoach/agents/provider.py
from typing import Any, Awaitable, Callable, Optional

import httpx
from mistralai import Mistral
from mistralai.models import HTTPValidationError, MistralError, NoResponseError, ResponseValidationError
from pydantic import ValidationError

from strokecoach.config import settings
from strokecoach.errors import AuthError, NetworkError, ProviderResponseError


def default_client_factory(api_key: str) -> Mistral:
    return Mistral(api_key=api_key, server_url=settings.PROVIDER_SERVER_URL)


def _status_of(e: Exception) -> Optional[int]:
    status = getattr(e, "status_code", None)
    if isinstance(status, int) and status > 0:
        return status
    raw = getattr(e, "raw_response", None)
    return getattr(raw, "status_code", None)


async def call_provider(fn: Callable[[], Awaitable[Any]]):
    """
    One round trip to the provider. No retry: the first failure is reported.
    SDK / transport errors are mapped to AuthError, NetworkError or
    ProviderResponseError; nothing from the SDK escapes unmapped.
    """
    try:
        return await fn()

    except ResponseValidationError as e:
        raise ProviderResponseError("Provider reply did not match the expected format") from e

    except HTTPValidationError as e:
        raise ProviderResponseError("Provider rejected the request format") from e

    except MistralError as e:
        status = _status_of(e)
        if status in (401, 403):
            raise AuthError(f"HTTP {status}: provider rejected the API key") from e
        raise NetworkError(f"HTTP {status or '?'}: provider request failed") from e

    except NoResponseError as e:
        raise NetworkError("No response received from provider") from e

    except httpx.HTTPError as e:
        raise NetworkError(f"Could not reach provider: {e}") from e

    except ValidationError as e:
        raise ProviderResponseError("Provider reply did not match the expected format") from e


def response_text(resp) -> str:
    try:
        content = resp.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as e:
        raise ProviderResponseError("No valid response from AI.") from e

    # content may come back as a list of chunks
    if isinstance(content, list):
        parts = []
        for chunk in content:
            text = chunk.get("text") if isinstance(chunk, dict) else getattr(chunk, "text", None)
            if text:
                parts.append(text)
        content = "".join(parts)

    content = (content or "").strip()
    if not content:
        raise ProviderResponseError("No valid response from AI.")
    return content
