from __future__ import annotations

import httpx

from ..errors import AuthError
from ..models import ProviderIdentity, TaskType
from ..settings import Settings
from .base import ProviderResult
from .ollama import ollama_chat
from .openai_compat import chat_completion


class ProviderGateway:
    """Dispatches ``invoke`` to the client behind each provider identity."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def invoke(self, provider: ProviderIdentity, task_type: TaskType, text: str) -> ProviderResult:
        s = self.settings
        if provider is ProviderIdentity.LOCAL:
            return await ollama_chat(
                s.ollama_base_url,
                s.ollama_model,
                task_type,
                text,
                timeout=s.provider_timeout_seconds,
                transport=self.transport,
            )

        if provider is ProviderIdentity.CLOUD_PRIMARY:
            base_url, model, api_key = s.openai_base_url, s.openai_model, s.openai_api_key
        else:
            base_url, model, api_key = s.openrouter_base_url, s.openrouter_model, s.openrouter_api_key
        if not api_key:
            raise AuthError("no API key configured", provider)
        return await chat_completion(
            base_url,
            api_key,
            model,
            task_type,
            text,
            provider,
            timeout=s.provider_timeout_seconds,
            transport=self.transport,
        )
