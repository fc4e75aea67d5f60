import httpx

from ..models import ProviderIdentity, TaskType
from .base import ProviderResult, build_messages, post_json


async def chat_completion(
    base_url: str,
    api_key: str,
    model: str,
    task_type: TaskType,
    text: str,
    provider: ProviderIdentity,
    timeout: float = 120.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderResult:
    """One OpenAI-compatible chat completion (OpenAI, OpenRouter)."""
    payload = {"model": model, "messages": build_messages(task_type, text)}
    headers = {"Authorization": f"Bearer {api_key}"}
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        data = await post_json(client, f"{base_url}/chat/completions", payload, provider, headers=headers)

    choices = data.get("choices") or []
    content = ""
    if choices:
        content = (choices[0].get("message") or {}).get("content") or ""
    tokens = int((data.get("usage") or {}).get("total_tokens", 0))
    return ProviderResult(text=content, tokens_used=tokens, provider=provider)
