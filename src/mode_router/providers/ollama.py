import httpx

from ..models import ProviderIdentity, TaskType
from .base import ProviderResult, build_messages, post_json


async def ollama_chat(
    base_url: str,
    model: str,
    task_type: TaskType,
    text: str,
    timeout: float = 300.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderResult:
    payload = {"model": model, "messages": build_messages(task_type, text), "stream": False}
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        data = await post_json(client, f"{base_url}/api/chat", payload, ProviderIdentity.LOCAL)
    content = data.get("message", {}).get("content", "")
    tokens = int(data.get("prompt_eval_count", 0)) + int(data.get("eval_count", 0))
    return ProviderResult(text=content, tokens_used=tokens, provider=ProviderIdentity.LOCAL)
