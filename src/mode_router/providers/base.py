from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..errors import AuthError, NetworkError, ProviderError, RateLimited, TransientServerError
from ..models import ProviderIdentity, TaskType

DEFAULT_RETRY_AFTER = 1.0

TASK_INSTRUCTIONS: dict[TaskType, str] = {
    TaskType.SUMMARY: "Summarize the following note concisely.",
    TaskType.KEYWORDS: "Extract the most important keywords from the following note as a comma-separated list.",
    TaskType.CATEGORIZATION: "Assign the following note to a single short category.",
    TaskType.ENHANCEMENT: "Improve the clarity and structure of the following note without changing its meaning.",
    TaskType.QUESTIONS: "Write questions that the following note raises or answers.",
    TaskType.ANALYSIS: "Analyze the following note: main points, open issues and next steps.",
}


@dataclass(frozen=True)
class ProviderResult:
    text: str
    tokens_used: int
    provider: ProviderIdentity


def build_messages(task_type: TaskType, text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": TASK_INSTRUCTIONS[task_type]},
        {"role": "user", "content": text},
    ]


def _retry_after(response: httpx.Response) -> float:
    header = response.headers.get("retry-after")
    if header is None:
        return DEFAULT_RETRY_AFTER
    try:
        return max(float(header), 0.0)
    except ValueError:
        return DEFAULT_RETRY_AFTER


def raise_for_provider_status(response: httpx.Response, provider: ProviderIdentity) -> None:
    """Translate an HTTP failure into the routing error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    detail = f"HTTP {status} from {response.request.url}"
    if status == 429:
        raise RateLimited(detail, retry_after=_retry_after(response), provider=provider)
    if status in (500, 502, 503, 504):
        raise TransientServerError(detail, provider)
    if status in (401, 403):
        raise AuthError(f"{detail}: check the API key", provider)
    raise ProviderError(detail, provider)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict,
    provider: ProviderIdentity,
    headers: dict[str, str] | None = None,
) -> dict:
    try:
        response = await client.post(url, json=payload, headers=headers)
    except httpx.TransportError as exc:
        raise NetworkError(f"{exc.__class__.__name__}: {exc}", provider) from exc
    raise_for_provider_status(response, provider)
    return response.json()
