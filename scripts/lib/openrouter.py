"""Minimal OpenRouter chat completions client.

One request per call. Retrying is left to the workflow that runs the
reviewer.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
REQUEST_TIMEOUT = 120


class OpenRouterError(RuntimeError):
    """The completion request failed or returned an unusable body."""


def build_request_body(
    *,
    model: str,
    system_prompt: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def extract_content(payload: object) -> str:
    """Return choices[0].message.content from a completion response."""
    if not isinstance(payload, dict):
        raise OpenRouterError("Unexpected API response format")
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise OpenRouterError("Unexpected API response format")
    message = choices[0].get("message")
    if not isinstance(message, dict) or not isinstance(message.get("content"), str):
        raise OpenRouterError("Unexpected API response format")
    return message["content"]


def chat_completion(
    *,
    api_key: str,
    model: str,
    system_prompt: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
    repo: str = "",
    url: str = OPENROUTER_API_URL,
) -> str:
    body = build_request_body(
        model=model,
        system_prompt=system_prompt,
        prompt=prompt,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
        "X-Title": "AI Code Reviewer",
    }
    if repo:
        headers["HTTP-Referer"] = f"https://github.com/{repo}"

    req = urllib.request.Request(
        url,
        data=json.dumps(body).encode("utf-8"),
        headers=headers,
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise OpenRouterError(f"API request failed with status {exc.code}: {detail}") from exc
    except urllib.error.URLError as exc:
        raise OpenRouterError(f"Request failed for {url}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise OpenRouterError(f"Request to {url} timed out after {REQUEST_TIMEOUT}s") from exc
    except OSError as exc:
        # Connection dropped while reading the body.
        raise OpenRouterError(f"Request failed for {url}: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OpenRouterError(f"Failed to parse API response: {exc}") from exc
    return extract_content(payload)
