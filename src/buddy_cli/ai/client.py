"""Commit, merge and project-description messages from a chat-completions API.

One parameterised client serves every backend in ``providers.PROVIDERS``.
Failures never escape as exceptions (operator cancellation aside): each
call returns None and records a classified ``ProviderError`` in
``last_error`` for the CLI to show. There is no automatic retry.
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

import httpx
import truststore

from buddy_cli.ai.config import ConfigStore
from buddy_cli.ai.providers import get_provider
from buddy_cli.core.constants import DEFAULT_PROJECT_CONTEXT, PROJECT_CONTEXT_FILE
from buddy_cli.core.errors import OperationCancelled
from buddy_cli.core.process import CancelToken
from buddy_cli.core.redaction import redact_secret, truncate

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0
ERROR_BODY_LIMIT = 200


class MessageKind(StrEnum):
    COMMIT = "commit"
    MERGE = "merge"
    DESCRIBE = "describe"


TEMPERATURES: dict[MessageKind, float] = {
    MessageKind.COMMIT: 0.3,
    MessageKind.MERGE: 0.3,
    MessageKind.DESCRIBE: 0.2,
}


@dataclass(frozen=True, slots=True)
class CommitMessageRequest:
    """Input for one generation call; built per call and never persisted."""

    kind: MessageKind
    payload_text: str
    project_context: str = DEFAULT_PROJECT_CONTEXT


class ProviderErrorKind(StrEnum):
    MISSING_API_KEY = "missing_api_key"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True, slots=True)
class ProviderError:
    """Operator-facing description of why no message was produced."""

    kind: ProviderErrorKind
    message: str
    detail: str | None = None


def read_project_context(repo_root: Path | None) -> str:
    """Project description saved by ``buddy describe``, if any."""
    if repo_root is None:
        return DEFAULT_PROJECT_CONTEXT
    context_file = repo_root / PROJECT_CONTEXT_FILE
    try:
        text = context_file.read_text(encoding="utf-8").strip()
    except OSError:
        return DEFAULT_PROJECT_CONTEXT
    return text or DEFAULT_PROJECT_CONTEXT


def system_instruction(request: CommitMessageRequest) -> str:
    if request.kind is MessageKind.DESCRIBE:
        return (
            "You are a lead software architect. Analyze the provided code snippets. "
            "Write a definitive, 2-sentence summary describing exactly what this project IS "
            "and its primary tech stack. Do NOT use hedge phrases like 'This appears to be' or "
            "'It seems'. Speak with authority. Start immediately with 'This is...' or "
            "'This project is...'."
        )
    subject = "git diff" if request.kind is MessageKind.COMMIT else "branch merge (commits and diff)"
    return (
        f"You are an expert developer assistant for: {request.project_context}. "
        f"Analyze the {subject} and write a concise, professional commit message (max 50 chars). "
        "Use imperative mood. Output ONLY the text."
    )


def user_message(request: CommitMessageRequest) -> str:
    if request.kind is MessageKind.DESCRIBE:
        return f"Project Code Snippets:\n{request.payload_text}"
    if request.kind is MessageKind.MERGE:
        return request.payload_text
    return f"Diff:\n{request.payload_text}"


def build_payload(model: str, request: CommitMessageRequest) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system_instruction(request)},
            {"role": "user", "content": user_message(request)},
        ],
        "temperature": TEMPERATURES[request.kind],
    }


def extract_content(body: str) -> str:
    """Pull ``choices[0].message.content`` out of a response body.

    Raises:
        ValueError: The body is not JSON or lacks the expected shape.
    """
    try:
        data = json.loads(body)
        content = data["choices"][0]["message"]["content"]
    except (json.JSONDecodeError, KeyError, IndexError, TypeError) as exc:
        raise ValueError(f"unexpected response shape: {exc}") from exc
    if not isinstance(content, str) or not content.strip():
        raise ValueError("response contained no message content")
    return content.strip()


@lru_cache(maxsize=1)
def _ssl_context() -> ssl.SSLContext:
    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)


class CommitMessageProvider:
    """Generate messages through the configured backend."""

    def __init__(
        self,
        config_store: ConfigStore | None = None,
        *,
        repo_root: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cancel_token: CancelToken | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.config_store = config_store or ConfigStore()
        self.repo_root = repo_root
        self.transport = transport
        self.cancel_token = cancel_token
        self.timeout = timeout
        self.last_error: ProviderError | None = None

    async def generate_commit_message(self, diff_text: str) -> str | None:
        return await self.generate(self._request(MessageKind.COMMIT, diff_text))

    async def generate_merge_message(self, merge_text: str) -> str | None:
        return await self.generate(self._request(MessageKind.MERGE, merge_text))

    async def generate_description(self, snapshot_text: str) -> str | None:
        return await self.generate(self._request(MessageKind.DESCRIBE, snapshot_text))

    def _request(self, kind: MessageKind, payload_text: str) -> CommitMessageRequest:
        return CommitMessageRequest(
            kind=kind,
            payload_text=payload_text,
            project_context=read_project_context(self.repo_root),
        )

    def _fail(self, kind: ProviderErrorKind, message: str, detail: str | None = None) -> None:
        self.last_error = ProviderError(kind=kind, message=message, detail=detail)
        logger.warning("AI request failed (%s): %s", kind.value, message)
        return None

    async def generate(self, request: CommitMessageRequest) -> str | None:
        """Send one request; return the message or None with ``last_error`` set."""
        self.last_error = None
        config = self.config_store.load()
        if not config.has_api_key:
            return self._fail(
                ProviderErrorKind.MISSING_API_KEY,
                "No AI configured. Run 'buddy config' to set up AI features.",
            )

        spec = get_provider(config.provider_id)
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
            **spec.extra_headers,
        }
        payload = build_payload(config.model or spec.default_model, request)
        logger.debug(
            "Requesting %s message from %s (model=%s, key=%s, payload=%d chars)",
            request.kind.value,
            spec.provider_id,
            payload["model"],
            redact_secret(config.api_key),
            len(request.payload_text),
        )

        try:
            response = await self._post(spec.endpoint, payload, headers)
        except httpx.TimeoutException as exc:
            return self._fail(
                ProviderErrorKind.TIMEOUT,
                f"{spec.provider_id} did not respond within {self.timeout:g}s. Please try again.",
                str(exc) or None,
            )
        except httpx.RequestError as exc:
            return self._fail(
                ProviderErrorKind.NETWORK,
                f"Unable to connect to {spec.provider_id}. Check your internet connection.",
                str(exc) or None,
            )

        if response.status_code == 401:
            return self._fail(
                ProviderErrorKind.UNAUTHORIZED,
                "Invalid API key. Run 'buddy config' to update your credentials.",
            )
        if response.status_code == 429:
            return self._fail(
                ProviderErrorKind.RATE_LIMITED,
                "Rate limit exceeded. Please try again in a few moments.",
            )
        if not response.is_success:
            body = response.text.strip()
            return self._fail(
                ProviderErrorKind.HTTP_STATUS,
                f"{spec.provider_id} API returned {response.status_code}",
                body[:ERROR_BODY_LIMIT] if body else None,
            )

        try:
            message = extract_content(response.text)
        except ValueError as exc:
            return self._fail(
                ProviderErrorKind.MALFORMED_RESPONSE,
                f"Received invalid response from {spec.provider_id}.",
                truncate(str(exc)),
            )
        logger.debug("Received %d-char %s message", len(message), request.kind.value)
        return message

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> httpx.Response:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

        client_kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self.transport is not None:
            client_kwargs["transport"] = self.transport
        else:
            client_kwargs["verify"] = _ssl_context()

        async with httpx.AsyncClient(**client_kwargs) as client:
            request_task = asyncio.ensure_future(client.post(url, json=payload, headers=headers))
            if self.cancel_token is None:
                return await request_task

            cancel_waiter = asyncio.ensure_future(self.cancel_token.wait())
            try:
                done, _ = await asyncio.wait(
                    {request_task, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
            except asyncio.CancelledError:
                request_task.cancel()
                raise
            finally:
                if not cancel_waiter.done():
                    cancel_waiter.cancel()

            if request_task in done:
                return request_task.result()

            request_task.cancel()
            await asyncio.wait({request_task})
            raise OperationCancelled("AI request cancelled by user")


__all__ = [
    "CommitMessageProvider",
    "CommitMessageRequest",
    "MessageKind",
    "ProviderError",
    "ProviderErrorKind",
    "REQUEST_TIMEOUT_SECONDS",
    "TEMPERATURES",
    "build_payload",
    "extract_content",
    "read_project_context",
]
