"""Inference backend access and defensive JSON parsing.

``InferenceClient`` is the only place that talks to the OpenAI API. Stages
receive it through their constructor, so tests pass in a fake object with
the same ``infer`` method.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from pagesift.config import DEFAULT_MODEL, LLM_TIMEOUT
from pagesift.logging_config import log_pipeline_event

__all__ = ["InferenceClient", "ParsedResponse", "parse_json_object"]

# Raw responses are cut to this length in log events
LOG_RESPONSE_CHARS = 2000


def _get_openai_client(api_key: Optional[str] = None, timeout: float = LLM_TIMEOUT):
    """Get OpenAI client (lazy initialization)."""
    from openai import OpenAI
    return OpenAI(api_key=api_key, timeout=timeout)


def _response_format(schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if schema is None:
        return {"type": "json_object"}
    return {
        "type": "json_schema",
        "name": schema["name"],
        "schema": schema["schema"],
        "strict": True,
    }


def _output_text(resp: Any) -> Tuple[str, str]:
    """Collect the text of the first message in a Responses API result.

    Only ``output_text`` parts count. Refusal parts carry no text; their
    explanation is returned separately so a refusal reads as an empty body.

    Returns:
        (text, refusal), each "" when absent
    """
    refusal = ""
    for item in getattr(resp, "output", None) or []:
        parts = getattr(item, "content", None)
        if not parts:
            continue
        texts = []
        for part in parts:
            part_type = getattr(part, "type", None)
            if part_type == "output_text":
                texts.append(getattr(part, "text", None) or "")
            elif part_type == "refusal":
                refusal = getattr(part, "refusal", None) or "refused"
        if texts:
            return "".join(texts), refusal
    return "", refusal


class InferenceClient:
    """Structured (JSON mode) calls against the OpenAI Responses API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout: float = LLM_TIMEOUT,
        client: Any = None,
    ):
        """Initialize the inference client.

        Args:
            api_key: OpenAI API key (default: OPENAI_API_KEY from the environment)
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds
            client: Pre-built OpenAI client (skips lazy construction)
        """
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _get_openai_client(self.api_key, self.timeout)
        return self._client

    def infer(
        self,
        system_prompt: str,
        user_payload: str,
        model: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Send one structured request and return the raw JSON text.

        Args:
            system_prompt: Instructions for the model
            user_payload: Page content or JSON payload
            model: Model identifier (default: ``default_model``)
            schema: Named JSON schema (``{"name": ..., "schema": ...}``) enforced
                strictly by the backend; plain JSON mode when omitted

        Returns:
            Response text, or "" if the response carried no text

        Raises:
            openai.OpenAIError: On API, network or timeout failures
        """
        model = model or self.default_model

        log_pipeline_event(
            "llm_call",
            {
                "message": f"LLM call ({model}, {len(user_payload)} chars)",
                "model": model,
                "payload_chars": len(user_payload),
            },
            level=logging.DEBUG,
        )

        try:
            resp = self.client.responses.create(
                model=model,
                instructions=system_prompt,
                input=user_payload,
                text={"format": _response_format(schema)},
            )
        except Exception as e:
            log_pipeline_event(
                "llm_error",
                {"message": f"LLM call failed: {e}", "model": model, "error": str(e)},
                level=logging.ERROR,
            )
            raise

        raw, refusal = _output_text(resp)
        if refusal:
            log_pipeline_event(
                "llm_refusal",
                {"message": f"Model refused ({model}): {refusal}", "model": model, "refusal": refusal},
                level=logging.WARNING,
            )

        log_pipeline_event(
            "llm_response",
            {
                "message": f"LLM response ({model}, {len(raw)} chars)",
                "model": model,
                "raw_response": raw[:LOG_RESPONSE_CHARS],
            },
            level=logging.DEBUG,
        )
        return raw


@dataclass(frozen=True)
class ParsedResponse:
    """Result of parsing a structured response: either ``data`` or an ``error``."""

    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_json_object(raw: Optional[str]) -> ParsedResponse:
    """Parse a model response that should hold a single JSON object.

    Never raises; empty bodies, invalid JSON and non-object JSON all come back
    as a failed ``ParsedResponse``.
    """
    if raw is None or not raw.strip():
        return ParsedResponse(error="empty response")

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        return ParsedResponse(error=f"invalid JSON: {e}")

    if not isinstance(parsed, dict):
        return ParsedResponse(error=f"expected a JSON object, got {type(parsed).__name__}")

    return ParsedResponse(data=parsed)
