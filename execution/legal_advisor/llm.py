"""
Chat-completion client for the AI gateway.

The gateway speaks the OpenAI wire format, so the official client is used
with a custom base_url. Upstream failures are translated into
UpstreamServiceError with the status the API should return.
"""

import logging
from typing import Optional

from openai import OpenAI, APIStatusError, APIError

from .config import AdvisorConfig
from .errors import UpstreamServiceError

logger = logging.getLogger(__name__)


def get_chat_client(config: AdvisorConfig) -> OpenAI:
    """Build an OpenAI client pointed at the AI gateway (key required)."""
    config.require("ai_gateway_api_key")
    return OpenAI(
        base_url=config.ai_gateway_base_url,
        api_key=config.ai_gateway_api_key,
        timeout=float(config.request_timeout),
        max_retries=0,
    )


def complete_chat(
    client: OpenAI,
    model: str,
    messages: list[dict],
    max_tokens: int,
    label: str = "chat",
) -> Optional[str]:
    """
    Run one chat completion.

    Args:
        client: OpenAI-compatible client
        model: Gateway model name
        messages: Chat messages
        max_tokens: Completion budget
        label: Name used in log lines

    Returns:
        The first choice's content (None or empty when the model returned nothing)

    Raises:
        UpstreamServiceError: 429 and 402 keep their status, anything else is 500
    """
    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
        )
    except APIStatusError as e:
        logger.error(f"{label}: gateway returned {e.status_code}: {e.message}")
        raise UpstreamServiceError(f"AI response failed ({e.status_code})", upstream_status=e.status_code)
    except APIError as e:
        logger.error(f"{label}: gateway request failed: {type(e).__name__}: {e}")
        raise UpstreamServiceError("AI response failed")

    if not response.choices:
        return None
    return response.choices[0].message.content
