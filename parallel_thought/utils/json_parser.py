"""Decode structured payloads from LLM text output.

Structured-output endpoints normally return bare JSON, but OpenAI-compatible
proxies sometimes wrap it in a markdown code block. Only those two shapes are
accepted; anything else is a parse failure, never a best-effort guess.
"""

import json
import re
from typing import Any, Dict

from parallel_thought.errors import EmptyResponse, ParseFailure

_CODE_BLOCK = re.compile(r'^```(?:json)?\s*\n(.*?)\n\s*```$', re.DOTALL)


def parse_json_payload(raw: str) -> Dict[str, Any]:
    """Parse a JSON object from LLM output.

    Supports:
    - Plain JSON: '{"key": "value"}'
    - A single markdown code block: '```json\\n{"key": "value"}\\n```'

    Args:
        raw: Raw LLM output string.

    Returns:
        Parsed JSON object.

    Raises:
        EmptyResponse: If the output is empty or whitespace.
        ParseFailure: If the output is not a JSON object.
    """
    if not raw or not raw.strip():
        raise EmptyResponse()

    text = raw.strip()

    code_block_match = _CODE_BLOCK.match(text)
    if code_block_match:
        text = code_block_match.group(1).strip()

    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailure(detail=f"{e}: {text[:200]}") from e

    if not isinstance(result, dict):
        raise ParseFailure(
            f"Expected a JSON object, got {type(result).__name__}.",
            detail=text[:200],
        )
    return result
