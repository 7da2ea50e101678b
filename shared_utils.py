"""
Shared utilities for memory temperature components.

This module contains common utility functions used across multiple components
to avoid code duplication.
"""

import json
import math
from typing import Any

# Rough approximation of characters per token for English text and JSON
CHARS_PER_TOKEN = 4


def canonical_json(content: Any) -> str:
    """
    Serialize content to a canonical textual form.

    Keys are sorted and separators carry no whitespace so that equal values
    always serialize to identical strings. Values that are not JSON-native
    (datetimes, sets, custom objects) fall back to ``str()``.

    Args:
        content: Any value (text, mapping, list, number, None, ...)

    Returns:
        Compact JSON string
    """
    return json.dumps(
        content,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


def estimate_tokens(content: Any) -> int:
    """
    Estimate the number of tokens in given content.

    Uses a rough approximation of 4 characters per token over the canonical
    JSON form of the content, rounded up. Works for any payload shape,
    including opaque pass-through values.

    Args:
        content: Text string, dictionary, list or any other value

    Returns:
        Estimated number of tokens (at least 1, since even ``null`` serializes)
    """
    return math.ceil(len(canonical_json(content)) / CHARS_PER_TOKEN)
