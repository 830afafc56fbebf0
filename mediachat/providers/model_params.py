"""Request parameters that differ between chat model families."""

from typing import Any, Dict, Optional

# Families that take max_completion_tokens instead of max_tokens
COMPLETION_TOKEN_PREFIXES = ("gpt-4o", "gpt-4.1", "gpt-5", "o1", "o3", "o4")

# Reasoning families reject a temperature override
NO_TEMPERATURE_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def completion_params(model: str, max_tokens: int, temperature: Optional[float] = 0.7) -> Dict[str, Any]:
    """Token budget and temperature keyword arguments for ``model``.

    >>> completion_params("gpt-4o-mini", 150)
    {'max_completion_tokens': 150, 'temperature': 0.7}
    >>> completion_params("o3-mini", 150)
    {'max_completion_tokens': 150}
    """
    name = (model or "").lower()
    params: Dict[str, Any] = {}

    if name.startswith(COMPLETION_TOKEN_PREFIXES):
        params["max_completion_tokens"] = max_tokens
    else:
        params["max_tokens"] = max_tokens

    if temperature is not None and not name.startswith(NO_TEMPERATURE_PREFIXES):
        params["temperature"] = temperature

    return params
