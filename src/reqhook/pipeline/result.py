"""Dispatch result type.

A handler either lets the request continue down the pipeline or responds,
which stops the pipeline:

    Result = Continue | Respond(response)

Handlers may also return ``None`` (continue) or a bare response value
(respond); ``to_result`` normalizes both forms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final


class _ContinueType:
    """Singleton marker for "no response, keep going"."""

    _instance: _ContinueType | None = None

    def __new__(cls) -> _ContinueType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Continue"

    def __bool__(self) -> bool:
        return False


Continue: Final = _ContinueType()


@dataclass(frozen=True)
class Respond:
    """Stop the pipeline and return ``response`` to the host.

    Attributes:
        response: Value the host returns verbatim to the client
    """

    response: Any


Result = _ContinueType | Respond


def to_result(value: Any) -> Result:
    """Normalize a handler return value.

    Args:
        value: Handler return value

    Returns:
        Continue for ``None`` or Continue, Respond otherwise
    """
    if value is None or value is Continue:
        return Continue
    if isinstance(value, Respond):
        return value
    return Respond(value)
