"""
Transition Codec
Converts transitions between the structured (source, symbol, destination)
form and the flattened "from|symbol|to" wire string.

The delimiter is not escaped: a state id or symbol containing "|" cannot
be represented and decodes as a malformed transition.
"""

from typing import Any, NamedTuple, Union

from .schemas import ErrorCode

DELIMITER = "|"


class Transition(NamedTuple):
    source: str
    symbol: str
    destination: str

    def encode(self) -> str:
        return encode_transition(self.source, self.symbol, self.destination)


class DecodeError(NamedTuple):
    """Typed failure for one raw transition string."""
    raw: str
    code: ErrorCode
    message: str


def decode_transition(raw: Any) -> Union[Transition, DecodeError]:
    """
    Decode one flattened transition.

    Never raises: malformed input yields a DecodeError so the caller can
    keep processing the remaining transitions.
    """
    if not isinstance(raw, str):
        return DecodeError(
            raw=repr(raw),
            code=ErrorCode.INVALID_TRANSITION_SYMBOL,
            message=f'Invalid transition format "{raw!r}".',
        )

    parts = raw.split(DELIMITER)
    if len(parts) != 3:
        return DecodeError(
            raw=raw,
            code=ErrorCode.INVALID_TRANSITION_SYMBOL,
            message=f'Invalid transition format "{raw}".',
        )

    source, symbol, destination = parts
    if not source or not symbol or not destination:
        return DecodeError(
            raw=raw,
            code=ErrorCode.INVALID_SYMBOL,
            message=f'Transition unrecognisable "{raw}".',
        )

    return Transition(source, symbol, destination)


def encode_transition(source: str, symbol: str, destination: str) -> str:
    """Flatten a transition. Raises ValueError for fields that cannot round-trip."""
    for name, value in (("source", source), ("symbol", symbol), ("destination", destination)):
        if not value:
            raise ValueError(f"Transition {name} cannot be empty")
        if DELIMITER in value:
            raise ValueError(f"Transition {name} {value!r} contains the delimiter {DELIMITER!r}")
    return DELIMITER.join((source, symbol, destination))
