"""
Resolvent tokenizer: classify raw argv strings, lazily, one at a time.

Token kinds
- LONG:        "--name" or "--name=value" (name without dashes, value or None).
- SHORT:       "-abc" (name holds the cluster characters "abc"; the resolver
               decides how the cluster splits into flags and a value).
- TERMINATOR:  "--"; every later token is POSITIONAL with literal=True.
- POSITIONAL:  anything else, including a lone "-" (conventionally stdin).

Indexing
- Every token records its 1-based position in argv so that faults can lead with
  the ordinal ("at third position").
"""
from enum import Enum
from typing import NamedTuple

from .faults import FaultCode, MalformedTokenError
from .utils import Unset, ordinal


class TokenKind(Enum):
    LONG = "long"
    SHORT = "short"
    TERMINATOR = "terminator"
    POSITIONAL = "positional"


class Token(NamedTuple):
    kind: TokenKind
    text: str
    name: str | None
    value: str | None
    index: int
    literal: bool = False


def tokenize(argv, /):
    """
    Yield one Token per raw argument.

    Raises
    - TypeError: when an argv item is not a string.
    - MalformedTokenError: for "--=value" and "---name" spellings, at the moment
      the offending item is reached.
    """
    terminated = False
    for index, text in enumerate(argv, 1):
        if not isinstance(text, str):
            raise TypeError("argv items must be strings")

        if terminated:
            yield Token(TokenKind.POSITIONAL, text, None, text, index, True)
        elif text == "--":
            terminated = True
            yield Token(TokenKind.TERMINATOR, text, None, None, index)
        elif text.startswith("--"):
            name, separator, value = text[2:].partition("=")
            if not name or name.startswith("-"):
                raise MalformedTokenError(
                    "bad form of flag %r at %s position" % (text, ordinal(index)),
                    title="malformed flag",
                    code=FaultCode.MALFORMED_TOKEN,
                    hint="flags are spelled --name or --name=value (use '--' to pass literal values)",
                    token=text,
                    index=index,
                )
            yield Token(TokenKind.LONG, text, name, value if separator else None, index)
        elif text.startswith("-") and text != "-":
            yield Token(TokenKind.SHORT, text, text[1:], None, index)
        else:
            yield Token(TokenKind.POSITIONAL, text, None, text, index)


class TokenStream:
    """
    Iterator over tokens with a single-token lookahead.

    peek() is only used to decide whether the next raw argument can serve as a
    flag value; it never consumes anything.
    """

    def __init__(self, tokens, /):
        self._iterator = iter(tokens)
        self._peeked = Unset

    def __iter__(self):
        return self

    def __next__(self):
        if self._peeked is not Unset:
            token, self._peeked = self._peeked, Unset
            return token
        return next(self._iterator)

    def peek(self, default=None, /):
        if self._peeked is Unset:
            try:
                self._peeked = next(self._iterator)
            except StopIteration:
                return default
        return self._peeked


__all__ = (
    "TokenKind",
    "Token",
    "TokenStream",
    "tokenize",
)
