"""Custom exception hierarchy for oaitok tokenization errors."""

import regex as re

from .types import Token


class OaitokError(Exception):
    """Base exception for all oaitok errors."""


class LoadError(OaitokError):
    """Raised when a vocabulary resource is missing or malformed."""

    def __init__(
        self,
        message: str,
        *,
        model_path: str | None = None,
        line: int | None = None,
        version_mismatch: tuple[str, str] | None = None,
    ) -> None:
        extra = " "
        if model_path:
            extra += f"(path: {model_path}) "
        if line is not None:
            extra += f"(line: {line}) "
        if version_mismatch is not None:
            extra += f"(expected: {version_mismatch[1]}) (got {version_mismatch[0]}) "
        super().__init__(message + extra.rstrip())
        self.model_path = model_path
        self.line = line
        self.version_mismatch = version_mismatch


class UnknownModelError(LoadError):
    """Raised when a model or encoding name has no registered vocabulary."""

    def __init__(self, name: str, *, available: list[str] | None = None) -> None:
        message = f"unknown model or encoding: {name!r}"
        if available:
            message += f" (available encodings: {', '.join(available)})"
        super().__init__(message)
        self.name = name
        self.available = available


class SpecialTokenError(OaitokError):
    """Raised when special token handling fails."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class DisallowedSpecialTokenError(SpecialTokenError):
    """
    Raised when input text contains a special token literal that the call
    did not allow.

    ``offset`` is the UTF-8 byte offset of the first disallowed occurrence.
    """

    def __init__(
        self, literal: str, offset: int, *, found_tokens: set[str] | None = None
    ) -> None:
        super().__init__(
            f"disallowed special token {literal!r} at byte offset {offset}",
            found_tokens=found_tokens,
        )
        self.literal = literal
        self.offset = offset


class TokenizationError(OaitokError):
    """Raised when tokenization fails."""

    def __init__(
        self,
        message: str,
        *,
        position: int | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.position = position
        self.input_text = input_text


class InvalidUtf8Error(TokenizationError):
    """Raised when decoded token bytes are not valid UTF-8."""

    def __init__(self, *, position: int, token_index: int, reason: str = "") -> None:
        message = f"decoded bytes are not valid utf-8 (byte position: {position}) (token index: {token_index})"
        if reason:
            message += f" (reason: {reason})"
        super().__init__(message, position=position)
        self.token_index = token_index


class VocabularyError(OaitokError):
    """Raised when vocabulary lookups fail."""

    def __init__(self, message: str, *, invalid_tok: Token | None = None) -> None:
        """Initialize with an optional token that gets appended to the message."""
        if invalid_tok is not None:
            message += f" (invalid token: {invalid_tok})"
        super().__init__(message)
        self.invalid_tok = invalid_tok


class PatternError(OaitokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra.rstrip())
        self.pattern = pattern
        self.regex_err = regex_err


class StrategyError(OaitokError):
    """Raised when strategy or mode names cannot be resolved."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available_strats: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available_strats}) (got {invalid_name}) "
        super().__init__(message + extra.rstrip())
        self.invalid_name = invalid_name
        self.available_strats = available_strats
