"""
Exceptions raised by the MuiDB store and its adapters.

Every exception carries the offending value(s) as attributes so callers
can format their own messages.
"""

from typing import Iterable, List, Optional, Tuple


class MuiDBError(Exception):
    """Base class for all MuiDB errors."""


class InvalidArgumentError(MuiDBError, ValueError):
    """A required argument was missing or blank."""


class UnrecognizedStateError(MuiDBError, ValueError):
    """A non-blank state label that belongs to no known vocabulary."""

    def __init__(self, state: str, target: Optional[str] = None):
        self.state = state
        self.target = target
        message = f"The state '{state}' is unknown"
        if target:
            message += f" and thus can not be converted to a valid {target} state"
        super().__init__(message)


class DocumentNotFoundError(MuiDBError, FileNotFoundError):
    """An existing MuiDB file was required but is missing."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"File not found: {self.path}")


class MalformedDocumentError(MuiDBError, ValueError):
    """The document is not well formed or violates the MuiDB schema."""

    def __init__(self, message: str, path=None):
        self.path = str(path) if path is not None else None
        super().__init__(message)


class MissingTranslationsError(MuiDBError):
    """
    One or more items lack a text for a configured language.

    Carries the complete list of (item id, language) pairs.
    """

    def __init__(self, items: Iterable[Tuple[str, str]]):
        self._items: List[Tuple[str, str]] = list(items)
        super().__init__(self._format_message())

    @property
    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def _format_message(self) -> str:
        return '\n'.join(
            f"'{item_id}' misses a translation in language '{lang}'."
            for item_id, lang in self._items
        )


class UnconfiguredLanguageError(MuiDBError, ValueError):
    """The requested language is not in the document's language list."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"'{language}' is not a configured language.")


class FormatNotSupportedError(MuiDBError, NotImplementedError):
    """The requested conversion is not implemented."""
