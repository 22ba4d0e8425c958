"""
Translation workflow states.

Three vocabularies are in use:

- MuiDB (native): new, translated, reviewed, final
- XLIFF 1.2: ten fixed states plus user-defined states prefixed with "x-"
- XLIFF 2.0: initial, translated, reviewed, final

The to_* functions convert a label from any vocabulary into the target
vocabulary. Labels already valid in the target are returned unchanged.
"""

from enum import Enum
from typing import Dict, List, Union

from .errors import InvalidArgumentError, UnrecognizedStateError

# User-defined XLIFF 1.2 states must start with this prefix
USER_STATE_PREFIX = 'x-'


class _StateVocabulary(str, Enum):
    """Base for state enums; members compare equal to their labels."""

    @classmethod
    def enumerate(cls) -> List[str]:
        """All labels of the vocabulary in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def contains(cls, state: str) -> bool:
        return state in cls._value2member_map_

    def __str__(self) -> str:
        return self.value


class MuiDBState(_StateVocabulary):
    NEW = 'new'
    TRANSLATED = 'translated'
    REVIEWED = 'reviewed'
    FINAL = 'final'


class XlfV12State(_StateVocabulary):
    FINAL = 'final'
    # Only non-textual information needs adaptation
    NEEDS_ADAPTATION = 'needs-adaptation'
    # Text and non-textual information need adaptation
    NEEDS_L10N = 'needs-l10n'
    # Only non-textual information needs review
    NEEDS_REVIEW_ADAPTATION = 'needs-review-adaptation'
    # Text and non-textual information need review
    NEEDS_REVIEW_L10N = 'needs-review-l10n'
    # Only the text needs review
    NEEDS_REVIEW_TRANSLATION = 'needs-review-translation'
    NEEDS_TRANSLATION = 'needs-translation'
    NEW = 'new'
    # Changes are reviewed and approved
    SIGNED_OFF = 'signed-off'
    TRANSLATED = 'translated'


class XlfV20State(_StateVocabulary):
    INITIAL = 'initial'
    TRANSLATED = 'translated'
    REVIEWED = 'reviewed'
    FINAL = 'final'


# Cross-vocabulary tables; identity cases are handled before lookup
_TO_MUIDB: Dict[str, str] = {
    XlfV12State.NEEDS_ADAPTATION.value: MuiDBState.NEW.value,
    XlfV12State.NEEDS_L10N.value: MuiDBState.NEW.value,
    XlfV12State.NEEDS_TRANSLATION.value: MuiDBState.NEW.value,
    XlfV20State.INITIAL.value: MuiDBState.NEW.value,
    XlfV12State.NEEDS_REVIEW_ADAPTATION.value: MuiDBState.TRANSLATED.value,
    XlfV12State.NEEDS_REVIEW_L10N.value: MuiDBState.TRANSLATED.value,
    XlfV12State.NEEDS_REVIEW_TRANSLATION.value: MuiDBState.TRANSLATED.value,
    XlfV12State.SIGNED_OFF.value: MuiDBState.REVIEWED.value,
}

_TO_XLF_V12: Dict[str, str] = {
    XlfV20State.INITIAL.value: XlfV12State.NEW.value,
    MuiDBState.REVIEWED.value: XlfV12State.SIGNED_OFF.value,
}

_TO_XLF_V20: Dict[str, str] = {
    XlfV12State.NEW.value: XlfV20State.INITIAL.value,
    XlfV12State.NEEDS_ADAPTATION.value: XlfV20State.INITIAL.value,
    XlfV12State.NEEDS_L10N.value: XlfV20State.INITIAL.value,
    XlfV12State.NEEDS_TRANSLATION.value: XlfV20State.INITIAL.value,
    XlfV12State.NEEDS_REVIEW_ADAPTATION.value: XlfV20State.TRANSLATED.value,
    XlfV12State.NEEDS_REVIEW_L10N.value: XlfV20State.TRANSLATED.value,
    XlfV12State.NEEDS_REVIEW_TRANSLATION.value: XlfV20State.TRANSLATED.value,
    XlfV12State.SIGNED_OFF.value: XlfV20State.REVIEWED.value,
}

StateLike = Union[str, _StateVocabulary]


def is_user_state(state: str) -> bool:
    """Check whether a label is a user-defined XLIFF 1.2 state."""
    return bool(state) and str(state).startswith(USER_STATE_PREFIX)


def _normalize(state: StateLike) -> str:
    if isinstance(state, Enum):
        state = state.value
    if state is None or not isinstance(state, str) or not state.strip():
        raise InvalidArgumentError(f"State must be a non-blank string, got {state!r}")
    return state


def to_muidb(state: StateLike) -> str:
    """
    Convert a state label into the native MuiDB vocabulary.

    Raises:
        InvalidArgumentError: If state is None or blank
        UnrecognizedStateError: If state belongs to no known vocabulary
    """
    state = _normalize(state)
    if MuiDBState.contains(state):
        return state
    if state in _TO_MUIDB:
        return _TO_MUIDB[state]
    if is_user_state(state):
        return MuiDBState.NEW.value
    raise UnrecognizedStateError(state, 'MuiDB')


def to_xlf_v12(state: StateLike) -> str:
    """
    Convert a state label into the XLIFF 1.2 vocabulary.

    User-defined ("x-") states pass through unchanged.

    Raises:
        InvalidArgumentError: If state is None or blank
        UnrecognizedStateError: If state belongs to no known vocabulary
    """
    state = _normalize(state)
    if XlfV12State.contains(state):
        return state
    if state in _TO_XLF_V12:
        return _TO_XLF_V12[state]
    if is_user_state(state):
        return state
    raise UnrecognizedStateError(state, 'XLIFF v1.2')


def to_xlf_v20(state: StateLike) -> str:
    """
    Convert a state label into the XLIFF 2.0 vocabulary.

    Raises:
        InvalidArgumentError: If state is None or blank
        UnrecognizedStateError: If state belongs to no known vocabulary
    """
    state = _normalize(state)
    if XlfV20State.contains(state):
        return state
    if state in _TO_XLF_V20:
        return _TO_XLF_V20[state]
    if is_user_state(state):
        return XlfV20State.INITIAL.value
    raise UnrecognizedStateError(state, 'XLIFF v2.0')


_CONVERTERS = {
    'muidb': to_muidb,
    'xliff-1.2': to_xlf_v12,
    'xliff-2.0': to_xlf_v20,
}


def convert_state(state: StateLike, vocabulary: str) -> str:
    """Convert a state into the named vocabulary ('muidb', 'xliff-1.2', 'xliff-2.0')."""
    try:
        converter = _CONVERTERS[vocabulary]
    except KeyError:
        raise InvalidArgumentError(
            f"Unknown state vocabulary: '{vocabulary}' "
            f"(expected one of: {', '.join(_CONVERTERS)})"
        ) from None
    return converter(state)
