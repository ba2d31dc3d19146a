"""
Error taxonomy for the threshold encryption engine.

Every error here is fatal for the call that raised it. Share verification is
the one operation that reports invalid input as ``False`` instead.
"""

from typing import Optional

__all__ = [
    "ThresholdEncryptionError",
    "InvalidKeyError",
    "MalformedCiphertextError",
    "InsufficientSharesError",
    "DuplicateIndexError",
    "ZeroInversionError",
    "MessageLengthError",
]


class ThresholdEncryptionError(Exception):
    """Base class for all threshold encryption errors."""

    default_message = "threshold encryption error"

    def __init__(self, message: Optional[str] = None, context: Optional[str] = None):
        self.message = message or self.default_message
        self.context = context

        full_msg = self.message
        if context:
            full_msg += f" ({context})"

        super().__init__(full_msg)


class InvalidKeyError(ThresholdEncryptionError):
    default_message = "zero secret key"


class MalformedCiphertextError(ThresholdEncryptionError):
    default_message = "cannot decrypt data"


class InsufficientSharesError(ThresholdEncryptionError):
    default_message = "not enough participants in the threshold group"


class DuplicateIndexError(ThresholdEncryptionError):
    default_message = "during the interpolation, have same indexes in list of indexes"


class ZeroInversionError(ThresholdEncryptionError):
    default_message = "cannot invert the zero element"


class MessageLengthError(ThresholdEncryptionError, ValueError):
    default_message = "message and mask must have the same length"
