"""Exception and warning types raised by the save codec."""


class Bl4SavError(ValueError):
    """Base class for every hard failure raised by bl4sav."""


class CorruptedContainer(Bl4SavError):
    """The ciphertext violates a structural precondition (e.g. block size)."""


class DecryptionFailed(Bl4SavError):
    WRONG_IDENTIFIER = "wrong_identifier"
    CORRUPTED = "corrupted"

    def __init__(self, message: str, reason: str = CORRUPTED):
        super().__init__(message)
        self.reason = reason


class PathNotFound(Bl4SavError, KeyError):
    """An edit referenced a document position that does not exist."""

    def __init__(self, path: str, detail: str = ""):
        message = f"Document path not found: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


class VerificationFailed(Bl4SavError):
    """A freshly written container did not decode back to what was written."""


class InvalidPlatformId(Bl4SavError):
    pass


class EncodeFallback(UserWarning):
    """An item could not be re-encoded; the original serial was kept."""


__all__ = [
    "Bl4SavError",
    "CorruptedContainer",
    "DecryptionFailed",
    "EncodeFallback",
    "InvalidPlatformId",
    "PathNotFound",
    "VerificationFailed",
]
