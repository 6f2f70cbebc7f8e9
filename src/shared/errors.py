"""Error taxonomy for artifact resolution.

An empty spread report is not an error: parse_report returns None for it.
"""


class ArtifactError(Exception):
    """Base class for all artifact resolution failures."""


class ArtifactNotFoundError(ArtifactError):
    """No partition in the store holds a matching artifact for the symbol."""

    def __init__(self, symbol: str, detail: str = ""):
        self.symbol = symbol
        message = f"No artifacts found for {symbol}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedArtifactError(ArtifactError):
    """A matched structured artifact could not be decoded."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Malformed artifact {key}: {reason}")


class ArtifactStoreError(ArtifactError):
    """Listing or download against the object store failed."""

    def __init__(self, operation: str, target: str, cause: Exception):
        self.operation = operation
        self.target = target
        super().__init__(f"{operation} failed for {target}: {cause}")
