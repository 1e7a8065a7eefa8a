from enum import Enum


class ApiClientError(Exception):
    """Custom exception for external API client errors."""
    pass

class ConfigurationError(Exception):
    """Custom exception for configuration errors."""
    pass

class MissingRegionError(ConfigurationError):
    """Raised when the account id can't be resolved because no AWS region is configured."""
    pass

class AccountParseError(ValueError):
    """Raised when an account string is neither '<alias>-<digits>' nor '<digits>'."""
    pass

class PolicyDocumentError(ValueError):
    """Raised when a policy document is not valid JSON."""
    pass

class MissingDefaultPolicyVersionError(Exception):
    """Raised when a managed policy has no version flagged as default."""
    pass

class DuplicateResourceError(Exception):
    """Raised when a resource with the same name and path is already in the snapshot."""
    pass

class SnapshotFrozenError(Exception):
    """Raised when something tries to modify a snapshot after fetch has completed."""
    pass


class FetchPhase(str, Enum):
    INIT = "identity resolution"
    OWNERSHIP_INDEX = "ownership-index build"
    IAM = "IAM fetch"
    S3 = "S3 fetch"


class FetchError(Exception):
    """Wraps any failure during a fetch with the phase that failed."""

    def __init__(self, phase: FetchPhase, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Error during {phase.value}: {cause}")
