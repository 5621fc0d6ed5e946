"""Wellspring error taxonomy"""

from typing import Optional


class WellspringError(Exception):
    """Base class for all Wellspring errors"""


class ConfigurationError(WellspringError):
    """Missing or invalid configuration (identifiers, board columns, credentials)"""


class NotConnectedError(WellspringError):
    """A required integration is not authenticated"""

    def __init__(self, integration: str, message: Optional[str] = None):
        self.integration = integration
        super().__init__(message or f"{integration} is not connected")


class NotFoundError(WellspringError):
    """A chapter, author or board item could not be found"""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class UpstreamError(WellspringError):
    """A SaaS API call failed (network error, non-2xx status or GraphQL error)"""

    def __init__(self, provider: str, status: Optional[int] = None, detail: str = ""):
        self.provider = provider
        self.status = status
        self.detail = detail
        status_part = f" {status}" if status is not None else ""
        super().__init__(f"{provider} API error:{status_part} {detail}".rstrip())


class InvalidTransitionError(WellspringError):
    """A chapter step transition that the workflow does not allow"""

    def __init__(self, current: str, target: str, allowed: Optional[list[str]] = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        super().__init__(
            f"Cannot move from '{current}' to '{target}'. Allowed: {', '.join(self.allowed) or 'none'}"
        )


class PartialFailure(WellspringError):
    """Some steps of a multi-step flow completed and others failed"""

    def __init__(self, succeeded: list[str], failed: list[str]):
        self.succeeded = succeeded
        self.failed = failed
        super().__init__(f"{len(succeeded)} succeeded, {len(failed)} failed: {', '.join(failed)}")
