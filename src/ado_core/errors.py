"""Error taxonomy for Azure DevOps operations and team-board policy decisions.

Policy errors (configuration, team lookup, access, identity, creation
ambiguity) are all validation-class errors so that callers can tell them apart
from upstream failures coming out of the REST client.
"""
from typing import Optional

ALLOWED_TEAM_BOARDS_ENV = "AZURE_DEVOPS_ALLOWED_TEAM_BOARDS"


class AzureDevOpsError(Exception):
    """Base class for every error raised by this package."""


class AzureDevOpsValidationError(AzureDevOpsError):
    """Raised when a request or a policy check rejects the operation."""

    def __init__(self, message: str, response: Optional[dict] = None):
        super().__init__(message)
        self.response = response


class ConfigurationDenied(AzureDevOpsValidationError):
    """No team boards are configured, so every board is off limits."""

    def __init__(self, action: str = "board access"):
        super().__init__(
            f"Board access is restricted. No team boards are configured in {ALLOWED_TEAM_BOARDS_ENV}. "
            f"To enable {action}, set {ALLOWED_TEAM_BOARDS_ENV} to a comma-separated list of team names."
        )


class TeamNotFound(AzureDevOpsValidationError):
    """A team ID or name does not exist in the project."""

    def __init__(
        self,
        message: str,
        project_id: str,
        missing: list[str],
        available: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.project_id = project_id
        self.missing = missing
        self.available = available or []


class AccessDenied(AzureDevOpsValidationError):
    """The team resolved fine but is not in the allow-list."""

    def __init__(self, message: str, team_name: str, allowed_teams: list[str]):
        super().__init__(message)
        self.team_name = team_name
        self.allowed_teams = allowed_teams


class IndeterminateIdentity(AzureDevOpsValidationError):
    """A work item carries neither a team ID nor a usable area path."""

    def __init__(self, message: str, work_item_id: Optional[int] = None):
        super().__init__(message)
        self.work_item_id = work_item_id


class AmbiguousCreation(AzureDevOpsValidationError):
    """Creation without an area path while several teams are allowed."""

    def __init__(self, message: str, allowed_teams: list[str]):
        super().__init__(message)
        self.allowed_teams = allowed_teams


class UnknownOperation(AzureDevOpsValidationError):
    """The requested tool name is not a work item operation."""

    def __init__(self, name: str):
        super().__init__(f"Unknown work items tool: {name}")
        self.name = name


class ResourceNotFound(AzureDevOpsError):
    """The service answered 404."""


class WorkItemNotFound(ResourceNotFound):
    """A work item ID does not exist (or is not visible to the credentials)."""

    def __init__(self, work_item_id: int):
        super().__init__(f"Work item '{work_item_id}' not found")
        self.work_item_id = work_item_id


class PermissionDenied(AzureDevOpsError):
    """The service rejected the credentials (401/403)."""


class UpstreamFailure(AzureDevOpsError):
    """The Azure DevOps call itself failed: network, status or malformed payload."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeout(UpstreamFailure):
    """The call did not finish within the configured timeout."""

    retryable = True
