"""Azure DevOps entities and policy value types."""
from typing import Any, Optional
import enum

from pydantic import BaseModel, ConfigDict, Field

# Work item fields consulted by the team-board policy
FIELD_ID = "System.Id"
FIELD_TEAM_ID = "System.TeamId"
FIELD_AREA_PATH = "System.AreaPath"
FIELD_TEAM_PROJECT = "System.TeamProject"
FIELD_TITLE = "System.Title"
FIELD_STATE = "System.State"
FIELD_WORK_ITEM_TYPE = "System.WorkItemType"
FIELD_ASSIGNED_TO = "System.AssignedTo"
FIELD_ITERATION_PATH = "System.IterationPath"
FIELD_DESCRIPTION = "System.Description"
FIELD_ACCEPTANCE_CRITERIA = "Microsoft.VSTS.Common.AcceptanceCriteria"
FIELD_PRIORITY = "Microsoft.VSTS.Common.Priority"

AREA_PATH_SEPARATOR = "\\"


class WorkItemExpand(str, enum.Enum):
    """Values accepted by the $expand parameter of the work item API."""

    NONE = "none"
    RELATIONS = "relations"
    FIELDS = "fields"
    LINKS = "links"
    ALL = "all"


class LinkOperation(str, enum.Enum):
    """What manage_work_item_link does with the relation."""

    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


class RelationType(str, enum.Enum):
    """Link types used when creating or updating work items."""

    PARENT = "System.LinkTypes.Hierarchy-Reverse"
    CHILD = "System.LinkTypes.Hierarchy-Forward"
    PREDECESSOR = "System.LinkTypes.Dependency-Reverse"
    SUCCESSOR = "System.LinkTypes.Dependency-Forward"
    RELATED = "System.LinkTypes.Related"


class Team(BaseModel):
    """A team of a project as returned by the core teams API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None


class WorkItem(BaseModel):
    """A work item as returned by the work item tracking API."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    rev: Optional[int] = None
    fields: dict[str, Any] = Field(default_factory=dict)
    relations: Optional[list[dict[str, Any]]] = None
    url: Optional[str] = None

    def field(self, name: str) -> Any:
        return self.fields.get(name)

    @property
    def title(self) -> Optional[str]:
        return self.fields.get(FIELD_TITLE)

    @property
    def area_path(self) -> Optional[str]:
        return self.fields.get(FIELD_AREA_PATH)

    @property
    def team_project(self) -> Optional[str]:
        return self.fields.get(FIELD_TEAM_PROJECT)


class WorkItemIdentity(BaseModel):
    """The fields of a work item that decide which team board it belongs to.

    ``team_id`` is authoritative when present; ``area_path`` is the fallback.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    team_id: Optional[str] = None
    area_path: Optional[str] = None
    project: Optional[str] = None

    @classmethod
    def from_work_item(cls, work_item: WorkItem) -> "WorkItemIdentity":
        team_id = work_item.field(FIELD_TEAM_ID)
        area_path = work_item.field(FIELD_AREA_PATH)
        project = work_item.field(FIELD_TEAM_PROJECT)
        return cls(
            id=work_item.id if work_item.id is not None else work_item.field(FIELD_ID),
            team_id=team_id if isinstance(team_id, str) and team_id else None,
            area_path=area_path if isinstance(area_path, str) and area_path else None,
            project=project if isinstance(project, str) and project else None,
        )


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


class AccessDecision(BaseModel):
    """Outcome of a policy evaluation. Never persisted."""

    model_config = ConfigDict(frozen=True)

    decision: Decision
    reason: Optional[str] = None
    team_name: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @classmethod
    def allow(cls, team_name: str) -> "AccessDecision":
        return cls(decision=Decision.ALLOW, team_name=team_name)

    @classmethod
    def deny(cls, reason: str, team_name: Optional[str] = None) -> "AccessDecision":
        return cls(decision=Decision.DENY, reason=reason, team_name=team_name)
