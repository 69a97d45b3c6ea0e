"""Pydantic schemas for work item tool arguments."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import (
    FIELD_ACCEPTANCE_CRITERIA,
    FIELD_AREA_PATH,
    FIELD_ASSIGNED_TO,
    FIELD_DESCRIPTION,
    FIELD_ITERATION_PATH,
    FIELD_PRIORITY,
    FIELD_STATE,
    FIELD_TITLE,
    LinkOperation,
    RelationType,
    WorkItemExpand,
)


class ToolArguments(BaseModel):
    """Common configuration for tool argument schemas."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ListWorkItemsRequest(ToolArguments):
    """Arguments for list_work_items."""

    project_id: Optional[str] = Field(None, description="Project name or ID (default: configured project)")
    team_id: Optional[str] = Field(None, description="Team ID to scope the listing to")
    query_id: Optional[str] = Field(None, description="ID of a saved query")
    wiql: Optional[str] = Field(None, description="Inline WIQL query")
    top: int = Field(200, ge=1, le=1000, description="Maximum number of work items")
    skip: int = Field(0, ge=0, description="Number of work items to skip")


class GetWorkItemRequest(ToolArguments):
    """Arguments for get_work_item."""

    work_item_id: int = Field(..., gt=0)
    expand: WorkItemExpand = Field(WorkItemExpand.ALL, description="Level of detail to return")


class WorkItemFields(ToolArguments):
    """Editable work item fields shared by create and update."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    assigned_to: Optional[str] = None
    area_path: Optional[str] = None
    iteration_path: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, le=4)
    predecessor_ids: list[int] = Field(default_factory=list)
    successor_ids: list[int] = Field(default_factory=list)
    additional_fields: dict[str, Any] = Field(default_factory=dict)

    def to_fields(self) -> dict[str, Any]:
        """Reference-named fields to send; unset values are left out."""
        fields = {
            FIELD_TITLE: self.title,
            FIELD_DESCRIPTION: self.description,
            FIELD_ACCEPTANCE_CRITERIA: self.acceptance_criteria,
            FIELD_ASSIGNED_TO: self.assigned_to,
            FIELD_AREA_PATH: self.area_path,
            FIELD_ITERATION_PATH: self.iteration_path,
            FIELD_PRIORITY: self.priority,
        }
        fields.update(self.additional_fields)
        return {name: value for name, value in fields.items() if value is not None}

    def to_relations(self) -> list[tuple[RelationType, int]]:
        relations = [(RelationType.PREDECESSOR, i) for i in self.predecessor_ids]
        relations += [(RelationType.SUCCESSOR, i) for i in self.successor_ids]
        return relations


class CreateWorkItemRequest(WorkItemFields):
    """Arguments for create_work_item."""

    project_id: Optional[str] = None
    work_item_type: str = Field(..., min_length=1, description="e.g. 'Task', 'Bug', 'User Story'")
    title: str = Field(..., min_length=1)
    parent_id: Optional[int] = Field(None, gt=0)

    def to_relations(self) -> list[tuple[RelationType, int]]:
        relations = super().to_relations()
        if self.parent_id:
            relations.insert(0, (RelationType.PARENT, self.parent_id))
        return relations


class UpdateWorkItemRequest(WorkItemFields):
    """Arguments for update_work_item."""

    work_item_id: int = Field(..., gt=0)
    project_id: Optional[str] = None
    state: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        fields = super().to_fields()
        if self.state is not None:
            fields[FIELD_STATE] = self.state
        return fields


class ManageWorkItemLinkRequest(ToolArguments):
    """Arguments for manage_work_item_link."""

    source_work_item_id: int = Field(..., gt=0)
    target_work_item_id: int = Field(..., gt=0)
    project_id: Optional[str] = None
    operation: LinkOperation
    relation_type: str = Field(..., min_length=1, description="e.g. System.LinkTypes.Related")
    new_relation_type: Optional[str] = None
    comment: Optional[str] = None

    @model_validator(mode="after")
    def check_update_has_new_type(self) -> "ManageWorkItemLinkRequest":
        if self.operation is LinkOperation.UPDATE and not self.new_relation_type:
            raise ValueError("new_relation_type is required when operation is 'update'")
        return self
