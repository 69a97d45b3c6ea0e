"""Shared formatting functions for MCP responses."""
from ado_core.models import (
    FIELD_AREA_PATH,
    FIELD_ASSIGNED_TO,
    FIELD_ITERATION_PATH,
    FIELD_PRIORITY,
    FIELD_STATE,
    FIELD_TEAM_PROJECT,
    FIELD_TITLE,
    FIELD_WORK_ITEM_TYPE,
    WorkItem,
)

SUMMARY_FIELDS = {FIELD_TITLE, FIELD_WORK_ITEM_TYPE, FIELD_STATE, FIELD_AREA_PATH, FIELD_ASSIGNED_TO}


def _identity(value) -> str:
    """Render an identity field, which the API returns as a dict."""
    if isinstance(value, dict):
        name = value.get("displayName")
        email = value.get("uniqueName")
        if name and email:
            return f"{name} <{email}>"
        return name or email or "Unknown"
    return str(value)


def format_work_item_summary(item: WorkItem) -> str:
    """Format a work item as a single list line."""
    fields = item.fields
    work_item_type = fields.get(FIELD_WORK_ITEM_TYPE, "Work Item")
    state = fields.get(FIELD_STATE, "unknown")
    title = fields.get(FIELD_TITLE, "(untitled)")
    area_info = f" [{fields[FIELD_AREA_PATH]}]" if fields.get(FIELD_AREA_PATH) else ""
    return f"- #{item.id} {work_item_type}: {title} ({state}){area_info}"


def format_work_item(item: WorkItem) -> str:
    """Format a work item for display with its main fields, other fields and links."""
    fields = item.fields
    assigned = fields.get(FIELD_ASSIGNED_TO)
    assigned_info = f"\nAssigned To: {_identity(assigned)}" if assigned else ""
    iteration_info = f"\nIteration: {fields[FIELD_ITERATION_PATH]}" if fields.get(FIELD_ITERATION_PATH) else ""
    priority_info = f"\nPriority: {fields[FIELD_PRIORITY]}" if fields.get(FIELD_PRIORITY) is not None else ""

    text = f"""**#{item.id} {fields.get(FIELD_TITLE, '(untitled)')}**
Type: {fields.get(FIELD_WORK_ITEM_TYPE, 'unknown')}
State: {fields.get(FIELD_STATE, 'unknown')}
Project: {fields.get(FIELD_TEAM_PROJECT, 'unknown')}
Area Path: {fields.get(FIELD_AREA_PATH, 'unknown')}{assigned_info}{iteration_info}{priority_info}
Revision: {item.rev}"""

    other_fields = {
        name: value for name, value in fields.items()
        if name not in SUMMARY_FIELDS and name not in (FIELD_TEAM_PROJECT, FIELD_ITERATION_PATH, FIELD_PRIORITY)
    }
    if other_fields:
        lines = [f"- {name}: {_identity(value)}" for name, value in sorted(other_fields.items())]
        text += "\n\nFields:\n" + "\n".join(lines)

    if item.relations:
        links = [f"- {rel.get('rel')}: {rel.get('url')}" for rel in item.relations]
        text += "\n\nLinks:\n" + "\n".join(links)

    return text
