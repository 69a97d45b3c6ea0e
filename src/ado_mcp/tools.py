"""MCP tool definitions for Azure DevOps work items."""

from mcp.types import Tool

TEAM_BOARD_NOTE = (
    "\n\nACCESS: when team-board restrictions are enabled, only work items on the team boards listed in "
    "AZURE_DEVOPS_ALLOWED_TEAM_BOARDS are visible or editable."
)


def get_tools() -> list[Tool]:
    """Get the list of work item tools."""
    return [
        Tool(
            name="list_work_items",
            description="List work items in a project. "
                       "\n\nWithout team_id the listing covers every allowed team board. "
                       "With team_id it covers that team's board only."
                       "\n\nCustom wiql and query_id are only honoured when team-board restrictions are disabled."
                       + TEAM_BOARD_NOTE,
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project name or ID (default: configured project)"},
                    "team_id": {"type": "string", "description": "Team ID to list work items for"},
                    "query_id": {"type": "string", "description": "ID of a saved query"},
                    "wiql": {"type": "string", "description": "Inline WIQL query"},
                    "top": {"type": "integer", "description": "Maximum number of work items (default: 200)"},
                    "skip": {"type": "integer", "description": "Number of work items to skip (default: 0)"}
                },
                "required": []
            }
        ),
        Tool(
            name="get_work_item",
            description="Get a work item by ID. "
                       "\n\nRETURNS: Work item fields and links." + TEAM_BOARD_NOTE,
            inputSchema={
                "type": "object",
                "properties": {
                    "work_item_id": {"type": "integer", "description": "Work item ID"},
                    "expand": {
                        "type": "string",
                        "enum": ["none", "relations", "fields", "links", "all"],
                        "description": "Level of detail (default: all)"
                    }
                },
                "required": ["work_item_id"]
            }
        ),
        Tool(
            name="create_work_item",
            description="Create a new work item. "
                       "\n\nAREA PATH: with exactly one allowed team board the area path defaults to "
                       "'<project>\\<team>'. With several allowed team boards area_path is required."
                       + TEAM_BOARD_NOTE,
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project name or ID (default: configured project)"},
                    "work_item_type": {"type": "string", "description": "Work item type, e.g. 'Task', 'Bug', 'User Story'"},
                    "title": {"type": "string", "description": "Title (required)"},
                    "description": {"type": "string", "description": "Description (HTML)"},
                    "acceptance_criteria": {"type": "string", "description": "Acceptance criteria (HTML)"},
                    "assigned_to": {"type": "string", "description": "User email or display name"},
                    "area_path": {"type": "string", "description": "Area path, e.g. 'Project\\Team'"},
                    "iteration_path": {"type": "string", "description": "Iteration path"},
                    "priority": {"type": "integer", "description": "Priority (1-4)"},
                    "parent_id": {"type": "integer", "description": "Parent work item ID"},
                    "predecessor_ids": {"type": "array", "items": {"type": "integer"}, "description": "Predecessor work item IDs"},
                    "successor_ids": {"type": "array", "items": {"type": "integer"}, "description": "Successor work item IDs"},
                    "additional_fields": {"type": "object", "description": "Extra fields by reference name, e.g. {'System.Tags': 'api'}"}
                },
                "required": ["work_item_type", "title"]
            }
        ),
        Tool(
            name="update_work_item",
            description="Update fields of an existing work item. "
                       "\n\nMoving a work item with area_path is only allowed onto an allowed team board."
                       + TEAM_BOARD_NOTE,
            inputSchema={
                "type": "object",
                "properties": {
                    "work_item_id": {"type": "integer", "description": "Work item ID"},
                    "project_id": {"type": "string", "description": "Project name or ID (default: configured project)"},
                    "title": {"type": "string", "description": "New title"},
                    "description": {"type": "string", "description": "New description (HTML)"},
                    "acceptance_criteria": {"type": "string", "description": "New acceptance criteria (HTML)"},
                    "assigned_to": {"type": "string", "description": "New assignee"},
                    "area_path": {"type": "string", "description": "New area path"},
                    "iteration_path": {"type": "string", "description": "New iteration path"},
                    "priority": {"type": "integer", "description": "New priority (1-4)"},
                    "state": {"type": "string", "description": "New state, e.g. 'Active', 'Closed'"},
                    "predecessor_ids": {"type": "array", "items": {"type": "integer"}, "description": "Predecessors to add"},
                    "successor_ids": {"type": "array", "items": {"type": "integer"}, "description": "Successors to add"},
                    "additional_fields": {"type": "object", "description": "Extra fields by reference name"}
                },
                "required": ["work_item_id"]
            }
        ),
        Tool(
            name="manage_work_item_link",
            description="Add, remove or change the type of a link between two work items. "
                       "\n\nBoth work items must be on allowed team boards; nothing changes otherwise."
                       + TEAM_BOARD_NOTE,
            inputSchema={
                "type": "object",
                "properties": {
                    "source_work_item_id": {"type": "integer", "description": "Work item the link starts from"},
                    "target_work_item_id": {"type": "integer", "description": "Work item the link points to"},
                    "project_id": {"type": "string", "description": "Project name or ID (default: configured project)"},
                    "operation": {"type": "string", "enum": ["add", "remove", "update"], "description": "Link operation"},
                    "relation_type": {"type": "string", "description": "Link type, e.g. 'System.LinkTypes.Related'"},
                    "new_relation_type": {"type": "string", "description": "New link type (update only)"},
                    "comment": {"type": "string", "description": "Link comment"}
                },
                "required": ["source_work_item_id", "target_work_item_id", "operation", "relation_type"]
            }
        ),
    ]
