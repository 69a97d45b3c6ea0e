"""Work item tool handlers and the dispatcher that routes tool calls to them.

All handlers follow the same pattern:
- Accept: arguments dict, AzureDevOpsClient, optional TeamBoardPolicy, Settings
- Return: list[TextContent]
- Raise ado_core errors unchanged; the transport decides how to report them

A ``policy`` of None is open mode: no team-board checks at all. It is only
used when AZURE_DEVOPS_ENFORCE_TEAM_BOARDS is false.
"""
from typing import Optional
import enum
import logging

from mcp.types import TextContent

from ado_core.access_control import TeamBoardPolicy, require_project
from ado_core.client import AzureDevOpsClient
from ado_core.config import Settings
from ado_core.errors import AzureDevOpsValidationError, UnknownOperation, WorkItemNotFound
from ado_core.models import FIELD_AREA_PATH
from ado_core.schemas import (
    CreateWorkItemRequest,
    GetWorkItemRequest,
    ListWorkItemsRequest,
    ManageWorkItemLinkRequest,
    UpdateWorkItemRequest,
)
from ado_core.wiql import build_allowed_teams_query

from . import formatters

logger = logging.getLogger("ado-mcp.handlers")


class WorkItemOperation(str, enum.Enum):
    """Tool names handled by this module."""

    LIST = "list_work_items"
    GET = "get_work_item"
    CREATE = "create_work_item"
    UPDATE = "update_work_item"
    LINK = "manage_work_item_link"


# ============================================================================
# Work Item Handlers
# ============================================================================


async def handle_list_work_items(
    arguments: dict,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """List work items.

    With restrictions enabled the query is always built here:
    - team_id given: that team must be allowed, and the query covers its area
    - no team_id: every allowed team is resolved (all unknown names reported
      at once) and the query covers the union of their areas
    """
    args = ListWorkItemsRequest.model_validate(arguments)
    project_id = require_project(args.project_id or settings.default_project, "list_work_items")

    if policy is None:
        items = await client.query_work_items(
            project_id,
            wiql=args.wiql,
            query_id=args.query_id,
            team_id=args.team_id,
            top=args.top,
            skip=args.skip,
        )
    else:
        if args.wiql or args.query_id:
            raise AzureDevOpsValidationError(
                "Custom WIQL and saved queries are not available while team board restrictions are enabled. "
                "Use team_id to narrow the listing to one allowed team board."
            )

        if args.team_id:
            team_name = await policy.check_team_access(project_id, args.team_id)
            teams = {team_name: args.team_id}
        else:
            teams = await policy.resolver.resolve_allowed_team_ids(project_id, policy.require_allow_list())

        wiql = build_allowed_teams_query(project_id, teams)
        logger.debug(f"Scoped listing query: {wiql}")
        items = await client.query_work_items(
            project_id,
            wiql=wiql,
            team_id=args.team_id,
            top=args.top,
            skip=args.skip,
        )

    logger.info(f"Successfully listed {len(items)} work items in project '{project_id}'")
    if not items:
        return [TextContent(type="text", text="No work items found matching criteria.")]

    items_text = "\n".join([formatters.format_work_item_summary(item) for item in items])
    return [TextContent(type="text", text=f"Found {len(items)} work items\n\n{items_text}")]


async def handle_get_work_item(
    arguments: dict,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Get a work item; with restrictions it is only returned after the team check."""
    args = GetWorkItemRequest.model_validate(arguments)

    if policy is not None:
        work_item = await policy.fetch_and_check_work_item(
            settings.default_project, args.work_item_id, expand=args.expand
        )
    else:
        work_item = await client.get_work_item(args.work_item_id, expand=args.expand)
        if work_item is None:
            raise WorkItemNotFound(args.work_item_id)

    logger.info(f"Successfully retrieved work item {args.work_item_id}: {work_item.title}")
    return [TextContent(type="text", text=formatters.format_work_item(work_item))]


async def handle_create_work_item(
    arguments: dict,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Create a work item, defaulting or checking its area path under restrictions."""
    args = CreateWorkItemRequest.model_validate(arguments)
    project_id = require_project(args.project_id or settings.default_project, "create_work_item")
    fields = args.to_fields()

    if policy is not None:
        # additional_fields may carry the area path too; check the merged payload
        if policy.check_field_changes(project_id, fields) is None:
            fields[FIELD_AREA_PATH] = policy.default_area_path(project_id)

    result = await client.create_work_item(project_id, args.work_item_type, fields, args.to_relations())
    logger.info(f"Successfully created work item #{result.id} in project '{project_id}'")

    text = (f"Created work item #{result.id}\n"
            f"Type: {args.work_item_type}\n"
            f"Area Path: {result.area_path or fields.get(FIELD_AREA_PATH, 'project default')}\n\n"
            f"Full details:\n{formatters.format_work_item(result)}")
    return [TextContent(type="text", text=text)]


async def handle_update_work_item(
    arguments: dict,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Update a work item once it (and any new area path) passes the team check."""
    args = UpdateWorkItemRequest.model_validate(arguments)
    project_id = args.project_id or settings.default_project
    fields = args.to_fields()

    if policy is not None:
        current = await policy.fetch_and_check_work_item(project_id, args.work_item_id)
        policy.check_field_changes(current.team_project or project_id or "", fields)

    result = await client.update_work_item(args.work_item_id, fields, args.to_relations())
    logger.info(f"Successfully updated work item #{args.work_item_id}")

    return [TextContent(type="text", text=f"Updated work item:\n{formatters.format_work_item(result)}")]


async def handle_manage_work_item_link(
    arguments: dict,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Add, remove or retype a link. Both ends are checked before anything changes."""
    args = ManageWorkItemLinkRequest.model_validate(arguments)
    project_id = args.project_id or settings.default_project

    if policy is not None:
        await policy.fetch_and_check_work_item(project_id, args.source_work_item_id)
        await policy.fetch_and_check_work_item(project_id, args.target_work_item_id)

    result = await client.link_work_items(
        args.source_work_item_id,
        args.target_work_item_id,
        args.relation_type,
        args.operation,
        new_relation_type=args.new_relation_type,
        comment=args.comment,
    )
    logger.info(
        f"Successfully applied link operation '{args.operation.value}' "
        f"from #{args.source_work_item_id} to #{args.target_work_item_id}"
    )

    text = (f"Link {args.operation.value}: #{args.source_work_item_id} -> #{args.target_work_item_id} "
            f"({args.new_relation_type or args.relation_type})\n\n"
            f"{formatters.format_work_item(result)}")
    return [TextContent(type="text", text=text)]


HANDLERS = {
    WorkItemOperation.LIST: handle_list_work_items,
    WorkItemOperation.GET: handle_get_work_item,
    WorkItemOperation.CREATE: handle_create_work_item,
    WorkItemOperation.UPDATE: handle_update_work_item,
    WorkItemOperation.LINK: handle_manage_work_item_link,
}


async def dispatch(
    name: str,
    arguments: Optional[dict],
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Route a tool call to its handler.

    With a policy, every operation first requires a configured allow-list.
    """
    try:
        operation = WorkItemOperation(name)
    except ValueError:
        logger.warning(f"Unknown tool requested: {name}")
        raise UnknownOperation(name) from None

    if policy is not None:
        policy.require_allow_list()

    handler = HANDLERS[operation]
    return await handler(dict(arguments or {}), client, policy, settings)
