"""Async Azure DevOps REST client for teams and work items.

Every call goes through ``_request``, which adds the API version and the
authorization header and converts httpx failures into the package's error
types:

- 400 -> AzureDevOpsValidationError
- 401/403 -> PermissionDenied
- 404 -> ResourceNotFound
- other statuses, transport errors, bad JSON -> UpstreamFailure
- timeouts -> UpstreamTimeout (retryable)
"""
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import (
    AzureDevOpsValidationError,
    PermissionDenied,
    ResourceNotFound,
    UpstreamFailure,
    UpstreamTimeout,
    WorkItemNotFound,
)
from .models import LinkOperation, RelationType, Team, WorkItem, WorkItemExpand
from .wiql import build_project_query

logger = logging.getLogger("ado-core.client")

TEAMS_PAGE_SIZE = 100
WORK_ITEMS_BATCH_SIZE = 200
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class AzureDevOpsClient:
    """Thin async wrapper over the core and work item tracking REST APIs.

    ``auth`` is any object with an ``authorization_header()`` method.
    """

    def __init__(
        self,
        organization_url: str,
        auth,
        api_version: str = "7.1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not organization_url:
            raise AzureDevOpsValidationError(
                "Azure DevOps organization URL is not configured. Set AZURE_DEVOPS_ORGANIZATION_URL."
            )
        self.organization_url = organization_url.rstrip("/")
        self.api_version = api_version
        self._auth = auth
        self._http = httpx.AsyncClient(
            base_url=self.organization_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, auth, transport: Optional[httpx.AsyncBaseTransport] = None):
        return cls(
            settings.organization_url,
            auth,
            api_version=settings.api_version,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AzureDevOpsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def work_item_url(self, work_item_id: int) -> str:
        return f"{self.organization_url}/_apis/wit/workItems/{work_item_id}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json_body: Any = None,
        content_type: str = "application/json",
    ) -> Any:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query["api-version"] = self.api_version
        headers = {
            "Authorization": self._auth.authorization_header(),
            "Accept": "application/json",
        }
        content = None
        if json_body is not None:
            headers["Content-Type"] = content_type
            content = json.dumps(json_body)

        try:
            response = await self._http.request(method, path, params=query, content=content, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"Timeout during {method} {path}: {e}")
            raise UpstreamTimeout(f"Azure DevOps request timed out: {method} {path}") from e
        except httpx.HTTPStatusError as e:
            raise self._status_error(e) from e
        except httpx.RequestError as e:
            logger.error(f"Request error during {method} {path}: {type(e).__name__}: {e}")
            raise UpstreamFailure(f"Connection to Azure DevOps failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFailure(
                f"Malformed response from Azure DevOps for {method} {path}",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _status_error(error: httpx.HTTPStatusError) -> Exception:
        response = error.response
        status = response.status_code
        try:
            body = response.json()
            message = body.get("message") or response.text
        except ValueError:
            body = None
            message = response.text or str(error)

        logger.error(f"HTTP error {status} during {error.request.method} {error.request.url}: {message}")
        if status == 404:
            return ResourceNotFound(f"Resource not found: {message}")
        if status == 400:
            return AzureDevOpsValidationError(f"Invalid request: {message}", body)
        if status in (401, 403):
            return PermissionDenied(f"Permission denied: {message}")
        return UpstreamFailure(f"Azure DevOps API error ({status}): {message}", status_code=status)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def list_teams(self, project_id: str) -> list[Team]:
        """All teams of a project, following $top/$skip paging."""
        teams: list[Team] = []
        skip = 0
        while True:
            data = await self._request(
                "GET",
                f"/_apis/projects/{_segment(project_id)}/teams",
                params={"$top": TEAMS_PAGE_SIZE, "$skip": skip},
            )
            page = self._values(data, "teams")
            teams.extend(Team.model_validate(team) for team in page)
            if len(page) < TEAMS_PAGE_SIZE:
                break
            skip += TEAMS_PAGE_SIZE
        logger.debug(f"Fetched {len(teams)} teams for project '{project_id}'")
        return teams

    # ------------------------------------------------------------------
    # Work items
    # ------------------------------------------------------------------

    async def get_work_item(
        self,
        work_item_id: int,
        expand: Optional[WorkItemExpand] = None,
    ) -> Optional[WorkItem]:
        """Fetch one work item; None when it does not exist."""
        params = {"$expand": expand.value if expand else None}
        try:
            data = await self._request("GET", f"/_apis/wit/workitems/{int(work_item_id)}", params=params)
        except ResourceNotFound:
            return None
        return WorkItem.model_validate(data)

    async def get_work_items(
        self,
        work_item_ids: list[int],
        expand: Optional[WorkItemExpand] = None,
    ) -> list[WorkItem]:
        """Fetch work items in batches, preserving the order of the IDs."""
        items: list[WorkItem] = []
        for start in range(0, len(work_item_ids), WORK_ITEMS_BATCH_SIZE):
            batch = work_item_ids[start:start + WORK_ITEMS_BATCH_SIZE]
            data = await self._request(
                "GET",
                "/_apis/wit/workitems",
                params={
                    "ids": ",".join(str(i) for i in batch),
                    "$expand": expand.value if expand else None,
                    "errorPolicy": "omit",
                },
            )
            # errorPolicy=omit yields null entries for deleted items
            items.extend(WorkItem.model_validate(item) for item in self._values(data, "work items") if item)
        return items

    async def query_work_items(
        self,
        project_id: str,
        wiql: Optional[str] = None,
        query_id: Optional[str] = None,
        team_id: Optional[str] = None,
        top: int = 200,
        skip: int = 0,
    ) -> list[WorkItem]:
        """Run a WIQL query (inline or saved) and return one page of work items."""
        prefix = f"/{_segment(project_id)}"
        if team_id:
            prefix += f"/{_segment(team_id)}"

        if query_id:
            data = await self._request("GET", f"{prefix}/_apis/wit/wiql/{_segment(query_id)}")
        else:
            data = await self._request(
                "POST",
                f"{prefix}/_apis/wit/wiql",
                params={"$top": skip + top},
                json_body={"query": wiql or build_project_query(project_id)},
            )

        ids = self._query_result_ids(data)
        page = ids[skip:skip + top]
        logger.info(f"WIQL query matched {len(ids)} work items, returning {len(page)}")
        if not page:
            return []
        return await self.get_work_items(page)

    async def create_work_item(
        self,
        project_id: str,
        work_item_type: str,
        fields: dict[str, Any],
        relations: Optional[list[tuple[RelationType, int]]] = None,
    ) -> WorkItem:
        operations = self._field_operations(fields) + self._relation_operations(relations)
        data = await self._request(
            "POST",
            f"/{_segment(project_id)}/_apis/wit/workitems/${_segment(work_item_type)}",
            json_body=operations,
            content_type=JSON_PATCH_CONTENT_TYPE,
        )
        return WorkItem.model_validate(data)

    async def update_work_item(
        self,
        work_item_id: int,
        fields: dict[str, Any],
        relations: Optional[list[tuple[RelationType, int]]] = None,
    ) -> WorkItem:
        operations = self._field_operations(fields) + self._relation_operations(relations)
        if not operations:
            raise AzureDevOpsValidationError(f"No fields to update for work item {work_item_id}")
        return await self._patch(work_item_id, operations)

    async def link_work_items(
        self,
        source_id: int,
        target_id: int,
        relation_type: str,
        operation: LinkOperation,
        new_relation_type: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> WorkItem:
        """Add, remove or retype the link from source to target."""
        if operation is LinkOperation.ADD:
            return await self._patch(source_id, [self._add_relation(relation_type, target_id, comment)])

        if operation is LinkOperation.UPDATE and not new_relation_type:
            raise AzureDevOpsValidationError("new_relation_type is required for the update operation")

        source = await self.get_work_item(source_id, expand=WorkItemExpand.RELATIONS)
        if source is None:
            raise WorkItemNotFound(source_id)

        index = self._find_relation(source, relation_type, target_id)
        operations = [
            {"op": "test", "path": "/rev", "value": source.rev},
            {"op": "remove", "path": f"/relations/{index}"},
        ]
        if operation is LinkOperation.UPDATE:
            operations.append(self._add_relation(new_relation_type, target_id, comment))
        return await self._patch(source_id, operations)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _patch(self, work_item_id: int, operations: list[dict]) -> WorkItem:
        data = await self._request(
            "PATCH",
            f"/_apis/wit/workitems/{int(work_item_id)}",
            json_body=operations,
            content_type=JSON_PATCH_CONTENT_TYPE,
        )
        return WorkItem.model_validate(data)

    @staticmethod
    def _values(data: Any, what: str) -> list:
        if not isinstance(data, dict) or not isinstance(data.get("value"), list):
            raise UpstreamFailure(f"Malformed {what} response from Azure DevOps")
        return data["value"]

    @staticmethod
    def _query_result_ids(data: Any) -> list[int]:
        if not isinstance(data, dict):
            raise UpstreamFailure("Malformed WIQL response from Azure DevOps")
        if "workItems" in data:
            return [item["id"] for item in data["workItems"]]
        # Link queries return relations; keep each target once
        ids: list[int] = []
        for relation in data.get("workItemRelations", []):
            target = relation.get("target") or {}
            if "id" in target and target["id"] not in ids:
                ids.append(target["id"])
        return ids

    @staticmethod
    def _field_operations(fields: dict[str, Any]) -> list[dict]:
        return [
            {"op": "add", "path": f"/fields/{name}", "value": value}
            for name, value in fields.items()
            if value is not None
        ]

    def _relation_operations(self, relations: Optional[list[tuple[RelationType, int]]]) -> list[dict]:
        return [self._add_relation(rel.value, target_id) for rel, target_id in relations or []]

    def _add_relation(self, relation_type: str, target_id: int, comment: Optional[str] = None) -> dict:
        value: dict[str, Any] = {"rel": relation_type, "url": self.work_item_url(target_id)}
        if comment:
            value["attributes"] = {"comment": comment}
        return {"op": "add", "path": "/relations/-", "value": value}

    @staticmethod
    def _find_relation(source: WorkItem, relation_type: str, target_id: int) -> int:
        suffix = f"/workitems/{target_id}"
        for index, relation in enumerate(source.relations or []):
            if relation.get("rel") == relation_type and str(relation.get("url", "")).lower().endswith(suffix):
                return index
        raise AzureDevOpsValidationError(
            f"No '{relation_type}' link found from work item {source.id} to work item {target_id}"
        )
