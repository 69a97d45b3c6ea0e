"""Shared fixtures: an in-memory stand-in for the Azure DevOps client."""
from typing import Optional

import pytest

from ado_core.access_control import TeamBoardPolicy
from ado_core.config import Settings
from ado_core.errors import UpstreamFailure
from ado_core.models import Team, WorkItem
from ado_core.team_resolver import TeamResolver

PROJECT = "ProjectX"
ALPHA_ID = "11111111-aaaa-aaaa-aaaa-111111111111"
BETA_ID = "22222222-bbbb-bbbb-bbbb-222222222222"
GAMMA_ID = "33333333-cccc-cccc-cccc-333333333333"


def make_work_item(work_item_id: int, team_id: Optional[str] = None, area_path: Optional[str] = None,
                   title: str = "Sample", project: Optional[str] = PROJECT) -> WorkItem:
    fields = {"System.Id": work_item_id, "System.Title": title, "System.State": "Active",
              "System.WorkItemType": "Task"}
    if team_id is not None:
        fields["System.TeamId"] = team_id
    if area_path is not None:
        fields["System.AreaPath"] = area_path
    if project is not None:
        fields["System.TeamProject"] = project
    return WorkItem(id=work_item_id, rev=1, fields=fields)


class FakeWorkTrackingClient:
    """Records every call; serves teams and work items from memory."""

    def __init__(self):
        self.teams: dict[str, list[Team]] = {
            PROJECT: [
                Team(id=ALPHA_ID, name="Team Alpha"),
                Team(id=BETA_ID, name="Team Beta"),
                Team(id=GAMMA_ID, name="Team Gamma"),
            ]
        }
        self.work_items: dict[int, WorkItem] = {}
        self.query_results: list[WorkItem] = []
        self.fail_teams_with: Optional[Exception] = None
        self.calls: list[tuple] = []

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def calls_to(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    async def list_teams(self, project_id):
        self.calls.append(("list_teams", project_id))
        if self.fail_teams_with is not None:
            raise self.fail_teams_with
        return list(self.teams.get(project_id, []))

    async def get_work_item(self, work_item_id, expand=None):
        self.calls.append(("get_work_item", work_item_id, expand))
        return self.work_items.get(work_item_id)

    async def query_work_items(self, project_id, wiql=None, query_id=None, team_id=None, top=200, skip=0):
        self.calls.append(("query_work_items", project_id, wiql, query_id, team_id, top, skip))
        return list(self.query_results)

    async def create_work_item(self, project_id, work_item_type, fields, relations=None):
        self.calls.append(("create_work_item", project_id, work_item_type, dict(fields), relations))
        return WorkItem(id=1000, rev=1, fields={**fields, "System.WorkItemType": work_item_type})

    async def update_work_item(self, work_item_id, fields, relations=None):
        self.calls.append(("update_work_item", work_item_id, dict(fields), relations))
        current = self.work_items.get(work_item_id) or WorkItem(id=work_item_id)
        return WorkItem(id=work_item_id, rev=(current.rev or 0) + 1, fields={**current.fields, **fields})

    async def link_work_items(self, source_id, target_id, relation_type, operation,
                              new_relation_type=None, comment=None):
        self.calls.append(("link_work_items", source_id, target_id, relation_type, operation,
                           new_relation_type, comment))
        return self.work_items.get(source_id) or WorkItem(id=source_id)


@pytest.fixture
def fake_client():
    return FakeWorkTrackingClient()


@pytest.fixture
def make_policy(fake_client):
    """Build a policy with a fresh resolver and cache for each test."""

    def _make(allowed_team_boards: Optional[str]) -> TeamBoardPolicy:
        return TeamBoardPolicy(allowed_team_boards, TeamResolver(fake_client))

    return _make


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        organization_url="https://dev.azure.com/contoso",
        personal_access_token="secret-pat",
        default_project=PROJECT,
    )


@pytest.fixture
def upstream_error():
    return UpstreamFailure("Azure DevOps API error (503): Service Unavailable", status_code=503)
