"""Tests for the team-board access policy."""
import asyncio

import pytest

from ado_core.errors import (
    AccessDenied,
    AmbiguousCreation,
    AzureDevOpsValidationError,
    ConfigurationDenied,
    IndeterminateIdentity,
    TeamNotFound,
    UpstreamFailure,
    WorkItemNotFound,
)
from ado_core.models import Decision, WorkItemExpand

from conftest import ALPHA_ID, BETA_ID, PROJECT, make_work_item


def run_async(coro):
    """Helper to run async coroutine in sync test."""
    return asyncio.run(coro)


class TestConfigurationDenied:
    """With no allow-list every check fails closed."""

    @pytest.mark.parametrize("raw", [None, "", "  ", ",,"])
    def test_require_allow_list(self, make_policy, raw):
        with pytest.raises(ConfigurationDenied) as exc_info:
            make_policy(raw).require_allow_list()
        assert "AZURE_DEVOPS_ALLOWED_TEAM_BOARDS" in str(exc_info.value)

    @pytest.mark.parametrize("raw", [None, ""])
    def test_work_item_denied_whatever_its_team(self, make_policy, fake_client, raw):
        policy = make_policy(raw)
        for work_item in (
            make_work_item(1, team_id=ALPHA_ID),
            make_work_item(2, area_path="ProjectX\\Team Alpha"),
            make_work_item(3),
        ):
            with pytest.raises(ConfigurationDenied):
                run_async(policy.check_work_item_access(PROJECT, work_item))
        # Denied before any lookup
        assert fake_client.count("list_teams") == 0

    def test_team_access_denied(self, make_policy):
        with pytest.raises(ConfigurationDenied):
            run_async(make_policy(None).check_team_access(PROJECT, ALPHA_ID))
        with pytest.raises(ConfigurationDenied):
            run_async(make_policy(None).check_team_access(PROJECT))

    def test_creation_denied(self, make_policy):
        with pytest.raises(ConfigurationDenied) as exc_info:
            make_policy(None).default_area_path(PROJECT)
        assert "work item creation" in str(exc_info.value)

    def test_area_path_denied(self, make_policy):
        with pytest.raises(ConfigurationDenied):
            make_policy(None).check_area_path_access(PROJECT, "ProjectX\\Team Alpha")

    def test_validation_class(self):
        assert issubclass(ConfigurationDenied, AzureDevOpsValidationError)


class TestWorkItemByTeamId:
    """System.TeamId is the authoritative team affiliation."""

    def test_allowed_team(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id=ALPHA_ID)
        assert run_async(policy.check_work_item_access(PROJECT, work_item)) == "Team Alpha"

    @pytest.mark.parametrize("configured", ["team alpha", "TEAM ALPHA", "Team Alpha", "tEaM aLpHa"])
    def test_configured_case_does_not_matter(self, make_policy, configured):
        policy = make_policy(configured)
        work_item = make_work_item(1, team_id=ALPHA_ID)
        assert run_async(policy.decide_work_item(PROJECT, work_item)).allowed

    def test_team_id_wins_over_area_path(self, make_policy):
        """An allowed-looking area path does not rescue a foreign team ID."""
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id=BETA_ID, area_path="ProjectX\\Team Alpha")

        with pytest.raises(AccessDenied) as exc_info:
            run_async(policy.check_work_item_access(PROJECT, work_item))
        assert exc_info.value.team_name == "Team Beta"

    def test_not_allowed_team(self, make_policy):
        policy = make_policy("Team Alpha, Team Gamma")
        work_item = make_work_item(7, team_id=BETA_ID)

        with pytest.raises(AccessDenied) as exc_info:
            run_async(policy.check_work_item_access(PROJECT, work_item))

        error = exc_info.value
        assert error.team_name == "Team Beta"
        assert error.allowed_teams == ["Team Alpha", "Team Gamma"]
        message = str(error)
        assert "#7" in message
        assert "'Team Beta'" in message
        assert "Allowed teams: Team Alpha, Team Gamma" in message
        assert "AZURE_DEVOPS_ALLOWED_TEAM_BOARDS" in message

    def test_unknown_team_id_is_not_found_not_denied(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id="ghost-team")

        with pytest.raises(TeamNotFound) as exc_info:
            run_async(policy.check_work_item_access(PROJECT, work_item))
        assert "Team ID 'ghost-team' not found in project 'ProjectX'" in str(exc_info.value)
        assert not isinstance(exc_info.value, AccessDenied)

    def test_project_falls_back_to_work_item(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id=ALPHA_ID, project=PROJECT)
        assert run_async(policy.check_work_item_access(None, work_item)) == "Team Alpha"

    def test_team_id_without_any_project_is_indeterminate(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id=ALPHA_ID, project=None)
        with pytest.raises(IndeterminateIdentity):
            run_async(policy.check_work_item_access(None, work_item))

    def test_upstream_failure_is_not_a_decision(self, make_policy, fake_client, upstream_error):
        """A failed team fetch raises; it is neither ALLOW nor DENY."""
        fake_client.fail_teams_with = upstream_error
        policy = make_policy("Team Alpha")
        work_item = make_work_item(1, team_id=ALPHA_ID)

        with pytest.raises(UpstreamFailure):
            run_async(policy.decide_work_item(PROJECT, work_item))


class TestWorkItemByAreaPath:
    """Without a team ID the area path decides."""

    def test_allowed_area(self, make_policy):
        policy = make_policy("TeamAlpha")
        work_item = make_work_item(1, area_path="ProjectX\\TeamAlpha\\SubArea")
        assert run_async(policy.check_work_item_access(PROJECT, work_item)) == "TeamAlpha"

    def test_area_path_needs_no_lookup(self, make_policy, fake_client):
        policy = make_policy("TeamAlpha")
        run_async(policy.check_work_item_access(PROJECT, make_work_item(1, area_path="ProjectX\\TeamAlpha")))
        assert fake_client.count("list_teams") == 0

    def test_foreign_area(self, make_policy):
        policy = make_policy("TeamAlpha")
        work_item = make_work_item(1, area_path="ProjectX\\TeamBeta")
        with pytest.raises(AccessDenied):
            run_async(policy.check_work_item_access(PROJECT, work_item))

    def test_project_root_area_is_indeterminate(self, make_policy):
        policy = make_policy("TeamAlpha")
        work_item = make_work_item(4, area_path="ProjectX")

        decision = run_async(policy.decide_work_item(PROJECT, work_item))
        assert decision.decision is Decision.DENY
        assert "Could not extract team name" in decision.reason

        with pytest.raises(IndeterminateIdentity) as exc_info:
            run_async(policy.check_work_item_access(PROJECT, work_item))
        assert exc_info.value.work_item_id == 4

    def test_project_prefix_is_case_insensitive(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(6, area_path="ProjectX\\Team Alpha\\Sub", project=None)
        assert run_async(policy.check_work_item_access("projectx", work_item)) == "Team Alpha"

    def test_work_item_project_decides_prefix(self, make_policy):
        """The item's own project is stripped, not the one the caller passed."""
        policy = make_policy("Team Alpha")
        work_item = make_work_item(7, area_path="ProjectX\\Team Alpha", project="ProjectX")
        assert run_async(policy.check_work_item_access("Other Project", work_item)) == "Team Alpha"

    def test_project_name_is_never_taken_as_team(self, make_policy):
        policy = make_policy("Team Alpha")
        work_item = make_work_item(8, area_path="PROJECTX\\Team Beta", project="ProjectX")
        with pytest.raises(AccessDenied) as exc_info:
            run_async(policy.check_work_item_access("projectx", work_item))
        assert exc_info.value.team_name == "Team Beta"

    def test_no_team_and_no_area_path(self, make_policy):
        policy = make_policy("TeamAlpha")
        with pytest.raises(IndeterminateIdentity) as exc_info:
            run_async(policy.check_work_item_access(PROJECT, make_work_item(5)))
        assert "does not have an associated team or area path" in str(exc_info.value)


class TestDecideWorkItem:
    """Test the non-raising decision view."""

    def test_allow(self, make_policy):
        decision = run_async(make_policy("Team Alpha").decide_work_item(PROJECT, make_work_item(1, team_id=ALPHA_ID)))
        assert decision.allowed
        assert decision.team_name == "Team Alpha"
        assert decision.reason is None

    def test_deny_carries_team(self, make_policy):
        decision = run_async(make_policy("Team Alpha").decide_work_item(PROJECT, make_work_item(1, team_id=BETA_ID)))
        assert not decision.allowed
        assert decision.team_name == "Team Beta"
        assert "not in the allowed list" in decision.reason

    def test_deny_without_configuration(self, make_policy):
        decision = run_async(make_policy(None).decide_work_item(PROJECT, make_work_item(1, team_id=ALPHA_ID)))
        assert decision.decision is Decision.DENY


class TestTeamAccess:
    """Test the guard used for team-scoped listings."""

    def test_allowed_team_id(self, make_policy):
        assert run_async(make_policy("team beta").check_team_access(PROJECT, BETA_ID)) == "Team Beta"

    def test_no_team_id_only_needs_allow_list(self, make_policy, fake_client):
        assert run_async(make_policy("Team Alpha").check_team_access(PROJECT)) is None
        assert fake_client.count("list_teams") == 0

    def test_foreign_team_id(self, make_policy):
        with pytest.raises(AccessDenied) as exc_info:
            run_async(make_policy("Team Alpha").check_team_access(PROJECT, BETA_ID))
        assert "Team board 'Team Beta' is not in the allowed list" in str(exc_info.value)

    def test_unknown_team_id(self, make_policy):
        with pytest.raises(TeamNotFound):
            run_async(make_policy("Team Alpha").check_team_access(PROJECT, "ghost"))


class TestFetchAndCheck:
    """Test fetch-then-validate for single work items."""

    def test_returns_allowed_item(self, make_policy, fake_client):
        fake_client.work_items[10] = make_work_item(10, team_id=ALPHA_ID)

        work_item = run_async(make_policy("Team Alpha").fetch_and_check_work_item(PROJECT, 10))

        assert work_item.id == 10
        assert fake_client.calls_to("get_work_item") == [("get_work_item", 10, WorkItemExpand.ALL)]

    def test_requested_expand_level(self, make_policy, fake_client):
        fake_client.work_items[10] = make_work_item(10, team_id=ALPHA_ID)

        run_async(make_policy("Team Alpha").fetch_and_check_work_item(PROJECT, 10, expand=WorkItemExpand.RELATIONS))

        assert fake_client.calls_to("get_work_item") == [("get_work_item", 10, WorkItemExpand.RELATIONS)]

    def test_missing_item(self, make_policy):
        with pytest.raises(WorkItemNotFound) as exc_info:
            run_async(make_policy("Team Alpha").fetch_and_check_work_item(PROJECT, 404))
        assert "Work item '404' not found" in str(exc_info.value)

    def test_denied_item_is_not_returned(self, make_policy, fake_client):
        fake_client.work_items[11] = make_work_item(11, team_id=BETA_ID, title="Secret roadmap")

        with pytest.raises(AccessDenied) as exc_info:
            run_async(make_policy("Team Alpha").fetch_and_check_work_item(PROJECT, 11))
        assert "Secret roadmap" not in str(exc_info.value)


class TestCreationAreaPath:
    """Test area path defaults and checks for new work items."""

    def test_single_team_auto_fills(self, make_policy):
        assert make_policy("Team Alpha").default_area_path(PROJECT) == "ProjectX\\Team Alpha"

    def test_multiple_teams_is_ambiguous(self, make_policy):
        with pytest.raises(AmbiguousCreation) as exc_info:
            make_policy("Team Alpha,Team Beta").default_area_path(PROJECT)

        error = exc_info.value
        assert error.allowed_teams == ["Team Alpha", "Team Beta"]
        assert "Team Alpha, Team Beta" in str(error)
        assert "ProjectX\\Team Alpha" in str(error)

    def test_explicit_allowed_area_path(self, make_policy):
        policy = make_policy("Team Alpha,Team Beta")
        assert policy.check_area_path_access(PROJECT, "ProjectX\\team beta\\Ops") == "team beta"

    def test_explicit_foreign_area_path(self, make_policy):
        with pytest.raises(AccessDenied):
            make_policy("Team Alpha").check_area_path_access(PROJECT, "ProjectX\\Team Gamma")

    def test_explicit_project_root_area_path(self, make_policy):
        with pytest.raises(IndeterminateIdentity):
            make_policy("Team Alpha").check_area_path_access(PROJECT, "ProjectX")


class TestFieldChanges:
    """Ownership fields in a write payload are checked wherever they come from."""

    def test_no_area_path(self, make_policy):
        assert make_policy("Team Alpha").check_field_changes(PROJECT, {"System.Title": "x"}) is None

    def test_allowed_area_path(self, make_policy):
        fields = {"System.AreaPath": "ProjectX\\Team Alpha\\Docs"}
        assert make_policy("Team Alpha").check_field_changes(PROJECT, fields) == "ProjectX\\Team Alpha\\Docs"

    @pytest.mark.parametrize("name", ["System.AreaPath", "system.areapath", "SYSTEM.AREAPATH"])
    def test_foreign_area_path_under_any_spelling(self, make_policy, name):
        with pytest.raises(AccessDenied):
            make_policy("Team Alpha").check_field_changes(PROJECT, {name: "ProjectX\\Team Gamma"})

    @pytest.mark.parametrize("name", ["System.TeamProject", "System.TeamId", "system.teamproject"])
    def test_team_and_project_cannot_be_set(self, make_policy, name):
        with pytest.raises(AzureDevOpsValidationError) as exc_info:
            make_policy("Team Alpha").check_field_changes(PROJECT, {name: "Elsewhere"})
        assert "not allowed while team board restrictions are enabled" in str(exc_info.value)

    def test_non_string_area_path(self, make_policy):
        with pytest.raises(AzureDevOpsValidationError):
            make_policy("Team Alpha").check_field_changes(PROJECT, {"System.AreaPath": ["ProjectX\\Team Alpha"]})

    def test_requires_allow_list(self, make_policy):
        with pytest.raises(ConfigurationDenied):
            make_policy(None).check_field_changes(PROJECT, {})
