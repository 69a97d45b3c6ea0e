"""Tests for WIQL built from the allowed team boards."""
import pytest

from ado_core.errors import ConfigurationDenied
from ado_core.wiql import (
    build_allowed_teams_query,
    build_area_path_conditions,
    build_project_query,
    quote_wiql,
)


class TestAllowedTeamsQuery:
    """Test scoping a listing to the allowed teams."""

    def test_two_teams(self):
        query = build_allowed_teams_query("X", {"Alpha": "id-a", "Beta": "id-b"})
        assert query == (
            "SELECT [System.Id] FROM WorkItems "
            "WHERE [System.TeamProject] = 'X' "
            "AND ([System.AreaPath] UNDER 'X\\Alpha' OR [System.AreaPath] UNDER 'X\\Beta') "
            "ORDER BY [System.Id]"
        )

    def test_single_team(self):
        query = build_allowed_teams_query("X", {"Alpha": "id-a"})
        assert "AND ([System.AreaPath] UNDER 'X\\Alpha') " in query

    def test_clause_order_follows_mapping(self):
        """Same input order, same query; reversed input, reversed clauses."""
        forward = build_area_path_conditions("X", {"Alpha": "1", "Beta": "2"})
        backward = build_area_path_conditions("X", {"Beta": "2", "Alpha": "1"})

        assert forward == build_area_path_conditions("X", {"Alpha": "1", "Beta": "2"})
        assert backward == list(reversed(forward))

    def test_no_teams_never_builds_unscoped_query(self):
        with pytest.raises(ConfigurationDenied):
            build_allowed_teams_query("X", {})

    def test_quotes_are_escaped(self):
        query = build_allowed_teams_query("O'Brien Co", {"Ops' Team": "1"})
        assert "[System.TeamProject] = 'O''Brien Co'" in query
        assert "UNDER 'O''Brien Co\\Ops'' Team'" in query


def test_quote_wiql():
    assert quote_wiql("plain") == "'plain'"
    assert quote_wiql("it's") == "'it''s'"


def test_project_query():
    assert build_project_query("X") == (
        "SELECT [System.Id] FROM WorkItems WHERE [System.TeamProject] = 'X' ORDER BY [System.Id]"
    )
