"""WIQL construction for listings scoped to the allowed team boards."""
from .area_path import team_area_path
from .errors import ConfigurationDenied


def quote_wiql(value: str) -> str:
    """Quote a WIQL string literal; single quotes are doubled."""
    return "'" + value.replace("'", "''") + "'"


def build_area_path_conditions(project_id: str, teams: dict[str, str]) -> list[str]:
    """One ``UNDER`` clause per team, in the mapping's iteration order."""
    return [
        f"[System.AreaPath] UNDER {quote_wiql(team_area_path(project_id, team_name))}"
        for team_name in teams
    ]


def build_allowed_teams_query(project_id: str, teams: dict[str, str]) -> str:
    """Query the project's work items that sit under any allowed team's area.

    ``teams`` maps team name to team ID and must already be validated.
    """
    conditions = build_area_path_conditions(project_id, teams)
    if not conditions:
        raise ConfigurationDenied("work item listing")

    return (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = {quote_wiql(project_id)} "
        f"AND ({' OR '.join(conditions)}) "
        "ORDER BY [System.Id]"
    )


def build_project_query(project_id: str) -> str:
    """Default listing query when the caller supplies none."""
    return (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = {quote_wiql(project_id)} "
        "ORDER BY [System.Id]"
    )
