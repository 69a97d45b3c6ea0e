"""Parsing and membership checks for the allowed team boards setting."""
import logging
from typing import Optional

logger = logging.getLogger("ado-core.allow_list")


def parse_allowed_team_boards(allowed_team_boards: Optional[str]) -> Optional[list[str]]:
    """Split the comma-separated setting into trimmed team names.

    Returns None when the setting is absent or blank. That is not an error:
    it means no board is accessible.
    """
    if not allowed_team_boards or not allowed_team_boards.strip():
        return None
    teams = [team.strip() for team in allowed_team_boards.split(",")]
    teams = [team for team in teams if team]
    logger.debug(f"Parsed allowed team boards: {teams}")
    return teams


def is_team_allowed(allowed_teams: Optional[list[str]], team_name: str) -> bool:
    """Case-insensitive membership test; an empty allow-list allows nothing."""
    if not allowed_teams:
        return False
    wanted = team_name.casefold()
    return any(team.casefold() == wanted for team in allowed_teams)
