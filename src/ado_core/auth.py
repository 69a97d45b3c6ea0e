"""Authorization header providers for the Azure DevOps REST client.

Credentials are supplied ready-made; nothing here mints or refreshes tokens.
"""
import base64
from typing import Optional


class PatAuthProvider:
    """HTTP Basic authorization from a Personal Access Token."""

    def __init__(self, personal_access_token: Optional[str]):
        if not personal_access_token:
            raise ValueError("A personal access token is required for PAT authentication")
        self._token = personal_access_token

    def authorization_header(self) -> str:
        encoded = base64.b64encode(f":{self._token}".encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"

    def __repr__(self) -> str:
        return "PatAuthProvider(token=***)"
