"""Azure DevOps work-item core: configuration, REST client and team-board policy."""

__version__ = "1.0.0"
