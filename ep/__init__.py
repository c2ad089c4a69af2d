"""Emergency patch tooling for GitLab release branches."""

__version__ = "0.1.0"
