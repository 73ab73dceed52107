"""Helpdesk RESTful API constants: verbs, endpoints, revisions."""

from __future__ import annotations

from enum import StrEnum


class Verb(StrEnum):
    """HTTP verbs used by the helpdesk API."""

    LIST = "GET"
    READ = "GET"
    CREATE = "POST"
    UPDATE = "PATCH"
    DELETE = "DELETE"


class Endpoint(StrEnum):
    """Collection endpoints, relative to the revision root."""

    TICKETS = "tickets"
    MESSAGES = "thread-entries"
    DEPARTMENTS = "departments"
    TOPICS = "topics"
    TAGS = "tags"
    AGENTS = "staff"
    USERS = "users"
    AGREEMENTS = "agreements"
    TEAMS = "teams"

    @property
    def error_code(self) -> str:
        """Error prefix for list failures, e.g. ``ERR_API_HELPDESK_LIST_TAGS``."""
        return "ERR_API_HELPDESK_LIST_" + self.value.upper().replace("-", "_")


class Revision(StrEnum):
    """Available API revisions, each with its own auth scheme."""

    V1 = "v1"
    V2 = "v2"

    @property
    def prefix(self) -> str:
        """API root path, e.g. ``/api/v2``."""
        return f"/api/{self.value}"

    @classmethod
    def for_path(cls, path: str) -> Revision | None:
        """Revision whose API root prefixes ``path``, or None."""
        for revision in cls:
            if path.startswith(f"{revision.prefix}/"):
                return revision
        return None
