"""Tests for API constants."""

import pytest

from helpdesk_ext.restful import Endpoint, Revision, Verb


class TestVerb:
    def test_list_is_get(self) -> None:
        assert Verb.LIST == "GET"
        assert Verb.UPDATE == "PATCH"


class TestEndpoint:
    @pytest.mark.parametrize(
        ("endpoint", "code"),
        [
            (Endpoint.TAGS, "ERR_API_HELPDESK_LIST_TAGS"),
            (Endpoint.AGENTS, "ERR_API_HELPDESK_LIST_STAFF"),
            (Endpoint.MESSAGES, "ERR_API_HELPDESK_LIST_THREAD_ENTRIES"),
        ],
    )
    def test_error_code(self, endpoint: Endpoint, code: str) -> None:
        assert endpoint.error_code == code


class TestRevision:
    def test_prefix(self) -> None:
        assert Revision.V1.prefix == "/api/v1"
        assert Revision.V2.prefix == "/api/v2"

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/api/v1/tickets", Revision.V1),
            ("/api/v2/staff", Revision.V2),
            ("/api/v2", None),
            ("/api/v3/tags", None),
            ("/health", None),
        ],
    )
    def test_for_path(self, path: str, expected: Revision | None) -> None:
        assert Revision.for_path(path) is expected
