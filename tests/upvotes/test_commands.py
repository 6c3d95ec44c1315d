"""Tests for the run and ids commands."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from ghupvotes.config import UpvotesConfig
from ghupvotes.upvotes.commands import cmd_ids, cmd_run, resolve_project_ids
from ghupvotes.upvotes.github_api import GitHubClient, NotFoundError
from ghupvotes.upvotes.models import ProjectIds, RateLimit
from ghupvotes.upvotes.rate_limit import RateLimitGovernor

from .helpers import FakeClient, issue, project_item


@pytest.fixture
def config(tmp_path) -> UpvotesConfig:
    return UpvotesConfig(
        token="test-token",
        project_id="PVT_1",
        field_id="PVTF_1",
        field_name="Upvotes",
        page_size=2,
        mutation_delay=0,
        output_path=tmp_path / "github_output",
    )


def patch_client(client):
    """Patch GitHubClient in the commands module to yield ``client``."""
    mock_class = MagicMock()
    mock_class.return_value.__enter__.return_value = client
    return patch("ghupvotes.upvotes.commands.GitHubClient", mock_class)


def pages(count: int) -> list[list[dict]]:
    return [
        [project_item(f"PVTI_{p}{i}", issue(reactions=i + 1)) for i in range(2)]
        for p in range(count)
    ]


class TestResolveProjectIds:
    """Tests for resolve_project_ids()."""

    def test_configured_ids_need_no_lookup(self, config):
        client = MagicMock()

        ids = resolve_project_ids(client, config, RateLimitGovernor())

        assert ids == ProjectIds("PVT_1", "PVTF_1", "Upvotes")
        client.graphql.assert_not_called()
        client.get_project_ids.assert_not_called()

    def test_lookup_by_org_and_number(self):
        config = UpvotesConfig(
            token="t", organization="my-org", project_number=7, field_name="Upvotes"
        )
        client = MagicMock()
        client.get_project_ids.return_value = (
            ProjectIds("PVT_9", "PVTF_9", "Upvotes"),
            RateLimit(remaining=4999, cost=1),
        )
        governor = RateLimitGovernor()

        ids = resolve_project_ids(client, config, governor)

        assert ids == ProjectIds("PVT_9", "PVTF_9", "Upvotes")
        client.get_project_ids.assert_called_once_with("my-org", 7, "Upvotes")
        assert governor.remaining == 4999

    def test_lookup_field_of_known_project(self):
        config = UpvotesConfig(token="t", project_id="PVT_1", field_name="Upvotes")
        client = MagicMock()
        client.get_project_field.return_value = (
            ProjectIds("PVT_1", "PVTF_2", "Upvotes"),
            RateLimit(remaining=100, cost=1),
        )

        ids = resolve_project_ids(client, config, RateLimitGovernor())

        assert ids.field_id == "PVTF_2"
        client.get_project_field.assert_called_once_with("PVT_1", "Upvotes")

    def test_field_name_from_field_id(self):
        config = UpvotesConfig(token="t", project_id="PVT_1", field_id="PVTF_1")
        client = MagicMock()
        client.get_field_name.return_value = ("Votes", RateLimit(remaining=100, cost=1))

        ids = resolve_project_ids(client, config, RateLimitGovernor())

        assert ids == ProjectIds("PVT_1", "PVTF_1", "Votes")
        client.get_project_field.assert_not_called()


class TestCmdRun:
    """Tests for cmd_run()."""

    def test_dry_run(self, config):
        client = FakeClient(pages=pages(2))

        with patch_client(client):
            assert cmd_run(config) == 0

        assert client.updates == []
        assert config.output_path.read_text() == "cursor=\n"

    def test_write(self, config):
        config.write = True
        client = FakeClient(pages=pages(1))

        with patch_client(client):
            assert cmd_run(config) == 0

        assert client.updates == [
            ("PVT_1", "PVTI_00", "PVTF_1", 1),
            ("PVT_1", "PVTI_01", "PVTF_1", 2),
        ]

    def test_concurrent_write(self, config):
        config.write = True
        config.concurrency = 3
        client = FakeClient(pages=pages(3))

        with patch_client(client):
            assert cmd_run(config) == 0

        assert len(client.updates) == 6
        assert client.update_threads == {"upvotes-writer"}

    def test_resumes_from_cursor(self, config):
        config.cursor = "cursor-1"
        client = FakeClient(pages=pages(2))

        with patch_client(client):
            cmd_run(config)

        assert client.page_requests == ["cursor-1"]

    def test_rate_limit_halt_exits_cleanly(self, config):
        config.write = True
        client = FakeClient(pages=pages(4), remaining=17, cost=3)

        with patch_client(client):
            assert cmd_run(config) == 0

        assert config.output_path.read_text() == "cursor=cursor-2\n"

    def test_error_writes_cursor_and_fails(self, config):
        client = FakeClient(pages=pages(3))
        client.fail_page_cursors.add("cursor-1")

        with patch_client(client):
            assert cmd_run(config) == 1

        assert config.output_path.read_text() == "cursor=cursor-1\n"

    def test_malformed_response_writes_cursor_and_fails(self, config):
        config.cursor = "cursor-3"

        with patch.object(httpx.Client, "post") as mock_post:
            mock_post.return_value = httpx.Response(
                200,
                text="<html>oops</html>",
                request=httpx.Request("POST", GitHubClient.GRAPHQL_URL),
            )
            assert cmd_run(config) == 1

        assert config.output_path.read_text() == "cursor=cursor-3\n"

    def test_unresolvable_project(self, config):
        config.field_id = None
        client = MagicMock()
        client.get_project_field.side_effect = NotFoundError("Project not found: PVT_1")

        with patch_client(client):
            assert cmd_run(config) == 1

        assert not config.output_path.exists()


class TestCmdIds:
    def test_prints_ids(self, capsys):
        config = UpvotesConfig(
            token="t", organization="my-org", project_number=7, field_name="Upvotes"
        )
        client = MagicMock()
        client.get_project_ids.return_value = (
            ProjectIds("PVT_9", "PVTF_9", "Upvotes"),
            RateLimit(remaining=4999, cost=1),
        )

        with patch_client(client):
            assert cmd_ids(config) == 0

        out = capsys.readouterr().out
        assert "PROJECT_ID=PVT_9" in out
        assert "FIELD_ID=PVTF_9" in out

    def test_lookup_failure(self):
        config = UpvotesConfig(
            token="t", organization="my-org", project_number=7, field_name="Upvotes"
        )
        client = MagicMock()
        client.get_project_ids.side_effect = NotFoundError("Project #7 not found")

        with patch_client(client):
            assert cmd_ids(config) == 1
