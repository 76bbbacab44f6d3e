"""
Tests for attachment relocation.
"""

import logging
from unittest.mock import Mock

import pytest
import requests
from gitlab.exceptions import GitlabUploadError

from jira_to_gitlab_migrator.attachments import AttachmentRelocator, JiraGitlabTransport
from jira_to_gitlab_migrator.models import AttachmentRef, StoredBlob


def _attachment(filename: str) -> dict[str, str]:
    return {"id": filename, "filename": filename, "content": f"https://jira.example.com/attachment/{filename}"}


def _stored(filename: str, content: bytes) -> StoredBlob:
    return StoredBlob(filename, f"![{filename}](/uploads/hash/{filename})")


@pytest.mark.unit
class TestAttachmentRelocator:
    def setup_method(self) -> None:
        self.transport = Mock()
        self.transport.fetch.return_value = b"data"
        self.transport.store.side_effect = _stored
        self.relocator = AttachmentRelocator(self.transport)

    def test_relocates_all_attachments(self) -> None:
        refs = self.relocator.relocate([_attachment("a.png"), _attachment("b.txt")], context="PROJ-1")

        assert refs == [
            AttachmentRef("a.png", "![a.png](/uploads/hash/a.png)"),
            AttachmentRef("b.txt", "![b.txt](/uploads/hash/b.txt)"),
        ]
        self.transport.fetch.assert_any_call("https://jira.example.com/attachment/a.png")
        self.transport.store.assert_any_call("b.txt", b"data")

    def test_no_attachments(self) -> None:
        assert self.relocator.relocate(None) == []
        assert self.relocator.relocate([]) == []

    def test_failed_download_skips_only_that_attachment(self, caplog: pytest.LogCaptureFixture) -> None:
        self.transport.fetch.side_effect = [requests.ConnectionError("refused"), b"data"]

        with caplog.at_level(logging.WARNING):
            refs = self.relocator.relocate([_attachment("a.png"), _attachment("b.png")], context="PROJ-1")

        assert [ref.source_name for ref in refs] == ["b.png"]
        assert "Failed to download attachment a.png for PROJ-1" in caplog.text

    def test_failed_upload_skips_attachment(self) -> None:
        self.transport.store.side_effect = GitlabUploadError("413 Request Entity Too Large", 413)

        assert self.relocator.relocate([_attachment("big.zip")]) == []

    def test_empty_content_skipped(self) -> None:
        self.transport.fetch.return_value = b""

        assert self.relocator.relocate([_attachment("empty.txt")]) == []
        self.transport.store.assert_not_called()

    def test_incomplete_record_skipped(self) -> None:
        refs = self.relocator.relocate([{"id": "1", "filename": "a.png"}, _attachment("b.png")])

        assert [ref.source_name for ref in refs] == ["b.png"]
        assert self.transport.fetch.call_count == 1

    def test_simulation_transfers_nothing(self) -> None:
        relocator = AttachmentRelocator(self.transport, simulation=True)

        assert relocator.relocate([_attachment("a.png")]) == []
        self.transport.fetch.assert_not_called()
        self.transport.store.assert_not_called()


@pytest.mark.unit
class TestJiraGitlabTransport:
    def setup_method(self) -> None:
        self.session = Mock()
        self.gitlab_project = Mock()
        self.transport = JiraGitlabTransport(self.session, self.gitlab_project, timeout=15)

    def test_fetch(self) -> None:
        response = Mock()
        response.content = b"bytes"
        response.headers = {"Content-Type": "image/png"}
        self.session.get.return_value = response

        assert self.transport.fetch("https://jira.example.com/attachment/1") == b"bytes"
        self.session.get.assert_called_once_with("https://jira.example.com/attachment/1", timeout=15)
        response.raise_for_status.assert_called_once()

    def test_fetch_http_error_propagates(self) -> None:
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        self.session.get.return_value = response

        with pytest.raises(requests.HTTPError):
            _ = self.transport.fetch("https://jira.example.com/attachment/1")

    def test_store(self) -> None:
        self.gitlab_project.upload.return_value = {
            "alt": "a.png",
            "url": "/uploads/hash/a.png",
            "full_path": "/team/app/uploads/hash/a.png",
            "markdown": "![a.png](/uploads/hash/a.png)",
        }

        stored = self.transport.store("a.png", b"bytes")

        assert stored == StoredBlob("a.png", "![a.png](/uploads/hash/a.png)")
        self.gitlab_project.upload.assert_called_once_with("a.png", filedata=b"bytes", timeout=15)

    def test_default_timeout(self) -> None:
        transport = JiraGitlabTransport(self.session, self.gitlab_project)
        self.session.get.return_value = Mock(content=b"x", headers={})

        _ = transport.fetch("https://jira.example.com/attachment/1")

        self.session.get.assert_called_once_with("https://jira.example.com/attachment/1", timeout=60)
