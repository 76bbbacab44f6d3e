"""Attachment relocation from Jira to GitLab."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests
from gitlab.exceptions import GitlabError

from .models import AttachmentRef, StoredBlob

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gitlab.v4.objects import Project as GitlabProject

    from .protocols import BlobTransport

logger: logging.Logger = logging.getLogger(__name__)


class AttachmentRelocator:
    """Copies the attachments of one Jira issue to the GitLab project.

    Attachments are processed one after the other. A failing download or
    upload only drops that attachment from the returned reference table.
    """

    _transport: BlobTransport
    _simulation: bool

    def __init__(self, transport: BlobTransport, *, simulation: bool = False) -> None:
        self._transport = transport
        self._simulation = simulation

    def relocate(self, attachments: Iterable[dict[str, Any]] | None, context: str = "") -> list[AttachmentRef]:
        """Download and re-upload the given Jira attachment records.

        Args:
            attachments: Raw Jira attachment objects (``fields.attachment``), each
                with a ``filename`` and a ``content`` URL
            context: Context for log messages (e.g., "PROJ-5")

        Returns:
            One AttachmentRef per successfully relocated attachment
        """
        refs: list[AttachmentRef] = []
        ctx = f" for {context}" if context else ""

        for attachment in attachments or []:
            filename = attachment.get("filename")
            source_url = attachment.get("content")
            if not filename or not source_url:
                logger.warning(f"Skipping attachment without filename or content URL{ctx}: {attachment.get('id')}")
                continue

            if self._simulation:
                logger.info(f"Would relocate attachment {filename}{ctx}")
                continue

            try:
                content = self._transport.fetch(source_url)
            except (requests.RequestException, OSError) as e:
                logger.warning(f"Failed to download attachment {filename}{ctx}: {e}")
                continue

            if not content:
                logger.warning(f"Skipping empty attachment {filename}{ctx}")
                continue

            try:
                stored = self._transport.store(filename, content)
            except (GitlabError, requests.RequestException, OSError) as e:
                logger.warning(f"Failed to upload attachment {filename}{ctx}: {e}")
                continue

            refs.append(AttachmentRef(source_name=filename, target_markdown_link=stored.markdown))
            logger.debug(f"Relocated attachment {filename}{ctx}: {stored.markdown}")

        return refs


class JiraGitlabTransport:
    """BlobTransport downloading from Jira over HTTP and uploading to the GitLab project.

    ``timeout`` bounds each download and upload; None waits indefinitely.
    """

    _session: requests.Session
    _gitlab_project: GitlabProject
    _timeout: float | None

    def __init__(self, session: requests.Session, gitlab_project: GitlabProject, timeout: float | None = 60) -> None:
        self._session = session
        self._gitlab_project = gitlab_project
        self._timeout = timeout

    def fetch(self, source_ref: str) -> bytes:
        response = self._session.get(source_ref, timeout=self._timeout)
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "unknown")
        logger.debug(f"Downloaded {source_ref}: {len(response.content)} bytes, Content-Type: {content_type}")
        return response.content

    def store(self, filename: str, content: bytes) -> StoredBlob:
        # Returns {"alt", "url", "full_path", "markdown"}
        uploaded: dict[str, Any] = self._gitlab_project.upload(filename, filedata=content, timeout=self._timeout)
        return StoredBlob(name=uploaded.get("alt", filename), markdown=uploaded["markdown"])
