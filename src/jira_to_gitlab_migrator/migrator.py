"""
Issue synchronization from Jira to GitLab.

For each Jira issue, in search order:

1. Inclusion filter (closed issues, creation date threshold)
2. Field mapping into a GitLab issue draft
3. Assignee and author resolution through the user mapping
4. Attachment relocation and markup rewriting of the description
5. Update of the GitLab issue named by the correlation field, or creation
6. On creation only: time log, backlink, attachment summary and comment
   notes, then the GitLab IID is written back to the correlation field
7. Closing the GitLab issue when the Jira issue has a resolution

Pages and issues are processed strictly one after the other. A failure in
one step of one issue is logged and recorded in the statistics; the run goes
on with the next step or issue. Only configuration errors, a missing GitLab
project and failing Jira searches abort the run.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

import requests
from gitlab.exceptions import GitlabError
from jira.exceptions import JIRAError

from .attachments import AttachmentRelocator
from .attributes import MISSING, resolve_attribute
from .exceptions import MigrationError
from .mapping import apply_mapping
from .markup import rewrite_text
from .models import MigrationResult, MigrationStats
from .note_builder import build_attachments_note, build_backlink_note, build_comment_body, build_time_log_note
from .users import IdentityMapper, build_member_roster
from .utils import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from .config import SyncOptions
    from .models import AttachmentRef, TargetDraft
    from .protocols import BlobTransport, SourceTracker, TargetTracker

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

CORRELATION_FIELD_DESCRIPTION = "Custom field for keeping track of already synced issues"

# Errors from either tracker that only affect the current issue
_TRACKER_ERRORS = (GitlabError, JIRAError, requests.RequestException)


class IssueOutcome(Enum):
    SKIPPED = "skipped"
    SIMULATED = "simulated"
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


def _is_set(value: Any) -> bool:  # noqa: ANN401
    return value is not MISSING and value is not None and value != ""


class JiraToGitlabMigrator:
    """Migrates the issues of one Jira project into one GitLab project."""

    _options: SyncOptions
    _source: SourceTracker
    _target: TargetTracker
    _transport: BlobTransport | None

    def __init__(
        self,
        options: SyncOptions,
        source: SourceTracker,
        target: TargetTracker,
        transport: BlobTransport | None = None,
    ) -> None:
        self._options = options
        self._source = source
        self._target = target
        self._transport = transport

        self._project: Any = None
        self.correlation_field_id: str | None = None
        self.identity_mapper: IdentityMapper = IdentityMapper(
            options.user_mapping, {}, identity_field=options.identity_field
        )
        self.stats: MigrationStats = MigrationStats()

        logger.info(f"Initialized migrator for {options.jira.project_key} -> {options.gitlab.project_path}")

    @property
    def simulation(self) -> bool:
        return self._options.simulation

    @property
    def project(self) -> Any:  # noqa: ANN401 - python-gitlab has no type stubs
        if self._project is None:
            msg = "GitLab project not loaded yet. Call load_project() first."
            raise MigrationError(msg)
        return self._project

    @project.setter
    def project(self, value: Any) -> None:  # noqa: ANN401
        self._project = value

    def migrate(self) -> MigrationResult:
        """Execute the complete synchronization.

        Raises:
            ConfigurationError / ProjectNotFoundError: If the run cannot start
            MigrationError: If Jira or GitLab fail during setup or issue search
        """
        if self.simulation:
            logger.info("=> Simulating all actions, nothing will be changed")

        try:
            self.ensure_correlation_field()
            self.load_project()
            roster = build_member_roster(self._target, self.project)
            self.identity_mapper = IdentityMapper(
                self._options.user_mapping, roster, identity_field=self._options.identity_field
            )

            logger.info("Matching issues...")
            for issue in self.iter_issues():
                try:
                    self.sync_issue(issue)
                except _TRACKER_ERRORS as e:
                    self._record_error(issue.get("key", "?"), "syncing issue", e)

        except _TRACKER_ERRORS as e:
            logger.exception("Migration failed")
            msg = f"Migration failed: {e}"
            raise MigrationError(msg) from e

        stats = self.stats
        logger.info(
            f"Synchronization finished: {stats.issues_seen} seen, {stats.issues_skipped} skipped, "
            f"{stats.issues_created} created, {stats.issues_updated} updated, {len(stats.errors)} errors"
        )
        return MigrationResult(success=not stats.errors, stats=stats)

    def ensure_correlation_field(self) -> str | None:
        """Find the Jira custom field holding GitLab IIDs, creating it if needed."""
        name = self._options.general.correlation_field
        if not name:
            logger.info("Correlation field disabled, every issue will be created")
            return None

        jira_field = next((f for f in self._source.list_custom_fields() if f.get("name") == name), None)
        if jira_field is None:
            logger.info(f"Creating custom jira field: {name}")
            if self.simulation:
                logger.info(f"Would create custom jira field {name}")
                return None
            jira_field = self._source.create_custom_field(name, CORRELATION_FIELD_DESCRIPTION)

        self.correlation_field_id = jira_field["id"]
        logger.debug(f"Using custom jira field {name} ({self.correlation_field_id})")
        return self.correlation_field_id

    def load_project(self) -> None:
        path = self._options.gitlab.project_path
        logger.info(f"Getting GitLab project {path}")
        self.project = self._target.get_project(path)

    def iter_issues(self) -> Iterator[dict[str, Any]]:
        """Yield all issues of the Jira project, page by page.

        The total is taken from the first page and trusted for the rest of the run.
        """
        jql = f"project={self._options.jira.project_key} ORDER BY created ASC"
        page_size = self._options.page_size
        start_at = 0
        total: int | None = None

        while total is None or start_at < total:
            logger.info(f"Querying Jira, startAt: {start_at}, pageSize: {page_size}")
            page = self._source.search_issues(jql, start_at, page_size)
            if total is None:
                total = page.total
                logger.info(f"  => total size is {total}")
            start_at += page_size
            yield from page.issues

    def should_migrate(self, issue: dict[str, Any]) -> bool:
        """Apply the inclusion filter to a Jira issue."""
        issue_filter = self._options.filter
        key = issue.get("key", "?")

        if issue_filter.exclude_closed and _is_set(resolve_attribute(issue, "fields.resolution")):
            logger.info(f"Skipping resolved issue {key}")
            return False

        if issue_filter.exclude_before is not None:
            value = resolve_attribute(issue, issue_filter.date_field)
            timestamp = parse_timestamp(value if isinstance(value, str) else None)
            if timestamp is None:
                logger.warning(f"Cannot read date '{issue_filter.date_field}' of issue {key}, keeping it")
            elif timestamp.date() < issue_filter.exclude_before:
                logger.info(f"Skipping issue {key} dated {timestamp.date()} (before {issue_filter.exclude_before})")
                return False

        return True

    def sync_issue(self, issue: dict[str, Any]) -> IssueOutcome:
        """Synchronize one Jira issue to GitLab."""
        key: str = issue.get("key", "?")
        fields: dict[str, Any] = issue.get("fields") or {}
        general = self._options.general
        self.stats.issues_seen += 1

        if not self.should_migrate(issue):
            self.stats.issues_skipped += 1
            return IssueOutcome.SKIPPED

        logger.info(f"Syncing issue: {key}")
        draft = apply_mapping(issue, self._options.issue_mapping)

        assignee = self.identity_mapper.resolve_user(fields.get("assignee"))
        if assignee is not None:
            draft["assignee_ids"] = [assignee.id]

        acting_as: str | None = None
        if general.as_original_author:
            author = self.identity_mapper.resolve_user(fields.get("creator") or fields.get("reporter"))
            acting_as = author.username if author is not None else None

        refs: list[AttachmentRef] = []
        if general.attachments and self._transport is not None:
            relocator = AttachmentRelocator(self._transport, simulation=self.simulation)
            refs = relocator.relocate(fields.get("attachment"), context=key)
            self.stats.attachments_relocated += len(refs)

        if isinstance(draft.get("description"), str):
            draft["description"] = rewrite_text(draft["description"], refs)

        target_iid = self._correlated_iid(issue)

        if self.simulation:
            self._log_simulation(issue, draft, target_iid, acting_as)
            return IssueOutcome.SIMULATED

        try:
            iid, created = self._create_or_update(key, draft, target_iid, acting_as)
        except GitlabError as e:
            self._record_error(key, "creating GitLab issue", e)
            return IssueOutcome.FAILED

        if created:
            self.stats.issues_created += 1
            self._annotate(issue, iid, refs)
            self._persist_correlation(key, iid)
        else:
            self.stats.issues_updated += 1

        self._sync_resolution(issue, iid)
        return IssueOutcome.CREATED if created else IssueOutcome.UPDATED

    def _correlated_iid(self, issue: dict[str, Any]) -> int | None:
        """Return the GitLab IID stored on the Jira issue, if any."""
        if self.correlation_field_id is None:
            return None
        value = resolve_attribute(issue, f"fields.{self.correlation_field_id}")
        if not _is_set(value):
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            logger.warning(f"Ignoring invalid GitLab issue reference '{value}' on Jira issue {issue.get('key')}")
            return None

    def _create_or_update(
        self, key: str, draft: TargetDraft, target_iid: int | None, acting_as: str | None
    ) -> tuple[int, bool]:
        """Update the correlated GitLab issue, or create a new one.

        Returns:
            (GitLab IID, whether the issue was created)
        """
        if target_iid is not None:
            logger.info(f"Updating GitLab issue #{target_iid}")
            try:
                return self._target.update_issue(self.project, target_iid, draft, acting_as), False
            except GitlabError as e:
                logger.warning(
                    f"The GitLab issue referenced on Jira issue {key} (#{target_iid}) could not be updated ({e}), "
                    "creating / linking new one"
                )

        logger.info("Creating new GitLab issue")
        iid = self._target.create_issue(self.project, draft, acting_as)
        logger.debug(f"Created GitLab issue #{iid} for {key}")
        return iid, True

    def _annotate(self, issue: dict[str, Any], iid: int, refs: Sequence[AttachmentRef]) -> None:
        """Add the notes that only make sense right after creation."""
        key: str = issue["key"]
        fields: dict[str, Any] = issue.get("fields") or {}
        general = self._options.general

        if general.worklog or general.estimated_time:
            note = build_time_log_note(fields, worklog=general.worklog, estimated_time=general.estimated_time)
            if note is not None:
                self._add_note(key, iid, note, "time log")

        if general.backlink:
            self._add_note(key, iid, build_backlink_note(self._source.browse_url(key)), "backlink")

        if refs:
            self._add_note(key, iid, build_attachments_note(refs), "attachment summary")

        if general.comments:
            self._replay_comments(key, iid, refs)

    def _replay_comments(self, key: str, iid: int, refs: Sequence[AttachmentRef]) -> None:
        """Copy every Jira comment to the GitLab issue, as its author when possible."""
        try:
            full_issue = self._source.get_issue(key)
        except (JIRAError, requests.RequestException) as e:
            self._record_error(key, "fetching comments", e)
            return

        comments = resolve_attribute(full_issue, "fields.comment.comments")
        if not isinstance(comments, list):
            return

        for comment in comments:
            acting_as: str | None = None
            if self._options.general.as_original_author:
                author = self.identity_mapper.resolve_user(comment.get("author"))
                acting_as = author.username if author is not None else None

            body = rewrite_text(comment.get("body") or "", refs)
            body = build_comment_body(comment, body, impersonated=acting_as is not None)
            logger.debug("  => Applying comment")
            self._add_note(key, iid, body, "comment", acting_as=acting_as)

    def _add_note(self, key: str, iid: int, body: str, step: str, acting_as: str | None = None) -> bool:
        try:
            self._target.add_note(self.project, iid, body, acting_as)
        except GitlabError as e:
            self._record_error(key, f"adding {step} note", e)
            return False
        self.stats.notes_created += 1
        return True

    def _persist_correlation(self, key: str, iid: int) -> None:
        """Store the GitLab IID on the Jira issue so reruns update instead of create."""
        if self.correlation_field_id is None:
            return
        update = {self.correlation_field_id: str(iid)}
        logger.info(f"Updating jira issue {key} with {update}")
        try:
            self._source.update_issue(key, update)
        except (JIRAError, requests.RequestException) as e:
            self._record_error(key, "storing GitLab issue reference", e)

    def _sync_resolution(self, issue: dict[str, Any], iid: int) -> None:
        """Close the GitLab issue if the Jira issue is resolved. Best effort."""
        if not _is_set(resolve_attribute(issue, "fields.resolution")):
            return
        logger.info("setting to closed...")
        try:
            self._target.close_issue(self.project, iid)
        except GitlabError as e:
            self._record_error(issue.get("key", "?"), "closing GitLab issue", e)
            return
        self.stats.issues_closed += 1

    def _log_simulation(
        self, issue: dict[str, Any], draft: TargetDraft, target_iid: int | None, acting_as: str | None
    ) -> None:
        key = issue.get("key", "?")
        as_user = f" as {acting_as}" if acting_as else ""
        if target_iid is not None:
            logger.info(f"Would update GitLab issue #{target_iid}{as_user} from {key}: {draft}")
        else:
            logger.info(f"Would create GitLab issue{as_user} from {key}: {draft}")
            if self.correlation_field_id is not None:
                logger.info(f"Would store the new GitLab issue IID on {key}")
        if _is_set(resolve_attribute(issue, "fields.resolution")):
            logger.info(f"Would close the GitLab issue for {key}")

    def _record_error(self, key: str, step: str, error: Exception) -> None:
        msg = f"{key}: {step} failed: {error}"
        logger.error(msg)
        self.stats.errors.append(msg)
