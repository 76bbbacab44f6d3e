"""Build the GitLab notes added to a freshly created issue."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .utils import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .models import AttachmentRef

TIME_LOG_HEADER = "Apply time entries from jira."


def format_timestamp(iso_timestamp: str) -> str:
    """Format ISO 8601 timestamp to human-readable format.

    Args:
        iso_timestamp: ISO 8601 formatted timestamp string, as Jira returns them

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns original value if parsing fails.
    """
    timestamp_dt = parse_timestamp(iso_timestamp)
    if timestamp_dt is None:
        return iso_timestamp
    formatted = timestamp_dt.isoformat(sep=" ", timespec="seconds")
    return formatted.replace("+00:00", "Z")


def build_time_log_note(fields: Mapping[str, Any], *, worklog: bool, estimated_time: bool) -> str | None:
    """Build a note with GitLab quick actions for time spent and the remaining estimate.

    Returns:
        The note body, or None when there is nothing to apply
    """
    commands: list[str] = []
    timespent = fields.get("timespent")
    if worklog and _is_positive_number(timespent):
        commands.append(f"/spend {timespent}s")
    timeestimate = fields.get("timeestimate")
    if estimated_time and _is_positive_number(timeestimate):
        commands.append(f"/estimate {timeestimate}s")

    if not commands:
        return None
    return "\n".join([TIME_LOG_HEADER, *commands])


def _is_positive_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and value > 0


def build_backlink_note(issue_url: str) -> str:
    return f"Imported from jira. Original issue: {issue_url}"


def build_attachments_note(refs: Sequence[AttachmentRef]) -> str:
    """List every relocated attachment so files not referenced in the text stay reachable."""
    lines = [f"Applied {len(refs)} attachment(s) from jira:", ""]
    lines.extend(f"- {ref.target_markdown_link}" for ref in refs)
    return "\n".join(lines)


def build_comment_body(comment: Mapping[str, Any], body: str, *, impersonated: bool) -> str:
    """Return the note body for a replayed Jira comment.

    Comments that cannot be posted as their original author get a header
    naming the author and the original date.
    """
    if impersonated:
        return body
    author = comment.get("author") or {}
    author_name = author.get("displayName") or author.get("name") or "unknown"
    header = f"**Comment by** {author_name} **on** {format_timestamp(comment.get('created', ''))}"
    return f"{header}\n\n---\n\n{body}"
