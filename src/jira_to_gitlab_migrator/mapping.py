"""
Field mapping from Jira issues to GitLab issue drafts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from .attributes import MISSING, resolve_attribute
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import TargetDraft

logger: logging.Logger = logging.getLogger(__name__)

MACRO_SIGIL: Final[str] = "$"
AS_LABEL_MACRO: Final[str] = "$asLabel"

_NULL_LABELS: Final[frozenset[str]] = frozenset({"null", "undefined"})


@dataclass(frozen=True)
class DirectAssign:
    """Copy the resolved value into the draft under ``target_key``."""

    target_key: str


@dataclass(frozen=True)
class AsLabel:
    """Turn the resolved value into comma-separated GitLab labels."""

    object_field: str | None = None
    ignore_patterns: tuple[re.Pattern[str], ...] = ()
    prefix: str = ""


MappingAction = DirectAssign | AsLabel


@dataclass(frozen=True)
class MappingRule:
    """One declarative instruction: where to read in Jira and what to do with the value."""

    source_path: str
    action: MappingAction


def decode_mapping_rule(raw: Mapping[str, Any]) -> MappingRule:
    """Decode one ``issueMapping`` entry from the configuration file.

    Raises:
        ConfigurationError: If the entry is incomplete, names an unknown macro
            or carries an invalid ignore pattern
    """
    source_path = raw.get("jira")
    target_key = raw.get("gitlab")
    if not isinstance(source_path, str) or not source_path:
        msg = f"Mapping rule without a 'jira' source path: {dict(raw)}"
        raise ConfigurationError(msg)
    if not isinstance(target_key, str) or not target_key:
        msg = f"Mapping rule for '{source_path}' without a 'gitlab' target"
        raise ConfigurationError(msg)

    if not target_key.startswith(MACRO_SIGIL):
        return MappingRule(source_path, DirectAssign(target_key))

    if target_key != AS_LABEL_MACRO:
        msg = f"Unknown mapping macro '{target_key}' for '{source_path}'"
        raise ConfigurationError(msg)

    ignore = raw.get("ignore") or []
    if isinstance(ignore, str):
        ignore = [ignore]
    try:
        patterns = tuple(re.compile(pattern) for pattern in ignore)
    except re.error as e:
        msg = f"Invalid ignore pattern for '{source_path}': {e}"
        raise ConfigurationError(msg) from e

    return MappingRule(
        source_path,
        AsLabel(object_field=raw.get("field"), ignore_patterns=patterns, prefix=raw.get("prefix") or ""),
    )


def apply_mapping(
    issue: Mapping[str, Any],
    rules: Sequence[MappingRule],
    draft: TargetDraft | None = None,
) -> TargetDraft:
    """Build a GitLab issue draft by applying the rules in order."""
    draft = {} if draft is None else draft
    issue_key = issue.get("key", "?")

    for rule in rules:
        value = resolve_attribute(issue, rule.source_path)
        if value is MISSING:
            logger.warning(
                f"Skipping field mapping for '{rule.source_path}' since it doesn't exist on Jira issue {issue_key}"
            )
            continue

        action = rule.action
        if isinstance(action, DirectAssign):
            logger.debug(f"{issue_key}: {rule.source_path} -> {action.target_key} = {value!r}")
            draft[action.target_key] = value
            continue

        labels = resolve_labels(value, rule.source_path, action)
        if labels:
            label_string = ",".join(labels)
            existing = draft.get("labels")
            draft["labels"] = f"{existing},{label_string}" if existing else label_string
            logger.debug(f"{issue_key}: new label(s) {label_string}")

    return draft


def resolve_labels(value: Any, source_path: str, action: AsLabel) -> list[str]:  # noqa: ANN401
    """Run the label macro on a resolved value and return the labels it contributes."""
    if isinstance(value, list):
        if value and isinstance(value[0], Mapping):
            labels = resolve_object_labels(value, source_path, action.object_field)
        else:
            labels = list(value)
    else:
        labels = [value]

    labels = [str(label) for label in labels if label is not None and str(label) not in _NULL_LABELS]

    if action.ignore_patterns:
        labels = filter_labels(labels, action.ignore_patterns)

    return [f"{action.prefix}{label}" for label in labels]


def resolve_object_labels(objects: list[Any], source_path: str, object_field: str | None) -> list[Any]:
    """Project a list of Jira objects (components, versions, ...) onto one of their fields."""
    if object_field is None:
        logger.warning(f"Skipping label mapping for '{source_path}' since 'field' isn't defined")
        return []
    if object_field not in objects[0]:
        logger.warning(
            f"Skipping label mapping for '{source_path}' since field '{object_field}' isn't defined in objects"
        )
        return []
    values: list[Any] = []
    for obj in objects:
        if not isinstance(obj, Mapping):
            logger.warning(f"Skipping non-object value {obj!r} in label mapping for '{source_path}'")
            continue
        values.append(obj.get(object_field))
    return values


def filter_labels(labels: Sequence[str], patterns: Sequence[re.Pattern[str] | str]) -> list[str]:
    """Drop every label matching any of the patterns, keep the rest in order."""
    compiled = [re.compile(pattern) for pattern in patterns]
    kept: list[str] = []
    for label in labels:
        if any(pattern.search(label) for pattern in compiled):
            logger.debug(f"Ignoring label {label}")
            continue
        kept.append(label)
    return kept
