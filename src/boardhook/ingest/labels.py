"""Label resolution for ingested issues."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boardhook.board_store import Label

logger = logging.getLogger("boardhook.ingest")


def parse_default_label_ids(raw: str | None) -> list[str]:
    """Decode a webhook's stored default label ids.

    Anything other than a JSON list is treated as no defaults; non-string
    entries are dropped.
    """
    if not raw:
        return []
    try:
        decoded = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed default label ids: %r", raw[:200])
        return []
    if not isinstance(decoded, list):
        logger.warning("Ignoring non-list default label ids: %r", raw[:200])
        return []
    return [item for item in decoded if isinstance(item, str)]


def resolve_label_ids(
    names: Iterable[str],
    workspace_labels: Iterable[Label],
    default_label_ids: Iterable[str] = (),
) -> list[str]:
    """Map label names and default ids to a de-duplicated list of label ids.

    Names match workspace labels case-insensitively; unknown names are dropped.
    Default ids are appended after the name matches. Ids that do not belong to
    the workspace are dropped so the batch insert cannot violate the foreign key.
    """
    labels = list(workspace_labels)
    by_name = {label.name.lower(): label.id for label in labels}
    known_ids = {label.id for label in labels}

    resolved: list[str] = []
    for name in names:
        label_id = by_name.get(name.lower())
        if label_id is not None and label_id not in resolved:
            resolved.append(label_id)

    for label_id in default_label_ids:
        if label_id not in known_ids:
            logger.warning("Default label %s does not exist in workspace, skipping", label_id)
            continue
        if label_id not in resolved:
            resolved.append(label_id)

    return resolved
