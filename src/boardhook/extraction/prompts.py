"""Prompt text and tool schema for webhook payload extraction."""

from __future__ import annotations

import json
from typing import Any

CREATE_ISSUE_TOOL_NAME = "create_issue"

SYSTEM_PROMPT = """You are a webhook data processor. Your job is to extract structured issue data from incoming webhook payloads.

You will receive:
1. User instructions describing how to interpret the data
2. The raw webhook payload as JSON

Your task:
- Read the instructions and data carefully
- Extract the best title, description, status, priority, and labels for creating a project issue
- You MUST call the create_issue tool with your extracted fields
- Be concise. The title should be a short summary, the description can have more detail

Field guidelines:
- title: Short, actionable summary (required)
- description: Longer explanation with relevant details from the payload (optional)
- status: One of "backlog", "todo", "in_progress", "done", "canceled" (optional)
- priority: 0=urgent, 1=high, 2=medium, 3=low, 4=none (optional)
- labels: Array of label names that match the workspace's existing labels (optional)

CRITICAL: You MUST call the create_issue tool with your findings."""

CREATE_ISSUE_TOOL: dict[str, Any] = {
    "name": CREATE_ISSUE_TOOL_NAME,
    "description": (
        "Create an issue from the extracted webhook data. "
        "You MUST call this tool with the extracted fields."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "Short, actionable issue title"},
            "description": {
                "type": "string",
                "description": "Longer description with relevant context",
            },
            "status": {
                "type": "string",
                "enum": ["backlog", "todo", "in_progress", "done", "canceled"],
                "description": "Issue status",
            },
            "priority": {
                "type": "integer",
                "minimum": 0,
                "maximum": 4,
                "description": "Priority: 0=urgent, 1=high, 2=medium, 3=low, 4=none",
            },
            "labels": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Label names to apply",
            },
        },
        "required": ["title"],
    },
}


def build_user_prompt(instructions: str, data: Any) -> str:
    """Combine the webhook's stored instructions with the pretty-printed payload."""
    payload = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return (
        f"## Instructions\n\n{instructions}\n\n"
        f"## Incoming Data\n\n```json\n{payload}\n```\n\n"
        "Process this data and call the create_issue tool with the extracted fields."
    )
