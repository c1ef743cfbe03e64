"""Prompt templates for planning and step execution."""

from __future__ import annotations

from forge.schemas import ChatMessage

# =============================================================================
# Plan Prompts
# =============================================================================

PLAN_SYSTEM_PROMPT = """You are a Principal Software Architect.
Analyze the following repository context and the user's request.
Generate a detailed, step-by-step implementation plan (JSON format).

Repository Context:
{repo_context}

Response Format:
{{
  "title": "Short Plan Title",
  "steps": [
    {{
      "id": "1",
      "title": "Task Title",
      "description": "Detailed description of what to change",
      "file_path": "src/App.tsx",
      "operation": "UPDATE"
    }}
  ]
}}

"operation" is one of CREATE, UPDATE or DELETE.
Return ONLY the JSON."""


def format_plan_messages(prompt: str, repo_context: str, context_chars: int = 2000) -> list[ChatMessage]:
    """Build the plan request, truncating the repository context."""
    if len(repo_context) > context_chars:
        repo_context = repo_context[:context_chars] + "... (truncated for context limit)"
    return [
        ChatMessage(role="system", content=PLAN_SYSTEM_PROMPT.format(repo_context=repo_context)),
        ChatMessage(role="user", content=prompt),
    ]


# =============================================================================
# Execute Prompts
# =============================================================================

EXECUTE_SYSTEM_PROMPT = """You are a Senior Full-Stack Engineer.
You are executing a specific task from a plan.

Task: {task}

File: {file_path}

Current Code:
{current_code}

Output the FULL modified file content. Do not use markdown blocks, just the raw code."""


def format_execute_messages(task: str, file_path: str, current_code: str) -> list[ChatMessage]:
    """Build the step execution request."""
    return [
        ChatMessage(
            role="system",
            content=EXECUTE_SYSTEM_PROMPT.format(
                task=task,
                file_path=file_path,
                current_code=current_code or "(new file)",
            ),
        ),
        ChatMessage(role="user", content="Execute the changes."),
    ]
