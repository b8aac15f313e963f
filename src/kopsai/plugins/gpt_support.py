"""AI-assisted analysis through an OpenAI-compatible chat completions API."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx

from kopsai.core.errors import TaskValidationError

from .http import HTTPPlugin

LOG_ANALYSIS_PROMPT = """\
You are an expert DevOps engineer analyzing system logs. Analyze the following
log content and provide a summary of what happened, potential issues or errors,
recommended actions and a severity level (Low/Medium/High/Critical).

Context: {context}

Log content:
{log_content}

Respond in JSON with the fields: summary, issues, recommendations, severity,
confidence (0-100).
"""

FIX_SUGGESTION_PROMPT = """\
You are an expert DevOps engineer. Provide a fix suggestion for this issue.

Issue: {issue}
Context: {context}

Respond in JSON with the fields: root_cause, steps, commands, prevention.
"""

COMMAND_EXPLANATION_PROMPT = """\
You are a DevOps expert. Explain what this command does, each parameter or
flag, common use cases and safety considerations.

Command: {command}

Respond in JSON with the fields: purpose, parameters, use_cases, safety_notes.
"""

SCRIPT_GENERATION_PROMPT = """\
You are an expert DevOps engineer. Generate a production-ready {language}
script with error handling, logging and comments for the following task.

Task: {task}

Reply with the script code only.
"""


class GPTAction(str, Enum):
    ANALYZE_LOG = "analyze_log"
    SUGGEST_FIX = "suggest_fix"
    EXPLAIN_COMMAND = "explain_command"
    GENERATE_SCRIPT = "generate_script"


# action -> (prompt template, required option, result key, max_tokens)
_ACTIONS = {
    GPTAction.ANALYZE_LOG: (LOG_ANALYSIS_PROMPT, "log_content", "analysis", 1000),
    GPTAction.SUGGEST_FIX: (FIX_SUGGESTION_PROMPT, "issue", "suggestion", 1000),
    GPTAction.EXPLAIN_COMMAND: (COMMAND_EXPLANATION_PROMPT, "command", "explanation", 500),
    GPTAction.GENERATE_SCRIPT: (SCRIPT_GENERATION_PROMPT, "task", "script", 1500),
}


class GPTSupport(HTTPPlugin):
    """Log analysis, fix suggestions and script generation via a chat model.

    The availability probe only checks that an API key is configured;
    it makes no network call.
    """

    name = "gpt_support"
    description = "Integrate with OpenAI GPT for intelligent analysis and suggestions"
    version = "1.0.0"

    def base_url(self) -> str | None:
        return self.config.openai_base_url

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.openai_api_key}"}

    def _probe(self) -> bool:
        return bool(self.config.openai_api_key)

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        gpt_action = self.parse_action(action, GPTAction)
        template, required, result_key, max_tokens = _ACTIONS[gpt_action]
        if not options.get(required):
            raise TaskValidationError(f"gpt {gpt_action.value} requires '{required}'")

        language = options.get("language") or "bash"
        prompt = template.format(
            context=options.get("context") or "",
            log_content=options.get("log_content", ""),
            issue=options.get("issue", ""),
            command=options.get("command", ""),
            task=options.get("task", ""),
            language=language,
        )
        content, tokens = self.chat(prompt, max_tokens=max_tokens)

        result: dict[str, Any] = {
            result_key: content,
            "model": self.config.openai_model,
            "tokens_used": tokens,
        }
        if gpt_action is GPTAction.GENERATE_SCRIPT:
            result["language"] = language
        return result

    def chat(self, prompt: str, max_tokens: int = 1000, temperature: float = 0.3) -> tuple[str, int | None]:
        """Send one user message and return (content, total_tokens)."""
        payload = {
            "model": self.config.openai_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        with self._client(timeout=max(self.config.http_timeout, 60.0)) as client:
            try:
                resp = client.post("/v1/chat/completions", json=payload)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise RuntimeError(
                    f"Chat completion request failed ({e.response.status_code}): {e.response.text}"
                ) from e
            data = resp.json()

        choices = data.get("choices") or []
        content = choices[0]["message"]["content"] if choices else ""
        return content, data.get("usage", {}).get("total_tokens")
