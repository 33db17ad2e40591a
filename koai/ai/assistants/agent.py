import json
import logging
import os

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from rich.console import Console

from ...config import CompletionOptions, Settings
from ...errors import KoaiError
from ...tooling.directory import show_directory_structure
from ...tooling.files import read_file_content
from ...tooling.git import show_git_status
from ..llm import CompletionClient
from .chat import create_client, render_response

logger = logging.getLogger(__name__)

ANALYZER_PROMPT = """
You are an AI agent analyzer. Analyze the user's request and extract:
1. The main goal they want to achieve
2. Any context or constraints
3. Files they might want to work with

Respond with JSON format:
{
  "goal": "brief description of main goal",
  "context": "any additional context",
  "files": ["array of file paths if mentioned"]
}
"""

PLANNER_PROMPT = """
Based on the task goal and analysis results, suggest the next actions to take.
Available tools:
- directory: show directory structure, list files
- git: check status, show diff, show log
- file: read, write files
- command: execute shell commands

Respond with an array of action objects in JSON format:
[
  {
    "action": "action_name",
    "reasoning": "why this action is needed",
    "tool": "tool_to_use",
    "parameters": { "param": "value" }
  }
]
"""

GIT_KEYWORDS = ("commit", "push", "pull", "status", "diff", "branch", "merge")

# The agent asks for structured output, so it runs colder than plain chat.
AGENT_TEMPERATURE = 0.1


@dataclass
class AgentTask:
    goal: str
    context: Optional[str] = None
    files: List[str] = field(default_factory=list)


@dataclass
class AgentAction:
    action: str
    reasoning: str
    tool: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    result: Any = None


def _agent_options(
    settings: Settings, system_message: str, overrides: Optional[Mapping]
) -> CompletionOptions:
    values = {"temperature": AGENT_TEMPERATURE, "system_message": system_message}
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    # The system prompt defines the output format, it cannot be overridden.
    values["system_message"] = system_message
    return settings.options_for("chat", values)


def _parse_json(text: str) -> Any:
    """Parses JSON, tolerating a surrounding markdown code fence."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        text = text.split("\n", 1)[1] if "\n" in text else ""
    return json.loads(text)


def analyze_user_request(
    client: CompletionClient, user_input: str, options: CompletionOptions
) -> AgentTask:
    response = client.complete(user_input, options)
    try:
        data = _parse_json(response)
        files = data.get("files") or []
        if isinstance(files, str):
            files = [files]
        return AgentTask(
            goal=data.get("goal") or user_input,
            context=data.get("context") or None,
            files=[f for f in files if isinstance(f, str)],
        )
    except (json.JSONDecodeError, AttributeError, TypeError):
        logger.debug("Task analysis was not valid JSON: %r", response)
        return AgentTask(goal=user_input)


def should_check_git(task: AgentTask) -> bool:
    text = f"{task.goal} {task.context or ''}".lower()
    return any(keyword in text for keyword in GIT_KEYWORDS)


def analyze_project(path: Optional[str] = None) -> AgentAction:
    try:
        structure = show_directory_structure(path or os.getcwd(), max_depth=2)
        return AgentAction(
            action="analyze_project_structure",
            reasoning="Getting overview of project structure to understand context",
            tool="directory",
            result=[item.to_dict() for item in structure],
        )
    except OSError as e:
        return AgentAction(
            action="analyze_project_structure",
            reasoning="Failed to analyze project structure",
            result=f"Error: {e}",
        )


def check_git_status() -> AgentAction:
    try:
        status = show_git_status()
        return AgentAction(
            action="check_git_status",
            reasoning="Checking git status to understand current changes",
            tool="git",
            result=asdict(status),
        )
    except KoaiError as e:
        return AgentAction(
            action="check_git_status",
            reasoning="Failed to check git status",
            result=f"Error: {e}",
        )


def analyze_file(path: str) -> AgentAction:
    try:
        info = read_file_content(path)
        result = asdict(info)
        if info.last_modified:
            result["last_modified"] = info.last_modified.isoformat()
        return AgentAction(
            action="analyze_file",
            reasoning=f"Analyzing file {path} to understand its content",
            tool="file",
            parameters={"file_path": path},
            result=result,
        )
    except KoaiError as e:
        return AgentAction(
            action="analyze_file",
            reasoning=f"Failed to analyze file {path}",
            parameters={"file_path": path},
            result=f"Error: {e}",
        )


def plan_next_steps(
    client: CompletionClient,
    task: AgentTask,
    analysis: List[AgentAction],
    options: CompletionOptions,
) -> List[AgentAction]:
    context = {
        "task": asdict(task),
        "analysis": [{"action": a.action, "result": a.result} for a in analysis],
    }
    manual_review = [
        AgentAction(
            action="manual_review",
            reasoning="Unable to automatically plan next steps, manual review needed",
        )
    ]

    try:
        response = client.complete(json.dumps(context, indent=2, default=str), options)
        steps = _parse_json(response)
        return [
            AgentAction(
                action=step.get("action", "unknown"),
                reasoning=step.get("reasoning", ""),
                tool=step.get("tool"),
                parameters=step.get("parameters"),
            )
            for step in steps
        ]
    except (KoaiError, json.JSONDecodeError, AttributeError, TypeError) as e:
        logger.debug("Planning failed: %s", e)
        return manual_review


def format_agent_response(actions: List[AgentAction], task: AgentTask) -> str:
    lines = [f'🤖 AI Agent Analysis for: "{task.goal}"', ""]

    for index, action in enumerate(actions, start=1):
        lines.append(f"{index}. **{action.action}**")
        lines.append(f"   Reasoning: {action.reasoning}")
        if action.tool:
            lines.append(f"   Tool used: {action.tool}")
        if action.result:
            if isinstance(action.result, (dict, list)):
                result = json.dumps(action.result, indent=2, default=str)
            else:
                result = str(action.result)
            lines.append(f"   Result: {result}")
        lines.append("")

    lines.append("---")
    lines.append(
        "Agent analysis complete. Review the results and let me know if you need further assistance."
    )
    return "\n".join(lines)


def run_agent(
    client: CompletionClient,
    user_input: str,
    analyzer_options: CompletionOptions,
    planner_options: CompletionOptions,
) -> str:
    task = analyze_user_request(client, user_input, analyzer_options)

    actions = [analyze_project()]
    if should_check_git(task):
        actions.append(check_git_status())
    for path in task.files:
        actions.append(analyze_file(path))

    actions.extend(plan_next_steps(client, task, actions, planner_options))
    return format_agent_response(actions, task)


def agent(
    settings: Settings,
    prompt: str,
    overrides: Optional[Mapping] = None,
    raw: bool = False,
    console: Optional[Console] = None,
) -> str:
    """Analyzes a request against the current project and prints a report."""
    if not prompt or not prompt.strip():
        raise ValueError("Prompt must not be empty.")

    analyzer_options = _agent_options(settings, ANALYZER_PROMPT, overrides)
    planner_options = _agent_options(settings, PLANNER_PROMPT, overrides)
    client = create_client(settings)
    console = console or Console()

    with Console(stderr=True).status("Analyzing request"):
        report = run_agent(client, prompt, analyzer_options, planner_options)

    render_response(console, report, raw=raw)
    return report
