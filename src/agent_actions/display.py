# display.py
# All terminal output for the semantic action pipeline.
#
# This module owns presentation entirely. planner.py and executor.py never
# format strings; they call named functions here.
#
# Colour language:
#   cyan     routing / pipeline events
#   blue     planner and backend calls
#   yellow   validation and policy gates
#   green    success / completed
#   red      failures, denials, faults
#   magenta  browser interaction steps

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from agent_actions.models import (
    ActionPlan,
    AnswerPlan,
    Coercion,
    ExecutionLog,
    NavigatePlan,
    PlannerResult,
    PolicyCheckResult,
)

console = Console()

_STATUS_COLORS = {
    "completed": "green",
    "awaiting_review": "cyan",
    "needs_confirmation": "yellow",
    "validation_error": "red",
    "execution_error": "red",
    "missing_required_fields": "yellow",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Pipeline entry
# ---------------------------------------------------------------------------


def banner(backend_name: str, site_name: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Semantic Action Runtime[/bold cyan]\n"
            "[dim]Selector-free planning · contract validation · policy gates · audited execution[/dim]\n\n"
            f"[dim]Backend :[/dim] [white]{backend_name}[/white]\n"
            f"[dim]Site    :[/dim] [white]{site_name}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def utterance_received(utterance: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW REQUEST[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{utterance}[/white]",
            title=_label("USER", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


def planner_attempt(attempt: int, max_attempts: int, backend_name: str) -> None:
    console.print(
        _label("PLANNER", "blue"),
        f"[blue] → Attempt {attempt}/{max_attempts} via {backend_name}…[/blue]",
    )


def planner_retry(attempt: int, max_attempts: int, error: Exception) -> None:
    console.print(
        f"  [yellow]↳ Unparseable output on attempt {attempt}/{max_attempts}:[/yellow] "
        f"[dim]{_mono(str(error), 140)}[/dim]"
    )


def planner_exhausted(max_attempts: int) -> None:
    halt(f"Planner could not produce a usable response in {max_attempts} attempts.")


def backend_failure(error: Exception) -> None:
    halt(f"Generation backend failed: {error}")


def plan_resolved(result: PlannerResult) -> None:
    console.print()
    if isinstance(result, ActionPlan):
        req = result.request
        body = f"[bold white]{req.action}[/bold white]\n[dim]{_json(req.args)}[/dim]"
        if req.confirmed is not None:
            body += f"\n[dim]confirmed={req.confirmed}[/dim]"
        title = "PLAN: ACTION"
    elif isinstance(result, NavigatePlan):
        body = f"[white]Navigate to[/white] [bold white]{result.page}[/bold white]"
        title = "PLAN: NAVIGATE"
    elif isinstance(result, AnswerPlan):
        body = f"[white]{result.text}[/white]"
        title = "PLAN: ANSWER"
    else:
        raise TypeError(f"unknown planner result {type(result).__name__}")
    console.print(Panel(body, title=_label(title, "blue"), border_style="blue", padding=(0, 2)))


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------


def coercions_applied(coercions: list[Coercion]) -> None:
    for c in coercions:
        console.print(
            f"  [yellow]↳ Coerced[/yellow] [white]{c.field}[/white] "
            f"[dim]{_json(c.from_value)} → {_json(c.to_value)} ({c.rule})[/dim]"
        )


def validation_passed(action: str) -> None:
    console.print()
    console.print(_label("VALIDATE", "yellow"), f"[bold green] ✓ {action} input accepted[/bold green]")


def validation_failed(action: str, errors: list[str]) -> None:
    console.print()
    console.print(
        Panel(
            "\n".join(f"[white]• {e}[/white]" for e in errors),
            title=_label(f"VALIDATE: {action} REJECTED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def policy_decision(action: str, result: PolicyCheckResult) -> None:
    if result.allowed:
        console.print(_label("POLICY", "yellow"), f"[bold green] ✓ {action} allowed[/bold green]")
        return
    console.print(
        Panel(
            f"[bold yellow]{result.reason}[/bold yellow]",
            title=_label("POLICY: BLOCKED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------


def interaction_start(action: str) -> None:
    console.print()
    console.print(Rule(f"[magenta]INTERACTING — {action}[/magenta]", style="magenta"))


def navigated(url: str) -> None:
    console.print(f"  [magenta]Navigate[/magenta]  [white]{url}[/white]")


def filled(field: str, value: Any) -> None:
    console.print(f"  [magenta]Fill[/magenta]      [bold white]{field}[/bold white]  [dim]{_json(value)}[/dim]")


def clicked(action: str) -> None:
    console.print(f"  [magenta]Click[/magenta]     [bold white]{action}[/bold white]")


def status_read(output: str, value: str) -> None:
    console.print(f"  [magenta]Status[/magenta]    [white]{output}[/white] [dim]{_mono(value, 140)}[/dim]")


def interaction_fault(error: Exception) -> None:
    console.print(
        Panel(
            f"[bold red]{error}[/bold red]",
            title=_label("EXECUTION FAULT ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def runtime_response(status: str, action: str, detail: str | None = None) -> None:
    color = _STATUS_COLORS.get(status, "white")
    body = f"[bold {color}]{status}[/bold {color}]  [white]{action}[/white]"
    if detail:
        body += f"\n[dim]{_mono(detail, 400)}[/dim]"
    console.print()
    console.print(Panel(body, title=_label("RUNTIME RESPONSE", color), border_style=color, padding=(0, 2)))


def execution_log(log: ExecutionLog) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Step", width=13)
    table.add_column("Detail", style="dim white")

    for index, step in enumerate(log.steps, start=1):
        payload = step.model_dump(exclude_none=True, exclude={"type"}, by_alias=True)
        table.add_row(str(index), step.type, _mono(_json(payload), 90))

    console.print(
        Panel(
            table,
            title=f"[dim]EXECUTION LOG {log.session_id}[/dim]",
            subtitle=f"[dim]{log.action} · {log.mode} · {log.timestamp}[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


def final_answer(text: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{text}[/white]",
            title=_label("ANSWER", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{reason}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
