# prompts.py
# System and user prompt construction for the planner.
#
# The system prompt embeds the full action catalog and constrains the model
# to a single JSON object that names actions and fields semantically.

from dataclasses import dataclass, field

from agent_actions.models import ActionCatalog, AgentManifest, DiscoveredAction

RULES = """\
RULES:
1. Respond with EXACTLY this JSON format: {"action": "<action_name>", "args": {<field_name>: <value>}}
2. Use ONLY action names and field names listed above. Never invent new ones.
3. NEVER include CSS selectors, XPath, or DOM references in your response. \
Address fields by their semantic field name only.
4. If a field expects a specific type (number, email), use that type.
5. NEVER use null for any field value.
6. Always include ALL fields you can infer from the user's message.
7. If the user is asking an informational question rather than requesting an action, \
respond with: {"action": "none", "answer": "<your concise answer based on the available actions and page data>"}
8. If you cannot map the user's request to an available action AND it is not an informational question, \
respond with: {"action": "none", "args": {}, "error": "reason"}
9. For destructive actions (high risk), include "confirmed": false in your response.\
"""

NAVIGATION_RULE = """\
10. If the request needs an action that lives on another page, or data shown on another page, \
use navigation: respond with {"navigate": "<route>"} using one of the routes listed above.\
"""


@dataclass
class ManifestActionSummary:
    """An action declared in the manifest that is not on the current page."""

    action: str
    title: str
    page: str
    page_title: str
    risk: str
    confirmation: str
    description: str | None = None
    fields: list[tuple[str, str | None]] = field(default_factory=list)  # (name, x-semantic)


@dataclass
class PageSummary:
    route: str
    title: str
    description: str | None = None
    has_actions: bool = False
    has_data: bool = False


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _describe_action(action: DiscoveredAction) -> str:
    meta: list[str] = []
    if action.danger:
        meta.append(f"risk: {action.danger}")
    if action.confirm:
        meta.append(f"confirmation: {action.confirm}")
    if action.scope:
        meta.append(f"scope: {action.scope}")
    if action.idempotent:
        meta.append(f"idempotent: {action.idempotent}")

    lines = []
    for f in action.fields:
        opts = f" [options: {', '.join(f.options)}]" if f.options else ""
        lines.append(f"    - {f.field} ({f.tag_name}){opts}")

    fields = "\n".join(lines) or "    (none)"
    return f"ACTION: {action.action}\n  {' | '.join(meta)}\n  Fields:\n{fields}"


def _describe_remote_action(summary: ManifestActionSummary) -> str:
    fields = []
    for name, semantic in summary.fields:
        fields.append(f"    - {name} ({semantic})" if semantic else f"    - {name}")
    desc = f"\n  {summary.description}" if summary.description else ""
    return (
        f'ACTION: {summary.action} — {summary.title} (on page {summary.page} "{summary.page_title}")'
        f"{desc}\n  risk: {summary.risk} | confirmation: {summary.confirmation}\n  Fields:\n"
        + ("\n".join(fields) or "    (none)")
    )


def _describe_page(page: PageSummary) -> str:
    tags = [t for t, on in (("actions", page.has_actions), ("data", page.has_data)) if on]
    desc = f" — {page.description}" if page.description else ""
    suffix = f" [{', '.join(tags)}]" if tags else ""
    return f'  {page.route} "{page.title}"{desc}{suffix}'


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def build_system_prompt(catalog: ActionCatalog, page_data: str | None = None) -> str:
    actions = "\n\n".join(_describe_action(a) for a in catalog.actions)
    data_block = f"\n\nData visible on this page:\n\n{page_data}" if page_data else ""
    return (
        "You are an agent that helps users interact with web applications.\n"
        "You MUST respond with a single JSON object. No text before or after the JSON.\n\n"
        f"Available actions on this page:\n\n{actions}{data_block}\n\n{RULES}"
    )


def build_site_aware_prompt(
    catalog: ActionCatalog,
    other_page_actions: list[ManifestActionSummary],
    pages: list[PageSummary],
    page_data: str | None = None,
) -> str:
    """Catalog prompt extended with actions on other pages and the site map."""
    actions = "\n\n".join(_describe_action(a) for a in catalog.actions)
    data_block = f"\n\nData visible on this page:\n\n{page_data}" if page_data else ""

    site_block = ""
    if other_page_actions:
        remote = "\n\n".join(_describe_remote_action(s) for s in other_page_actions)
        site_block += f"\n\nActions available on other pages (navigate there first):\n\n{remote}"
    if pages:
        site_block += "\n\nSite pages:\n" + "\n".join(_describe_page(p) for p in pages)

    rules = f"{RULES}\n{NAVIGATION_RULE}" if site_block else RULES
    return (
        "You are an agent that helps users interact with web applications.\n"
        "You MUST respond with a single JSON object. No text before or after the JSON.\n\n"
        f"Available actions on this page:\n\n{actions}{data_block}{site_block}\n\n{rules}"
    )


def build_user_prompt(message: str) -> str:
    return (
        f'User request: "{message}"\n\n'
        "Respond with a JSON object mapping this request to one of the available actions."
    )


def summarize_site(
    manifest: AgentManifest, catalog: ActionCatalog
) -> tuple[list[ManifestActionSummary], list[PageSummary]]:
    """Manifest actions not on the current page, and every page of the site."""
    on_page = {a.action for a in catalog.actions}
    others: list[ManifestActionSummary] = []

    for route, page in manifest.pages.items():
        for name in page.actions:
            action = manifest.actions.get(name)
            if action is None or name in on_page:
                continue
            props = action.input_schema.get("properties") or {}
            others.append(
                ManifestActionSummary(
                    action=name,
                    title=action.title,
                    description=action.description,
                    page=route,
                    page_title=page.title,
                    risk=action.risk,
                    confirmation=action.confirmation,
                    fields=[(n, (p or {}).get("x-semantic")) for n, p in props.items()],
                )
            )

    pages = [
        PageSummary(
            route=route,
            title=page.title,
            description=page.description,
            has_actions=bool(page.actions),
            has_data=bool(page.data),
        )
        for route, page in manifest.pages.items()
    ]
    return others, pages
