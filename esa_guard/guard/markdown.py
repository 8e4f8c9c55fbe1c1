"""Render a document body into canonical Markdown.

Section order is fixed: Summary (with dependency diagram), Background, Tasks.
The output is deterministic and never starts with whitespace.
"""

from __future__ import annotations

from ..models import Body, Task
from .graph import TaskGraph

SUMMARY_HEADING = "## サマリー"
DIAGRAM_HEADING = "### 依存関係グラフ"
BACKGROUND_HEADING = "## 背景"
TASKS_HEADING = "## タスク"
RELATED_LINKS_LABEL = "関連リンク:"
DEPENDS_ON_LABEL = "依存"
SUMMARY_LABEL = "要約"
DETAILS_SUMMARY = "詳細を開く"

DONE_NODE_ID = "done"
DONE_NODE_LABEL = "タスク完了"

# Task nodes live under this prefix so no task id can collide with the sink or a
# Mermaid keyword such as "end".
TASK_NODE_PREFIX = "t_"

# status -> mermaid class style, plus the completion sink
CLASS_DEFS = [
    ("completed", "fill:#90EE90"),
    ("in_progress", "fill:#FFD700"),
    ("in_review", "fill:#FFA500"),
    ("not_started", "fill:#D3D3D3"),
    ("goal", "fill:#87CEEB,stroke:#4169E1,stroke-width:3px"),
]


def generate_markdown(body: Body) -> str:
    """Generate the Markdown document for `body`."""
    graph = TaskGraph.from_tasks(body.tasks)
    reduced = graph.transitive_reduction()

    sections = [_render_summary(body, graph, reduced), _render_background(body)]
    if body.tasks:
        sections.append(_render_tasks(body, graph, reduced))

    return "\n\n".join(sections).lstrip() + "\n"


def _render_summary(body: Body, graph: TaskGraph, reduced: dict[str, list[str]]) -> str:
    lines = [SUMMARY_HEADING]
    for task in body.tasks:
        mark = "x" if task.is_completed else " "
        lines.append(f"- [{mark}] {task.title}")

    if body.tasks:
        lines.append("")
        lines.append(DIAGRAM_HEADING)
        lines.append("")
        lines.extend(_render_mermaid(body.tasks, graph, reduced))

    return "\n".join(lines)


def _render_mermaid(tasks: list[Task], graph: TaskGraph, reduced: dict[str, list[str]]) -> list[str]:
    lines = ["```mermaid", "graph TD"]

    for task in tasks:
        lines.append(f'    {_node_id(task.id)}["{_escape_label(task.title)}"]:::{task.status}')
    lines.append(f"    {DONE_NODE_ID}([{DONE_NODE_LABEL}]):::goal")
    lines.append("")

    # prerequisite --> dependent, so every path ends at the sink
    for task in tasks:
        for dep in reduced.get(task.id, []):
            if dep in graph.nodes:
                lines.append(f"    {_node_id(dep)} --> {_node_id(task.id)}")
    for leaf in graph.leaf_nodes():
        lines.append(f"    {_node_id(leaf)} --> {DONE_NODE_ID}")
    lines.append("")

    for name, style in CLASS_DEFS:
        lines.append(f"    classDef {name} {style}")
    lines.append("```")
    return lines


def _node_id(task_id: str) -> str:
    return TASK_NODE_PREFIX + task_id


def _escape_label(text: str) -> str:
    return text.replace('"', "#quot;")


def _render_background(body: Body) -> str:
    lines = [BACKGROUND_HEADING]
    if body.related_links:
        lines.append(RELATED_LINKS_LABEL)
        lines.extend(f"- {link}" for link in body.related_links)
    lines.append("")
    lines.append(body.background)
    return "\n".join(lines)


def _render_tasks(body: Body, graph: TaskGraph, reduced: dict[str, list[str]]) -> str:
    blocks = [TASKS_HEADING]
    for task in body.tasks:
        blocks.append(_render_task(task, graph, reduced))
    return "\n\n".join(blocks)


def _render_task(task: Task, graph: TaskGraph, reduced: dict[str, list[str]]) -> str:
    lines = [f"### {task.title}", f"- Status: `{task.status}`"]

    dep_titles = [graph.nodes[d].title for d in reduced.get(task.id, []) if d in graph.nodes]
    if dep_titles:
        lines.append(f"- {DEPENDS_ON_LABEL}: {', '.join(dep_titles)}")
    for url in task.github_urls:
        lines.append(f"- GitHub: {url}")

    lines.append("")
    lines.append(f"- {SUMMARY_LABEL}:")
    lines.extend(f"  - {line}" for line in task.summary)

    lines.append("")
    lines.append(f"<details><summary>{DETAILS_SUMMARY}</summary>")
    lines.append("")
    lines.append(task.description)
    lines.append("")
    lines.append("</details>")
    return "\n".join(lines)
