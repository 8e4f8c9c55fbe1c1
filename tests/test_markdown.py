from esa_guard.guard.markdown import generate_markdown
from esa_guard.models import Body, PostInput, Task

from conftest import make_input_dict


def _task(task_id: str, title: str, status: str = "not_started", **kwargs) -> Task:
    return Task(id=task_id, title=title, status=status, summary=["要約"], description="説明", **kwargs)


def test_summary_checkbox_for_not_started_task() -> None:
    md = generate_markdown(Body(background="bg", tasks=[_task("t1", "タスク1")]))
    assert "- [ ] タスク1" in md.splitlines()


def test_completed_task_is_checked() -> None:
    md = generate_markdown(Body(background="bg", tasks=[_task("t1", "Task 1: A", "completed")]))
    assert "- [x] Task 1: A" in md.splitlines()


def test_full_layout() -> None:
    body = Body(
        background="背景テキスト",
        related_links=["https://example.com/doc"],
        tasks=[
            Task(id="task-1", title="Task 1: A", status="not_started", summary=["line"], description="desc A"),
            Task(
                id="task-2",
                title="Task 2: B",
                status="completed",
                summary=["line"],
                description="desc B",
                depends_on=["task-1"],
                github_urls=["https://github.com/org/repo/pull/1"],
            ),
        ],
    )

    expected = "\n".join(
        [
            "## サマリー",
            "- [ ] Task 1: A",
            "- [x] Task 2: B",
            "",
            "### 依存関係グラフ",
            "",
            "```mermaid",
            "graph TD",
            '    t_task-1["Task 1: A"]:::not_started',
            '    t_task-2["Task 2: B"]:::completed',
            "    done([タスク完了]):::goal",
            "",
            "    t_task-1 --> t_task-2",
            "    t_task-2 --> done",
            "",
            "    classDef completed fill:#90EE90",
            "    classDef in_progress fill:#FFD700",
            "    classDef in_review fill:#FFA500",
            "    classDef not_started fill:#D3D3D3",
            "    classDef goal fill:#87CEEB,stroke:#4169E1,stroke-width:3px",
            "```",
            "",
            "## 背景",
            "関連リンク:",
            "- https://example.com/doc",
            "",
            "背景テキスト",
            "",
            "## タスク",
            "",
            "### Task 1: A",
            "- Status: `not_started`",
            "",
            "- 要約:",
            "  - line",
            "",
            "<details><summary>詳細を開く</summary>",
            "",
            "desc A",
            "",
            "</details>",
            "",
            "### Task 2: B",
            "- Status: `completed`",
            "- 依存: Task 1: A",
            "- GitHub: https://github.com/org/repo/pull/1",
            "",
            "- 要約:",
            "  - line",
            "",
            "<details><summary>詳細を開く</summary>",
            "",
            "desc B",
            "",
            "</details>",
            "",
        ]
    )
    assert generate_markdown(body) == expected


def test_no_tasks_omits_diagram_and_task_section() -> None:
    md = generate_markdown(Body(background="only background"))
    assert md == "## サマリー\n\n## 背景\n\nonly background\n"


def test_diagram_uses_reduced_edges() -> None:
    tasks = [
        _task("a", "Task 1: a"),
        _task("b", "Task 2: b", depends_on=["a"]),
        _task("c", "Task 3: c", depends_on=["a", "b"]),
    ]
    md = generate_markdown(Body(background="bg", tasks=tasks))
    lines = md.splitlines()
    assert "    t_a --> t_b" in lines
    assert "    t_b --> t_c" in lines
    assert "    t_a --> t_c" not in lines
    assert "    t_c --> done" in lines
    # the task section lists the reduced prerequisites too
    assert "- 依存: Task 2: b" in lines


def test_quotes_in_titles_are_escaped_in_labels() -> None:
    md = generate_markdown(Body(background="bg", tasks=[_task("t1", 'Task 1: say "hi"')]))
    assert '    t_t1["Task 1: say #quot;hi#quot;"]:::not_started' in md.splitlines()
    assert '### Task 1: say "hi"' in md.splitlines()


def test_output_is_deterministic() -> None:
    input = PostInput.from_dict(make_input_dict())
    assert generate_markdown(input.body) == generate_markdown(input.body)
    assert not generate_markdown(input.body)[0].isspace()


def test_task_ids_cannot_shadow_the_sink_or_keywords() -> None:
    tasks = [_task("done", "Task 1: done"), _task("end", "Task 2: end", depends_on=["done"])]
    lines = generate_markdown(Body(background="bg", tasks=tasks)).splitlines()

    assert '    t_done["Task 1: done"]:::not_started' in lines
    assert '    t_end["Task 2: end"]:::not_started' in lines
    assert "    done([タスク完了]):::goal" in lines
    assert "    t_done --> t_end" in lines
    assert "    t_end --> done" in lines
    assert "    done --> done" not in lines
