"""Tests for task materialization."""

from conftest import make_task

from stepwright.materialize import materialize, renumber, resolve_image_ref
from stepwright.types import ParsedTask, WorkflowDefinition


def _definition(*steps: int) -> WorkflowDefinition:
    return WorkflowDefinition(
        title="W",
        tasks=[ParsedTask(step=s, title=f"T{s}", instructions_html=f"<p>{s}</p>") for s in steps],
    )


class TestMaterialize:
    """Tests for materialize."""

    def test_contiguous_steps_and_unique_ids(self) -> None:
        """Test step numbers are 1..N whatever the parsed steps were."""
        tasks = materialize(_definition(7, 3, 3, 10), "wf-1")

        assert [t.step_number for t in tasks] == [1, 2, 3, 4]
        assert [t.title for t in tasks] == ["T3", "T3", "T7", "T10"]
        assert len({t.id for t in tasks}) == 4
        assert all(t.workflow_id == "wf-1" for t in tasks)

    def test_copies_task_fields(self) -> None:
        definition = WorkflowDefinition(
            title="W",
            tasks=[
                ParsedTask(
                    step=1,
                    title="Install",
                    description="desc",
                    importance="high",
                    instructions_html="<p>Run it</p>",
                )
            ],
        )

        task = materialize(definition, "wf-1")[0]

        assert task.title == "Install"
        assert task.description == "desc"
        assert task.importance == "high"
        assert task.instructions_html == "<p>Run it</p>"
        assert task.image_url is None

    def test_image_refs_resolved(self) -> None:
        definition = WorkflowDefinition(
            title="W",
            tasks=[
                ParsedTask(step=1, title="A", image_ref="image-1"),
                ParsedTask(step=2, title="B", image_ref="https://example.com/b.png"),
                ParsedTask(step=3, title="C", image_ref="image-2"),
            ],
        )

        tasks = materialize(definition, "wf-1", {"image-1": "data:image/jpeg;base64,AA"})

        assert [t.image_url for t in tasks] == [
            "data:image/jpeg;base64,AA",
            "https://example.com/b.png",
            None,
        ]

    def test_knowledge_links_from_instructions(self) -> None:
        html = '<p>See <a data-knowledge-link data-knowledge-id="kb-2">setup</a></p>'
        definition = WorkflowDefinition(
            title="W", tasks=[ParsedTask(step=1, title="A", instructions_html=html)]
        )

        assert materialize(definition, "wf-1")[0].knowledge_links == ["kb-2"]

    def test_empty_definition(self) -> None:
        assert materialize(WorkflowDefinition(title="W"), "wf-1") == []


class TestHelpers:
    """Tests for resolve_image_ref and renumber."""

    def test_resolve_image_ref(self) -> None:
        assert resolve_image_ref(None, {}) is None
        assert resolve_image_ref("", {}) is None
        assert resolve_image_ref("image-3", {"image-3": "u"}) == "u"
        assert resolve_image_ref("image-3", {}) is None
        assert resolve_image_ref("photo.png", {}) == "photo.png"

    def test_renumber(self) -> None:
        tasks = [make_task("a", 4), make_task("b", 4), make_task("c", 1)]

        renumbered = renumber(tasks)

        assert [(t.id, t.step_number) for t in renumbered] == [("a", 1), ("b", 2), ("c", 3)]
        assert tasks[0].step_number == 4
