"""Tests for context classification and budget analysis."""

import json

import pytest
from cellm.config import Config
from cellm.context import (
    analyze_context,
    classify_trigger,
    get_context_layer,
    get_layer_label,
)
from cellm.index import parse_index_content
from cellm.tokens import estimate_tokens
from conftest import INDEX_CONTENT, write


def _by_path(analysis):
    return {f.relative_path: f for f in analysis.files}


class TestContextLayer:
    @pytest.mark.parametrize(
        "path,layer",
        [
            ("rules/core/conventions.md", "core"),
            (".claude/rules/core/limits.md", "core"),
            ("rules/domain/frontend.md", "domain"),
            ("patterns/vue.md", "patterns"),
            (".claude/patterns/anti/prohibited.md", "patterns"),
            ("session/current.md", "session"),
            ("workflows/implement.md", "project"),
            (".claude/agents/architect.md", "project"),
            ("Rules/Core/Upper.md", "core"),
        ],
    )
    def test_layer_from_path(self, path, layer):
        assert get_context_layer(path) == layer

    def test_labels(self):
        assert get_layer_label("core") == "CORE"
        assert get_layer_label("session") == "SESSION"


class TestClassifyTrigger:
    @pytest.fixture
    def index(self):
        return parse_index_content(INDEX_CONTENT)

    def test_always_wins(self, index):
        match = classify_trigger("rules/core/conventions.md", index)

        assert match.trigger == "always"

    def test_always_skipped_when_disabled(self, index):
        match = classify_trigger("rules/core/conventions.md", index, check_always=False)

        assert match.trigger == "path"
        assert match.pattern is None

    def test_command_by_workflow_and_agent(self, index):
        assert classify_trigger("workflows/implement.md", index).pattern == "implement"
        assert classify_trigger("agents/reviewer.md", index).pattern == "verify"

    def test_command_beats_path(self):
        index = parse_index_content(
            "## By Command\n| /review | reviewer | patterns/review.md |\n"
            "## By Path\n| src/** | domain/x |\n"
        )

        match = classify_trigger("patterns/review.md", index)

        assert match.trigger == "command"
        assert match.pattern == "review"

    def test_path_reference_picks_referencing_glob(self, index):
        match = classify_trigger("rules/domain/backend.md", index)

        assert match.trigger == "path"
        assert match.pattern == "server/**"
        assert match.source == "path-reference"

    def test_path_location_falls_back_to_first_declared_glob(self, index):
        match = classify_trigger("patterns/vue.md", index)

        assert match.pattern == "app/**/*.vue"
        assert match.source == "path-location"

    def test_strict_mode_disables_location_fallback(self, index):
        match = classify_trigger("patterns/vue.md", index, strict_path_triggers=True)

        assert match.trigger == "path"
        assert match.pattern is None
        assert match.source == "default"

    def test_location_fallback_needs_by_path_entries(self):
        match = classify_trigger("patterns/vue.md", parse_index_content("## Always Load\n"))

        assert match.source == "default"


class TestAnalyzeContext:
    def test_classifies_every_file_once(self, context_root):
        analysis = analyze_context(context_root)
        files = _by_path(analysis)

        assert len(analysis.files) == len(files) == 9
        assert "index.md" not in files

    def test_triggers(self, context_root):
        files = _by_path(analyze_context(context_root))

        assert files["rules/core/conventions.md"].trigger == "always"
        assert files["rules/core/limits.md"].trigger == "always"
        assert files["workflows/implement.md"].trigger == "command"
        assert files["workflows/implement.md"].trigger_pattern == "implement"
        assert files["agents/reviewer.md"].trigger_pattern == "verify"
        assert files["rules/domain/frontend.md"].trigger_pattern == "app/**/*.vue"
        assert files["rules/domain/backend.md"].trigger_pattern == "server/**"
        assert files["patterns/vue.md"].trigger_pattern == "app/**/*.vue"
        assert files["notes.md"].trigger == "path"
        assert files["notes.md"].trigger_pattern is None

    def test_always_files_come_first_in_manifest_order(self, context_root):
        analysis = analyze_context(context_root)

        assert [f.relative_path for f in analysis.by_trigger.always] == [
            "rules/core/conventions.md",
            "rules/core/limits.md",
        ]

    def test_file_metadata(self, context_root):
        files = _by_path(analyze_context(context_root))
        conventions = files["rules/core/conventions.md"]

        assert conventions.name == "conventions.md"
        assert conventions.layer == "core"
        assert conventions.budget == 300
        assert conventions.frontmatter["id"] == "CORE-CONVENTIONS"
        assert files["notes.md"].budget is None
        assert files["notes.md"].frontmatter is None
        assert files["session/state.md"].layer == "session"

    def test_layer_budgets(self, context_root):
        analysis = analyze_context(context_root)

        assert [lb.layer for lb in analysis.by_layer] == [
            "core",
            "domain",
            "patterns",
            "project",
            "session",
        ]
        core = analysis.by_layer[0]
        assert core.files == 2
        assert core.label == "CORE"
        assert core.percentage == pytest.approx(core.tokens / 2200)
        assert sum(lb.tokens for lb in analysis.by_layer) == analysis.total_tokens

    def test_totals_are_derived(self, context_root):
        analysis = analyze_context(context_root)

        assert analysis.total_budget == 2200
        assert analysis.total_tokens == sum(f.tokens for f in analysis.files)
        assert analysis.percentage == pytest.approx(analysis.total_tokens / 2200)
        assert analysis.status == "ok"

    def test_single_always_file_round_trip(self, tmp_path):
        content = "# Only rule\n\nSome guidance here.\n"
        write(tmp_path / "index.md", "## Always Load\n- rules/core/only.md\n")
        write(tmp_path / "rules" / "core" / "only.md", content)

        analysis = analyze_context(tmp_path)

        assert [f.relative_path for f in analysis.by_trigger.always] == ["rules/core/only.md"]
        assert analysis.by_trigger.path == []
        assert analysis.by_trigger.command == []
        assert analysis.total_tokens == estimate_tokens(content)

    def test_exceeded_budget(self, tmp_path):
        write(tmp_path / "index.md", "## Always Load\n- rules/core/a.md\n- rules/core/b.md\n")
        write(tmp_path / "rules" / "core" / "a.md", "x" * 4800)
        write(tmp_path / "rules" / "core" / "b.md", "y" * 4400)

        analysis = analyze_context(tmp_path)

        assert analysis.total_tokens == 2300
        assert analysis.percentage > 1.0
        assert analysis.status == "exceeded"

    def test_zero_budget_with_content_is_exceeded(self, context_root):
        analysis = analyze_context(context_root, Config(total_budget=0))

        assert analysis.total_tokens > 0
        assert analysis.percentage == 0.0
        assert analysis.status == "exceeded"

    def test_missing_always_entry_is_skipped(self, tmp_path):
        write(tmp_path / "index.md", "## Always Load\n- rules/core/gone.md\n")

        analysis = analyze_context(tmp_path)

        assert analysis.files == []

    def test_missing_manifest_still_classifies(self, tmp_path):
        write(tmp_path / "patterns" / "vue.md", "# Vue\n")

        analysis = analyze_context(tmp_path)

        assert len(analysis.files) == 1
        assert analysis.files[0].trigger == "path"
        assert analysis.files[0].layer == "patterns"

    def test_missing_root_is_empty(self, tmp_path):
        analysis = analyze_context(tmp_path / "does-not-exist")

        assert analysis.files == []
        assert analysis.total_tokens == 0
        assert analysis.status == "ok"

    def test_custom_budget_and_strict_mode(self, context_root):
        config = Config(total_budget=100, strict_path_triggers=True)

        analysis = analyze_context(context_root, config)
        files = _by_path(analysis)

        assert analysis.total_budget == 100
        assert files["patterns/vue.md"].trigger_pattern is None
        assert files["rules/domain/frontend.md"].trigger_pattern == "app/**/*.vue"

    def test_nested_index_files_are_content(self, context_root):
        write(context_root / "patterns" / "index.md", "# Pattern index\n")

        files = _by_path(analyze_context(context_root))

        assert "patterns/index.md" in files

    def test_json_serializable(self, context_root):
        data = analyze_context(context_root).model_dump(mode="json")
        text = json.dumps(data)

        assert '"by_layer"' in text
        assert data["status"] == "ok"
        assert len(data["by_trigger"]["always"]) == 2
