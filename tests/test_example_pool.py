"""Tests for the few-shot example pool."""

import threading

from schemamap.agents.column_mapping.example_pool import (
    Example,
    ExampleMapping,
    ExamplePool,
    default_example_pool,
    format_examples_for_prompt,
)


def make_example(schema_type="test_case", language="en", header="TC ID"):
    return Example(
        operation="column_mapping",
        schema_type=schema_type,
        language=language,
        headers=[header],
        mappings=[ExampleMapping("id", header, 0, 1.0, "Identifier")],
    )


class TestExamplePool:
    def test_filters(self):
        pool = ExamplePool()
        pool.register(make_example("test_case", "en"))
        pool.register(make_example("test_case", "ja"))
        pool.register(make_example("api_spec", "en"))

        assert len(pool.get_examples("column_mapping")) == 3
        assert len(pool.get_examples("column_mapping", schema_type="test_case")) == 2
        assert len(pool.get_examples("column_mapping", language="en")) == 2
        assert len(pool.get_examples("column_mapping", max_results=1)) == 1
        assert pool.get_examples("other_operation") == []

    def test_registration_order(self):
        pool = ExamplePool()
        pool.register(make_example(header="First"))
        pool.register(make_example(header="Second"))

        assert [e.headers[0] for e in pool.get_examples("column_mapping")] == ["First", "Second"]

    def test_concurrent_register(self):
        pool = ExamplePool()

        def worker():
            for _ in range(50):
                pool.register(make_example())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(pool) == 200

    def test_yaml_round_trip(self, tmp_path):
        pool = default_example_pool()
        path = tmp_path / "examples" / "pool.yaml"

        written = pool.export_yaml(path)
        reloaded = ExamplePool()
        loaded = reloaded.load_yaml(path)

        assert written == loaded == len(pool)
        ja = reloaded.get_examples("column_mapping", language="ja")
        assert ja[0].headers[1] == "概要"


class TestDefaultPool:
    def test_seeded_examples(self):
        pool = default_example_pool()

        assert len(pool) == 6
        assert {e.schema_type for e in pool.get_examples("column_mapping")} == {
            "test_case",
            "issue_tracker",
            "ui_spec",
            "product_backlog",
            "api_spec",
        }


class TestFormatExamples:
    def test_empty(self):
        assert format_examples_for_prompt([]) == ""

    def test_renders_mappings(self):
        text = format_examples_for_prompt([make_example()])

        assert text.startswith("FEW-SHOT EXAMPLES:")
        assert "--- Example 1 (test_case, en) ---" in text
        assert "TC ID -> id (index=0" in text
