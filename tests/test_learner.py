"""Tests for the feedback learning loop."""

import pytest

from schemamap.agents.column_mapping.example_pool import ExamplePool
from schemamap.feedback.analyzer import PatternAnalyzer
from schemamap.feedback.learner import FeedbackLearner
from schemamap.feedback.model import ColumnCorrection, Feedback


@pytest.fixture
def pool():
    return ExamplePool()


@pytest.fixture
def learner(store, pool):
    return FeedbackLearner(PatternAnalyzer(store), pool)


def test_learns_from_repeated_correction(store, pool, learner):
    for n in range(3):
        store.submit(
            Feedback(
                request_hash=f"hash-{n}",
                rating=1,
                column_fixes=[ColumnCorrection("TC Name", "notes", "title")],
            )
        )

    report = learner.learn_from_feedback()

    assert report.patterns_found == 1
    assert report.corrections_found == 1
    assert report.examples_generated == 1
    assert len(report.improvements) == 2
    assert report.improvements[1] == (
        'Example added: header "TC Name" now maps to "title" '
        '(was incorrectly "notes", corrected 3 time(s))'
    )

    examples = pool.get_examples("column_mapping", schema_type="user_correction")
    assert len(examples) == 1
    assert examples[0].mappings[0].canonical_name == "title"


def test_no_feedback_gives_empty_report(pool, learner):
    report = learner.learn_from_feedback()

    assert report.to_dict() == {
        "patterns_found": 0,
        "corrections_found": 0,
        "examples_generated": 0,
        "improvements": [],
    }
    assert len(pool) == 0


def test_window_excludes_old_corrections(store, clock, pool, learner):
    store.submit(
        Feedback(request_hash="hash-a", rating=1, column_fixes=[ColumnCorrection("Ref", "notes", "id")])
    )
    clock.advance(days=45)

    report = learner.learn_from_feedback(days=30)

    assert report.corrections_found == 0
    assert len(pool) == 0
