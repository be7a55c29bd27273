"""Turns aggregated user corrections into few-shot examples."""

import logging

from schemamap.agents.column_mapping.example_pool import ExamplePool
from schemamap.feedback.analyzer import DEFAULT_WINDOW_DAYS, PatternAnalyzer
from schemamap.feedback.model import LearningReport

logger = logging.getLogger(__name__)

MAX_CORRECTIONS = 20


class FeedbackLearner:
    """Registers examples learned from feedback into an example pool"""

    def __init__(self, analyzer: PatternAnalyzer, example_pool: ExamplePool):
        self.analyzer = analyzer
        self.example_pool = example_pool

    def learn_from_feedback(self, days: int = DEFAULT_WINDOW_DAYS) -> LearningReport:
        """
        Run one learning pass over the trailing window.

        Args:
            days: Window length in days (<= 0 uses 30)

        Returns:
            LearningReport with one improvement line per pattern and per example
        """
        if days <= 0:
            days = DEFAULT_WINDOW_DAYS

        patterns = self.analyzer.analyze_patterns(days)
        corrections = self.analyzer.get_top_corrections(MAX_CORRECTIONS, days=days)
        examples = self.analyzer.generate_examples_from_corrections(corrections)

        for example in examples:
            self.example_pool.register(example)

        report = LearningReport(
            patterns_found=len(patterns),
            corrections_found=len(corrections),
            examples_generated=len(examples),
        )
        report.improvements.extend(p.suggestion for p in patterns)

        top_by_header = {}
        for correction in corrections:
            top_by_header.setdefault(correction.source_header, correction)
        for example in examples:
            c = top_by_header[example.headers[0]]
            report.improvements.append(
                f'Example added: header "{c.source_header}" now maps to "{c.correct_mapping}" '
                f'(was incorrectly "{c.wrong_mapping}", corrected {c.frequency} time(s))'
            )

        logger.info(
            f"Learning run: {report.patterns_found} patterns, {report.corrections_found} corrections, "
            f"{report.examples_generated} examples registered"
        )
        return report
