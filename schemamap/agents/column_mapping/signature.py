"""DSPy signature for the column mapping agent."""

import dspy


class ColumnMappingSignature(dspy.Signature):
    """
    Map source spreadsheet columns onto canonical specification fields.

    Every source column index must appear exactly once: either in
    canonical_fields or in extra_columns. Never map two canonical fields to
    the same column.

    MAPPING STRATEGY:
    1. Use header text first, sample values second
    2. Match by meaning, not only by spelling (headers may be in any language)
    3. Only use canonical names from the provided list
    4. Columns with no confident canonical match go to extra_columns with a
       short semantic_role (e.g. "story_points", "reviewer")

    CONFIDENCE:
    - 0.9-1.0: exact name or well-known alias
    - 0.7-0.9: clear semantic match
    - 0.4-0.7: plausible but ambiguous
    - below 0.4: guess (prefer extra_columns)

    If refinement_context is provided, reconsider the listed ambiguous headers
    carefully before answering.
    """

    headers: str = dspy.InputField(
        desc="JSON array of source headers; the array position is the column_index"
    )
    sample_rows: str = dspy.InputField(
        desc="JSON array of sample data rows aligned with headers"
    )
    canonical_fields: str = dspy.InputField(
        desc="JSON array of canonical fields with descriptions and aliases"
    )
    document_context: str = dspy.InputField(
        desc="File type, declared source language and schema hint (may be empty)"
    )
    examples: str = dspy.InputField(
        desc="Few-shot examples of correct mappings (may be empty)"
    )
    refinement_context: str = dspy.InputField(
        desc="Headers that need a second look on a refinement pass (may be empty)"
    )

    canonical_mappings: str = dspy.OutputField(
        desc='JSON array of {"canonical_name", "source_header", "column_index", "confidence", "reasoning"}'
    )
    extra_columns: str = dspy.OutputField(
        desc='JSON array of {"name", "semantic_role", "column_index", "confidence"} for columns not mapped above'
    )
    detected_type: str = dspy.OutputField(
        desc="Document type: test_case, product_backlog, issue_tracker, api_spec, ui_spec or generic"
    )
    source_language: str = dspy.OutputField(
        desc="ISO 639-1 code of the header language (e.g. 'en', 'ja', 'vi')"
    )
