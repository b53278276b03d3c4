# tests/unit/rounds/test_schemas.py — v1
"""Tests for rounds/schemas.py — payload validation and normalization."""

from __future__ import annotations

import pytest

from codebrief.rounds.schemas import (
    ROUND_SCHEMAS,
    PayloadValidationError,
    Round1Output,
    Round2Output,
    validate_round_payload,
)


class TestValidateRoundPayload:
    def test_all_sample_payloads_validate(self, sample_payloads):
        for round_id, payload in sample_payloads.items():
            validate_round_payload(round_id, payload, ROUND_SCHEMAS[round_id])

    def test_camel_case_normalized(self, sample_payloads):
        data = validate_round_payload(1, sample_payloads[1], Round1Output)
        assert data["project_name"] == "demo"
        assert data["open_questions"] == ["Why two config loaders?"]
        assert "projectName" not in data

    def test_defaults_filled(self, sample_payloads):
        data = validate_round_payload(1, sample_payloads[1], Round1Output)
        assert data["key_dependencies"] == []
        assert data["project_scale"]["estimated_complexity"] == "medium"

    def test_relationship_aliases(self, sample_payloads):
        data = validate_round_payload(2, sample_payloads[2], Round2Output)
        assert data["relationships"] == [
            {"source": "api", "target": "core", "type": "imports", "evidence": ""}
        ]

    def test_unknown_keys_ignored(self, sample_payloads):
        payload = dict(sample_payloads[1], extra_field="ignored")
        assert "extra_field" not in validate_round_payload(1, payload, Round1Output)

    def test_missing_required_field(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            validate_round_payload(2, {"findings": []}, Round2Output)
        assert exc_info.value.round_id == 2
        assert "Round 2 payload failed validation" in str(exc_info.value)

    def test_bad_literal(self):
        payload = {"patterns": [{"name": "x", "confidence": "certain"}]}
        with pytest.raises(PayloadValidationError):
            validate_round_payload(4, payload, ROUND_SCHEMAS[4])

    def test_no_schema_passthrough(self):
        payload = {"anything": [1, 2]}
        assert validate_round_payload(9, payload, None) is payload

    def test_normalization_is_idempotent(self, sample_payloads):
        once = validate_round_payload(3, sample_payloads[3], ROUND_SCHEMAS[3])
        assert validate_round_payload(3, once, ROUND_SCHEMAS[3]) == once
