"""
Unit Tests for batch evaluation tasks
"""

import logging

from django.test import override_settings

from formulas.tasks import evaluate_formula_batch


class TestEvaluateFormulaBatch:
    """Tests for the evaluate_formula_batch task, run eagerly."""

    def test_batch_when_contexts_then_results_in_input_order(self):
        contexts = [
            {"employee_id": 1, "variables": {"base": "10"}},
            {"employee_id": 2, "variables": {"base": "25.5"}},
        ]
        results = evaluate_formula_batch("base * 2", contexts)
        assert [r["value"] for r in results] == ["20", "51"]

    def test_batch_when_one_context_fails_then_others_still_evaluated(self, caplog):
        contexts = [
            {"employee_id": 1, "variables": {"base": "10"}},
            {"employee_id": 2, "variables": {}},
        ]
        with caplog.at_level(logging.INFO, logger="formulas.tasks"):
            results = evaluate_formula_batch("base * 2", contexts)

        assert results[0]["success"] is True
        assert results[1]["error_code"] == "UNDEFINED_VARIABLE"
        assert "Formula error for employee 2" in caplog.text
        assert "Evaluated 2 contexts, 1 errors" in caplog.text

    def test_batch_when_static_maps_then_shared_by_all_contexts(self):
        contexts = [{"employee_id": 1}, {"employee_id": 2}]
        results = evaluate_formula_batch(
            "PARAM('rate') * EMP_PARAM('hours')",
            contexts,
            params={"rate": "1.5"},
            employee_params={"1": {"hours": "10"}, "2": {"hours": "20"}},
        )
        assert [r["value"] for r in results] == ["15", "30"]

    def test_batch_when_scale_given_then_applied(self):
        results = evaluate_formula_batch("1 / 3", [{}], scale=3)
        assert results[0]["value"] == "0.333"

    def test_batch_when_collaborator_configured_then_injected(self, tier_calculator):
        with override_settings(FORMULA_ENGINE={"TIER_CALCULATOR": tier_calculator}):
            results = evaluate_formula_batch("BR_IRRF_PROGRESSIVO(5000)", [{"date": "2026-01-31"}])
        assert results[0]["value"] == "12345"
        assert tier_calculator.calls == [("brazil_irrf_progressivo", "5000", "2026-01-31")]
