"""
API Tests for the formula endpoints
"""

import pytest
from django.contrib.auth.models import User
from django.test import override_settings
from rest_framework.test import APIRequestFactory, force_authenticate

from formulas.views import FormulaEvaluateAPIView, FormulaSetValidateAPIView, FormulaValidateAPIView

factory = APIRequestFactory()


@pytest.fixture
def user():
    return User(username="payroll")


def post(view_class, data, user=None):
    request = factory.post("/formulas/", data, format="json")
    if user is not None:
        force_authenticate(request, user=user)
    return view_class.as_view()(request)


class TestFormulaEvaluateAPIView:
    """Tests for POST formulas/evaluate/."""

    def test_post_when_valid_formula_then_200_with_result(self, user):
        data = {
            "expression": "PARAM('rate') * salary.base",
            "context": {"date": "2026-01-31", "employee_id": 7, "variables": {"salary": {"base": "1000"}}},
            "params": {"rate": "0.1"},
        }
        response = post(FormulaEvaluateAPIView, data, user)
        assert response.status_code == 200
        assert response.data["status"] == 200
        assert response.data["data"]["value"] == "100"
        assert response.data["data"]["params_used"]["rate"]["date"] == "2026-01-31"

    def test_post_when_employee_params_then_keyed_by_employee(self, user):
        data = {
            "expression": "EMP_PARAM('hours') * 2",
            "context": {"employee_id": 7},
            "employee_params": {"7": {"hours": "160"}},
        }
        response = post(FormulaEvaluateAPIView, data, user)
        assert response.data["data"]["value"] == "320"

    def test_post_when_scale_given_then_applied(self, user):
        response = post(FormulaEvaluateAPIView, {"expression": "10 / 3", "scale": 2}, user)
        assert response.data["data"]["value"] == "3.33"

    def test_post_when_formula_fails_then_400_with_error_code(self, user):
        response = post(FormulaEvaluateAPIView, {"expression": "1 / 0"}, user)
        assert response.status_code == 400
        assert response.data["error_code"] == "DIVISION_BY_ZERO"
        assert response.data["message"] == "Division by zero: 1 / 0"
        assert response.data["data"]["success"] is False

    def test_post_when_expression_missing_then_400(self, user):
        response = post(FormulaEvaluateAPIView, {}, user)
        assert response.status_code == 400
        assert "expression" in response.data

    def test_post_when_group_member_lacks_concept_code_then_400(self, user):
        data = {"expression": "SUM_GROUP('g')", "context": {"groups": {"g": [{"weight": "1"}]}}}
        response = post(FormulaEvaluateAPIView, data, user)
        assert response.status_code == 400

    def test_post_when_tier_calculator_configured_then_injected(self, user, tier_calculator):
        with override_settings(FORMULA_ENGINE={"TIER_CALCULATOR": tier_calculator}):
            response = post(FormulaEvaluateAPIView, {"expression": "BR_INSS_PROGRESSIVO(1000)"}, user)
        assert response.status_code == 200
        assert response.data["data"]["value"] == "12345"

    def test_post_when_anonymous_then_rejected(self):
        response = post(FormulaEvaluateAPIView, {"expression": "1"})
        assert response.status_code in (401, 403)


class TestFormulaValidateAPIView:
    """Tests for POST formulas/validate/."""

    def test_post_when_valid_then_ast_and_dependencies(self, user):
        response = post(FormulaValidateAPIView, {"expression": "MIN(a.b, PARAM('x'))"}, user)
        assert response.status_code == 200
        data = response.data["data"]
        assert data["valid"] is True
        assert data["ast"]["type"] == "call"
        assert data["dependencies"]["variables"] == ["a.b"]
        assert data["dependencies"]["params"] == ["x"]

    def test_post_when_invalid_then_400(self, user):
        response = post(FormulaValidateAPIView, {"expression": "2 +"}, user)
        assert response.status_code == 400
        assert response.data["error_code"] == "SYNTAX_ERROR"


class TestFormulaSetValidateAPIView:
    """Tests for POST formulas/validate-set/."""

    def test_post_when_one_broken_then_summary_lists_it(self, user):
        data = {"formulas": [
            {"formula_code": "GROSS", "expression": "base + bonus"},
            {"formula_code": "BROKEN", "expression": "(1"},
        ]}
        response = post(FormulaSetValidateAPIView, data, user)
        assert response.status_code == 200
        summary = response.data["data"]
        assert summary["valid"] is False
        assert summary["formula_count"] == 2
        assert summary["errors"][0]["formula_code"] == "BROKEN"

    def test_post_when_duplicate_codes_then_400(self, user):
        data = {"formulas": [
            {"formula_code": "GROSS", "expression": "1"},
            {"formula_code": "GROSS", "expression": "2"},
        ]}
        response = post(FormulaSetValidateAPIView, data, user)
        assert response.status_code == 400
