import django
import pytest
from django.conf import settings


def pytest_configure():
    if not settings.configured:
        settings.configure(
            SECRET_KEY="formulas-tests",
            DEBUG=True,
            USE_TZ=True,
            DATABASES={},
            ROOT_URLCONF="formulas.urls",
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "rest_framework",
                "formulas",
            ],
            FORMULA_ENGINE={},
        )
        django.setup()


# Common test fixtures
class FakeParamResolver:
    """Callable param resolver answering from a dict and recording every lookup."""

    def __init__(self, values=None):
        self.values = values or {}
        self.calls = []

    def __call__(self, key, date):
        self.calls.append((key, date))
        return self.values.get(key)


class FakeEmployeeParamResolver:
    def __init__(self, values=None):
        self.values = values or {}
        self.calls = []

    def __call__(self, key, employee_id, date):
        self.calls.append((key, employee_id, date))
        return self.values.get((key, employee_id))


class FakeGroupResolver:
    def __init__(self, values=None):
        self.values = values or {}
        self.calls = []

    def __call__(self, code, concept_values):
        self.calls.append((code, dict(concept_values)))
        return self.values.get(code)


class FakeTierCalculator:
    """Deterministic tier calculator: every method returns the same canned result."""

    def __init__(self, amount="100", effective_rate="0.1"):
        self.result = {"amount": amount, "effective_rate": effective_rate}
        self.calls = []

    def calculate(self, base, tiers, mode):
        self.calls.append(("calculate", base, tiers, mode))
        return self.result

    def chile_impuesto_unico(self, base, utm, date=None):
        self.calls.append(("chile_impuesto_unico", base, utm, date))
        return self.result

    def brazil_inss_progressivo(self, base, date=None):
        self.calls.append(("brazil_inss_progressivo", base, date))
        return self.result

    def brazil_irrf_progressivo(self, base, date=None):
        self.calls.append(("brazil_irrf_progressivo", base, date))
        return self.result


@pytest.fixture
def param_resolver():
    """Resolver knowing 'rate' and 'a'/'b' only."""
    return FakeParamResolver({"rate": "0.2", "a": "1", "b": "2"})


@pytest.fixture
def emp_param_resolver():
    return FakeEmployeeParamResolver({("hours", 8): "120"})


@pytest.fixture
def group_resolver():
    return FakeGroupResolver({"remote": "42"})


@pytest.fixture
def tier_calculator():
    return FakeTierCalculator(amount="12345", effective_rate="0.0123")


@pytest.fixture
def payroll_context():
    """A typical employee context for one payroll period."""
    return {
        "date": "2026-01-31",
        "employee_id": 7,
        "variables": {
            "salary": {"base": "1500.50", "hours": "160"},
            "days_worked": "20",
        },
        "concepts": {"BASE": "1000", "bonus": "200"},
        "groups": {
            "taxable": [
                {"concept_code": "BASE"},
                {"concept_code": "bonus", "weight": "0.5"},
                {"concept_code": "overtime"},
            ],
        },
    }
