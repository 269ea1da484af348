"""
External value resolution for formula evaluation.

The engine never looks up parameters, groups or tax brackets itself. It asks
small capability objects for them, and falls back to static maps supplied
with the evaluation. Each resolution is recorded in the trace and, for
parameters, in the parameter usage ledger.
"""
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from .. import decimal_math
from .errors import FormulaError, ParamNotFoundError

SCOPE_GLOBAL = "GLOBAL"
SCOPE_EMPLOYEE = "EMPLOYEE"


class ParamResolver(Protocol):
    def __call__(self, key: str, date: str) -> Optional[str]:
        ...


class EmployeeParamResolver(Protocol):
    def __call__(self, key: str, employee_id: int, date: str) -> Optional[str]:
        ...


class GroupResolver(Protocol):
    def __call__(self, code: str, concept_values: Mapping[str, str]) -> Optional[str]:
        ...


class TierCalculator(Protocol):
    """
    Progressive tax/bracket collaborator.

    Every method returns a mapping with at least ``amount`` and
    ``effective_rate``; nothing else is read.
    """

    def calculate(self, base: str, tiers: Sequence[Mapping[str, Any]], mode: str) -> Mapping[str, Any]:
        ...

    def chile_impuesto_unico(self, base: str, utm: str, date: Optional[str] = None) -> Mapping[str, Any]:
        ...

    def brazil_inss_progressivo(self, base: str, date: Optional[str] = None) -> Mapping[str, Any]:
        ...

    def brazil_irrf_progressivo(self, base: str, date: Optional[str] = None) -> Mapping[str, Any]:
        ...


class Resolver:
    """Resolve PARAM, EMP_PARAM and SUM_GROUP for one evaluation."""

    def __init__(
        self,
        trace: List[str],
        params_used: Dict[str, Dict[str, Any]],
        param_resolver: Optional[ParamResolver] = None,
        emp_param_resolver: Optional[EmployeeParamResolver] = None,
        group_resolver: Optional[GroupResolver] = None,
        params: Optional[Mapping[str, Any]] = None,
        employee_params: Optional[Mapping[Any, Mapping[str, Any]]] = None,
    ):
        self.trace = trace
        self.params_used = params_used
        self.param_resolver = param_resolver
        self.emp_param_resolver = emp_param_resolver
        self.group_resolver = group_resolver
        self.params = dict(params or {})
        self.employee_params = {
            _employee_key(emp_id): dict(values or {})
            for emp_id, values in (employee_params or {}).items()
        }

    def param(self, key: str, date: str) -> str:
        if self.param_resolver is not None:
            result = self.param_resolver(key, date)
            if result is not None:
                result = str(result)
                self.params_used[key] = {"value": result, "date": date, "scope": SCOPE_GLOBAL}
                self.trace.append(f"PARAM[{key}, {date}] = {result}")
                return result

        if self.params.get(key) is not None:
            value = str(self.params[key])
            self.params_used[key] = {"value": value, "date": date, "scope": SCOPE_GLOBAL}
            self.trace.append(f"PARAM[{key}] = {value} (static)")
            return value

        raise ParamNotFoundError(f"Parameter not found: {key} for date {date}")

    def employee_param(self, key: str, employee_id: Optional[int], date: str) -> str:
        if employee_id is None:
            raise ParamNotFoundError(f"Employee parameter not found: {key} (no employee in context), date {date}")

        if self.emp_param_resolver is not None:
            result = self.emp_param_resolver(key, employee_id, date)
            if result is not None:
                result = str(result)
                self._record_employee(key, result, date, employee_id)
                self.trace.append(f"EMP_PARAM[{key}, {employee_id}, {date}] = {result}")
                return result

        static = self.employee_params.get(employee_id, {})
        if static.get(key) is not None:
            value = str(static[key])
            self._record_employee(key, value, date, employee_id)
            self.trace.append(f"EMP_PARAM[{key}, {employee_id}] = {value} (static)")
            return value

        raise ParamNotFoundError(
            f"Employee parameter not found: {key} for employee {employee_id}, date {date}"
        )

    def _record_employee(self, key, value, date, employee_id):
        self.params_used[key] = {
            "value": value,
            "date": date,
            "scope": SCOPE_EMPLOYEE,
            "employee_id": employee_id,
        }

    def group_sum(self, code: str, concepts: Mapping[str, str], groups: Mapping[str, Sequence[Mapping]], scale: int) -> str:
        if self.group_resolver is not None:
            result = self.group_resolver(code, concepts)
            if result is not None:
                result = str(result)
                self.trace.append(f"SUM_GROUP[{code}] = {result}")
                return result

        if code not in groups:
            raise FormulaError(f"Group not found: {code}")

        total = "0"
        for member in groups[code]:
            concept_code = str(member["concept_code"]).lower()
            weight = member.get("weight")
            weight = "1" if weight is None else str(weight)
            if concept_code in concepts:
                total = decimal_math.add(total, decimal_math.mul(concepts[concept_code], weight, scale), scale)

        self.trace.append(f"SUM_GROUP[{code}] = {total}")
        return total


def _employee_key(employee_id):
    try:
        return int(employee_id)
    except (TypeError, ValueError):
        return employee_id
