"""
Celery tasks for batch formula evaluation.
"""
import logging
from typing import Any, Dict, List, Optional

from celery import shared_task

from .conf import configured_collaborators
from .engine import evaluate

logger = logging.getLogger(__name__)


@shared_task
def evaluate_formula_batch(
    expression: str,
    contexts: List[Dict[str, Any]],
    params: Optional[Dict[str, Any]] = None,
    employee_params: Optional[Dict[str, Dict[str, Any]]] = None,
    scale: Optional[int] = None,
) -> List[dict]:
    """
    Celery task evaluating one formula for many employees.

    Each context gets its own engine; results come back in input order.

    Args:
        expression: DSL source text
        contexts: one evaluation context per employee
        params: static parameter fallback map shared by the batch
        employee_params: static employee parameter fallback maps, by employee id
        scale: internal scale, defaults to the FORMULA_ENGINE setting
    """
    options = {
        "params": params or {},
        "employee_params": employee_params or {},
    }
    if scale is not None:
        options["scale"] = scale
    options.update(configured_collaborators())

    results = []
    error_count = 0
    for context in contexts:
        result = evaluate(expression, context, options)
        if not result["success"]:
            error_count += 1
            logger.error(
                f"Formula error for employee {context.get('employee_id')} "
                f"({result['error_code']}): {result['error']}"
            )
        results.append(result)

    logger.info(
        f"Evaluated {len(results)} contexts, {error_count} errors "
        f"for formula: {expression}"
    )
    return results
