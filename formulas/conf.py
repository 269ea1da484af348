"""
Formula engine settings.

Projects override the defaults with a ``FORMULA_ENGINE`` dict in their
Django settings, e.g.::

    FORMULA_ENGINE = {
        "SCALE": 12,
        "PARAM_RESOLVER": "payroll.params.resolve_param",
        "TIER_CALCULATOR": "payroll.taxes.tier_calculator",
    }
"""
from django.conf import settings
from django.utils.module_loading import import_string

DEFAULTS = {
    "SCALE": 10,
    "MAX_DEPTH": 128,
    "MAX_PRECISION": 50,
    "STRICT_TRAILING_TOKENS": True,
    "PARAM_RESOLVER": None,
    "EMP_PARAM_RESOLVER": None,
    "GROUP_RESOLVER": None,
    "TIER_CALCULATOR": None,
}

# Settings naming a dotted path to a collaborator, keyed by evaluate() option
COLLABORATORS = {
    "param_resolver": "PARAM_RESOLVER",
    "emp_param_resolver": "EMP_PARAM_RESOLVER",
    "group_resolver": "GROUP_RESOLVER",
    "tier_calculator": "TIER_CALCULATOR",
}


def engine_setting(name):
    if name not in DEFAULTS:
        raise KeyError(f"Unknown formula engine setting '{name}'")
    if not settings.configured:
        return DEFAULTS[name]
    overrides = getattr(settings, "FORMULA_ENGINE", None) or {}
    return overrides.get(name, DEFAULTS[name])


def load_collaborator(name):
    """Import the object a collaborator setting points at, or None."""
    path = engine_setting(name)
    if not path:
        return None
    if isinstance(path, str):
        return import_string(path)
    return path


def configured_collaborators():
    """evaluate() options for every collaborator set in settings."""
    options = {}
    for option, setting_name in COLLABORATORS.items():
        collaborator = load_collaborator(setting_name)
        if collaborator is not None:
            options[option] = collaborator
    return options
