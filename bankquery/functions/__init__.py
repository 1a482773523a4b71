"""
Function registry, the financial function library and statistical operations.

Usage:
    from bankquery.functions import default_function_registry
    reg = default_function_registry()
    match = reg.find_best_function_by_prompt("calculate average principal", ["loans"])
"""

from bankquery.functions.models import FunctionMatch, FunctionSpec, ParameterSpec
from bankquery.functions.registry import FunctionRegistry, default_function_registry, display_name

__all__ = [
    "FunctionMatch",
    "FunctionRegistry",
    "FunctionSpec",
    "ParameterSpec",
    "default_function_registry",
    "display_name",
]
