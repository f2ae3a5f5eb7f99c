"""vmgen/rules.py — destructuring rules for typed parameters.

When the dispatch emitter pops a typed parameter off the stack it either
matches the value inline against the constructor for its tag, or, for tags
without a rule, binds a temporary and converts it afterwards with the
accessor ``get_<tag>``.  The table below is the complete list of inline
tags; a missing entry is the accessor fallback, not an error.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional

from vmgen.config import DEFAULT_CONFIG, GeneratorConfig

Template = Callable[[str], str]


def _constructor(ctor: str) -> Template:
    return lambda binding: f"{ctor}({binding})"


DESTRUCTURING_RULES: Mapping[str, Template] = {
    "int": _constructor("IntegerConstant"),
    "bool": _constructor("BooleanConstant"),
    "context": _constructor("Context"),
    "float": _constructor("FloatConstant"),
    "horz": _constructor("Horz"),
    "vert": _constructor("Vert"),
    "length": _constructor("LengthConstant"),
    "math": _constructor("MathValue"),
    "path_value": _constructor("PathValue"),
    "prepath": _constructor("PrePathValue"),
    "regexp": _constructor("RegExpConstant"),
}


def lookup_rule(
    tag: str, rules: Mapping[str, Template] = DESTRUCTURING_RULES
) -> Optional[Template]:
    """Return the inline template for *tag*, or ``None`` to use the accessor."""
    return rules.get(tag)


def accessor_name(tag: str, config: GeneratorConfig = DEFAULT_CONFIG) -> str:
    """Name of the conversion function for *tag*, e.g. ``get_string``."""
    return f"{config.accessor_prefix}{tag}"


def inline_tags(rules: Mapping[str, Template] = DESTRUCTURING_RULES) -> Dict[str, str]:
    """Map each inline tag to a sample pattern, for ``--list-rules``."""
    return {tag: template("v") for tag, template in sorted(rules.items())}


__all__ = [
    "DESTRUCTURING_RULES",
    "Template",
    "lookup_rule",
    "accessor_name",
    "inline_tags",
]
