# tests/conftest.py
"""
Shared fixtures and sample instruction records for the vmgen test suite.
"""

import textwrap

import pytest

from vmgen.schema import load_records


def _dedent(src: str) -> str:
    return textwrap.dedent(src).lstrip("\n")


# ═══════════════════════════════════════════════════════════════════════════
# SAMPLE RECORD STREAMS
# ═══════════════════════════════════════════════════════════════════════════

ADD_YAML = _dedent("""
    ---
    name: "+"
    inst: Add
    is-primitive: true
    params: [a, b]
    type: |
      ~% tI --> tI --> tI
    code: |
      a + b
""")

NOOP_YAML = _dedent("""
    ---
    inst: Noop
    code: |
      exec stack env code dump
""")

# Typed params: "string" has no inline rule, "int" has one.
SUBSTRING_YAML = _dedent("""
    ---
    name: string-sub
    inst: PrimitiveStringSub
    is-primitive: true
    params: [{s: string}, {i: int}, x]
    type: |
      ~% tS --> tI --> tI --> tS
    code: |
      StringConstant(String.sub s i (get_int x))
""")

CLOSURE_YAML = _dedent("""
    ---
    inst: MakeClosure
    fields:
      - varloc: varloc
      - body: instruction list
    suppress-pp: true
    code: |
      let clo = Closure(varloc, body, env) in
      exec (clo :: stack) env code dump
""")

REDUCE_YAML = _dedent("""
    ---
    name: map
    inst: PrimitiveListMap
    is-primitive: true
    needs-reducef: true
    separated: true
    params: [f, {lst: list}]
    type: |
      let tyA = ~@ 0 in
      let tyB = ~@ 1 in
      (tyA @-> tyB) @-> (~% tyA) @-> (~% tyB)
    code: |
      make_list (List.map (fun v -> reducef f [v]) lst)
    code-interp: |
      make_list (List.map (fun v -> reducef env f [v]) lst)
""")

NO_INTERP_YAML = _dedent("""
    ---
    name: deref
    inst: Deref
    is-primitive: true
    no-interp: true
    no-ircode: true
    params: [r]
    type: |
      ~% tR --> tV
    code: |
      !r
""")

CUSTOM_PP_YAML = _dedent("""
    ---
    inst: Jump
    fields:
      - target: int
    custom-pp: "fun fmt n -> Format.fprintf fmt \\"OpJump(%d)\\" n"
    code: |
      exec stack env code dump
""")

NULLARY_PRIM_YAML = _dedent("""
    ---
    name: unit
    inst: UnitConstant
    is-primitive: true
    type: |
      tU
    code: |
      UnitConstant
""")

ALL_YAML = "".join([
    ADD_YAML,
    NOOP_YAML,
    SUBSTRING_YAML,
    CLOSURE_YAML,
    REDUCE_YAML,
    NO_INTERP_YAML,
    CUSTOM_PP_YAML,
    NULLARY_PRIM_YAML,
])


def records_of(src: str) -> list:
    """Decode every record of *src* eagerly."""
    return list(load_records(src, source="<test>"))


@pytest.fixture
def all_records():
    return records_of(ALL_YAML)


@pytest.fixture
def write_file(tmp_path):
    """Write *text* to ``tmp_path / name`` and return the path."""

    def _write(name: str, text: str):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
