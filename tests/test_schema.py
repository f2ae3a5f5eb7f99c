# tests/test_schema.py
"""
Tests for record decoding: YAML documents → InstructionRecord.
"""

import logging

import pytest

from vmgen.errors import (
    DuplicateRecordError,
    MissingFieldError,
    MissingInstError,
    RecordDecodeError,
    RecordError,
    VmgenErrorCodes,
)
from vmgen.schema import (
    DuplicatePolicy,
    Field,
    InstructionRecord,
    TypedParam,
    ValueParam,
    check_duplicates,
    load_records,
)
from tests.conftest import (
    ADD_YAML, CLOSURE_YAML, NOOP_YAML, REDUCE_YAML, SUBSTRING_YAML,
    records_of,
)


class TestDecodeParams:

    def test_value_params(self):
        (rec,) = records_of(ADD_YAML)
        assert rec.params == (ValueParam("a"), ValueParam("b"))
        assert rec.arity == 2

    def test_typed_and_value_params_keep_order(self):
        (rec,) = records_of(SUBSTRING_YAML)
        assert rec.params == (
            TypedParam("s", "string"),
            TypedParam("i", "int"),
            ValueParam("x"),
        )

    def test_absent_params_is_zero_arity(self):
        (rec,) = records_of(NOOP_YAML)
        assert rec.params == ()
        assert rec.arity == 0

    def test_multi_key_param_rejected(self):
        with pytest.raises(RecordError) as exc_info:
            records_of("inst: X\nparams: [{a: int, b: int}]\n")
        assert exc_info.value.code == VmgenErrorCodes.INVALID_PARAMETER

    def test_numeric_param_rejected(self):
        with pytest.raises(RecordError):
            records_of("inst: X\nparams: [1]\n")

    def test_params_must_be_list(self):
        with pytest.raises(RecordError):
            records_of("inst: X\nparams: a\n")


class TestDecodeFields:

    def test_fields_in_order(self):
        (rec,) = records_of(CLOSURE_YAML)
        assert rec.fields == (
            Field("varloc", "varloc"),
            Field("body", "instruction list"),
        )

    def test_absent_fields_is_none(self):
        (rec,) = records_of(NOOP_YAML)
        assert rec.fields is None

    def test_empty_fields_rejected(self):
        with pytest.raises(RecordError) as exc_info:
            records_of("inst: X\nfields: []\n")
        assert exc_info.value.code == VmgenErrorCodes.INVALID_FIELD


class TestDecodeFlags:

    def test_flags_default_false(self):
        (rec,) = records_of(NOOP_YAML)
        assert rec.is_primitive is False
        assert rec.no_interp is False
        assert rec.no_ircode is False
        assert rec.needs_reducef is False
        assert rec.separated is False
        assert rec.suppress_pp is False
        assert rec.custom_pp is None

    def test_flags_set(self):
        (rec,) = records_of(REDUCE_YAML)
        assert rec.is_primitive
        assert rec.needs_reducef
        assert rec.separated

    def test_non_boolean_flag_rejected(self):
        with pytest.raises(RecordError) as exc_info:
            records_of("inst: X\nis-primitive: maybe\n")
        assert exc_info.value.code == VmgenErrorCodes.INVALID_FLAG


class TestDecodeText:

    def test_code_kept_verbatim(self):
        (rec,) = records_of(CLOSURE_YAML)
        assert rec.code == (
            "let clo = Closure(varloc, body, env) in\n"
            "exec (clo :: stack) env code dump\n"
        )

    def test_interp_body_follows_separated(self):
        (rec,) = records_of(REDUCE_YAML)
        assert "reducef env f" in rec.interp_body()
        (plain,) = records_of(ADD_YAML)
        assert plain.interp_body() == "a + b\n"

    def test_non_text_code_rejected(self):
        with pytest.raises(RecordError):
            records_of("inst: X\ncode: 42\n")

    def test_missing_fragment_raises_on_use(self):
        rec = InstructionRecord.from_mapping({"inst": "X", "separated": True})
        with pytest.raises(MissingFieldError) as exc_info:
            rec.interp_body()
        assert exc_info.value.key == "code-interp"
        assert "'X'" in str(exc_info.value)

    def test_missing_inst_raises_on_use(self):
        rec = InstructionRecord.from_mapping({"code": "x"})
        assert rec.inst is None
        with pytest.raises(MissingInstError):
            rec.require_inst()

    def test_unknown_keys_ignored(self):
        rec = InstructionRecord.from_mapping({"inst": "X", "comment": "hi"})
        assert rec.inst == "X"


class TestLoadRecords:

    def test_stream_order(self):
        recs = records_of(ADD_YAML + NOOP_YAML + SUBSTRING_YAML)
        assert [r.inst for r in recs] == ["Add", "Noop", "PrimitiveStringSub"]

    def test_spans_record_document_and_line(self):
        recs = records_of(ADD_YAML + NOOP_YAML)
        assert recs[0].span.document == 0
        assert recs[1].span.document == 1
        assert recs[0].span.file == "<test>"
        assert recs[1].span.line > recs[0].span.line

    def test_empty_documents_skipped(self):
        recs = records_of("---\n---\ninst: A\n---\n")
        assert [r.inst for r in recs] == ["A"]

    def test_empty_stream(self):
        assert records_of("") == []

    def test_non_mapping_document_rejected(self):
        with pytest.raises(RecordError):
            records_of("- just\n- a list\n")

    def test_malformed_document_fails_after_earlier_records(self):
        seen = []
        with pytest.raises(RecordDecodeError) as exc_info:
            for rec in load_records(ADD_YAML + "---\ninst: [unclosed\n"):
                seen.append(rec.inst)
        assert seen == ["Add"]
        assert exc_info.value.code == VmgenErrorCodes.MALFORMED_DOCUMENT
        assert exc_info.value.span.document == 1
        assert exc_info.value.span.line > 0

    def test_records_compare_by_content(self):
        (a,) = records_of(ADD_YAML)
        (b,) = records_of("\n\n" + ADD_YAML)
        assert a == b


class TestDuplicates:

    def _recs(self):
        return records_of("inst: A\n---\ninst: B\n---\ninst: A\n")

    def test_allow_keeps_everything(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vmgen"):
            out = list(check_duplicates(self._recs(), "inst", DuplicatePolicy.ALLOW))
        assert [r.inst for r in out] == ["A", "B", "A"]
        assert not caplog.records

    def test_warn_keeps_everything_and_logs(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vmgen"):
            out = list(check_duplicates(self._recs(), "inst", DuplicatePolicy.WARN))
        assert [r.inst for r in out] == ["A", "B", "A"]
        assert any("duplicate inst 'A'" in r.getMessage() for r in caplog.records)

    def test_reject_raises_on_second_occurrence(self):
        seen = []
        with pytest.raises(DuplicateRecordError) as exc_info:
            for rec in check_duplicates(self._recs(), "inst", DuplicatePolicy.REJECT):
                seen.append(rec.inst)
        assert seen == ["A", "B"]
        assert exc_info.value.value == "A"
        assert exc_info.value.first.document == 0
        assert exc_info.value.span.document == 2

    def test_records_without_key_not_tracked(self):
        recs = records_of("inst: A\n---\ninst: B\n")
        out = list(check_duplicates(recs, "name", DuplicatePolicy.REJECT))
        assert len(out) == 2
