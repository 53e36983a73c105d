import json
import threading

import pytest

from app.batchverify.modules.batch_verification.errors import RegistryLoadError, RegistryUnavailable
from app.batchverify.modules.batch_verification.models import BatchRecord
from app.batchverify.modules.batch_verification.registry import (
    BatchRegistry,
    RegistryHolder,
    load_registry,
    normalize_batch_code,
    parse_batch_index,
    parse_batch_index_bytes,
)
from app.batchverify.storage import LocalStorage, StorageError

INDEX = {
    "ADIF5HW825": {
        "code": "ADIF5HW825",
        "productName": "Tomato Pulp",
        "testDate": "22/09/2025",
        "labName": "BANGALORE ANALYTICAL RESEARCH CENTRE PVT LTD",
        "reportNumber": "BARC/FD/25/09/0456",
        "reportPath": "reports/ADIF5HW825.pdf",
        "traceability": {"l1_producer": "Adi Bharat E-Tech (OPC) Pvt. Ltd.", "l4_lab": "BARC - Bangalore"},
    },
    "ADIT28WS25": {
        "code": "ADIT28WS25",
        "productName": "Wheat Processed",
        "reportPath": "reports/ADIT28WS25.pdf",
    },
}


def _record(code: str) -> BatchRecord:
    return BatchRecord(
        code=code,
        product_name="P",
        test_date="",
        lab_name="",
        report_number="",
        report_locator=f"reports/{code}.pdf",
    )


class TestNormalize:
    def test_trims_and_uppercases(self):
        assert normalize_batch_code("  adif5hw825 \n") == "ADIF5HW825"

    def test_idempotent(self):
        for c in ("adif5hw825 ", "AdIf5Hw825", " ZZ "):
            assert normalize_batch_code(normalize_batch_code(c)) == normalize_batch_code(c)

    def test_none_is_empty(self):
        assert normalize_batch_code(None) == ""


class TestLookup:
    def test_exact_match(self):
        reg = parse_batch_index(INDEX)
        rec = reg.lookup("ADIF5HW825")
        assert rec is not None
        assert rec.product_name == "Tomato Pulp"
        assert rec.report_number == "BARC/FD/25/09/0456"

    @pytest.mark.parametrize("code", ["ADIF5HW825", "adif5hw825", " ADIF5HW825 ", "adif5hw825 ", "\tAdIf5hW825"])
    def test_case_and_whitespace_insensitive(self, code):
        reg = parse_batch_index(INDEX)
        assert reg.lookup(code) is reg.lookup("ADIF5HW825")

    def test_no_partial_or_fuzzy_matches(self):
        reg = parse_batch_index(INDEX)
        assert reg.lookup("ADIF5HW82") is None
        assert reg.lookup("ADIF5HW8255") is None
        assert reg.lookup("ADIF5 HW825") is None
        assert reg.lookup("") is None
        assert reg.lookup(None) is None

    def test_lookup_is_pure(self):
        reg = parse_batch_index(INDEX)
        first = reg.lookup("ADIT28WS25")
        second = reg.lookup("ADIT28WS25")
        assert first is second
        assert len(reg) == 2

    def test_mapping_cannot_be_mutated(self):
        reg = parse_batch_index(INDEX)
        with pytest.raises(TypeError):
            reg._records["NEW"] = _record("NEW")  # type: ignore[index]

    def test_contains_and_codes(self):
        reg = parse_batch_index(INDEX)
        assert "adit28ws25" in reg
        assert 42 not in reg
        assert reg.codes() == ["ADIF5HW825", "ADIT28WS25"]


class TestParseIndex:
    def test_traceability_is_optional_metadata(self):
        reg = parse_batch_index(INDEX)
        tomato = reg.lookup("ADIF5HW825")
        assert tomato.traceability.producer == "Adi Bharat E-Tech (OPC) Pvt. Ltd."
        assert tomato.traceability.lab == "BARC - Bangalore"
        assert tomato.traceability.source == ""
        assert reg.lookup("ADIT28WS25").traceability is None

    def test_optional_display_fields_default_empty(self):
        wheat = parse_batch_index(INDEX).lookup("ADIT28WS25")
        assert (wheat.test_date, wheat.lab_name, wheat.report_number) == ("", "", "")

    def test_lowercase_key_matching_its_code_is_normalized(self):
        reg = parse_batch_index({"abc123": {"code": "abc123", "productName": "X", "reportPath": "r.pdf"}})
        assert reg.codes() == ["ABC123"]
        assert reg.lookup("ABC123").code == "ABC123"

    def test_rejects_aliasing_key(self):
        with pytest.raises(RegistryLoadError, match="does not match"):
            parse_batch_index({"ALIAS": {"code": "ADIF5HW825", "productName": "X", "reportPath": "r.pdf"}})

    def test_rejects_keys_colliding_after_normalization(self):
        with pytest.raises(RegistryLoadError, match="Duplicate"):
            parse_batch_index(
                {
                    "abc": {"code": "abc", "productName": "X", "reportPath": "a.pdf"},
                    "ABC": {"code": "ABC", "productName": "Y", "reportPath": "b.pdf"},
                }
            )

    @pytest.mark.parametrize("field", ["code", "productName", "reportPath"])
    def test_rejects_missing_required_field(self, field):
        entry = {"code": "ABC", "productName": "X", "reportPath": "a.pdf"}
        entry[field] = "  "
        with pytest.raises(RegistryLoadError):
            parse_batch_index({"ABC": entry})

    def test_rejects_wrong_shapes(self):
        with pytest.raises(RegistryLoadError):
            parse_batch_index([])
        with pytest.raises(RegistryLoadError):
            parse_batch_index({"ABC": "reports/a.pdf"})
        with pytest.raises(RegistryLoadError):
            parse_batch_index({"ABC": {"code": "ABC", "productName": "X", "reportPath": "a", "traceability": "L1"}})

    def test_rejects_invalid_json(self):
        with pytest.raises(RegistryLoadError, match="not valid JSON"):
            parse_batch_index_bytes(b"{not json")
        with pytest.raises(RegistryLoadError):
            parse_batch_index_bytes(b"\xff\xfe")


class TestLoadRegistry:
    def test_loads_from_storage(self, tmp_path):
        storage = LocalStorage(root=tmp_path)
        storage.put_bytes("batch-index.json", json.dumps(INDEX).encode("utf-8"))
        reg = load_registry(storage, "batch-index.json")
        assert len(reg) == 2

    def test_missing_index_is_load_error(self, tmp_path):
        with pytest.raises(RegistryLoadError, match="Cannot fetch"):
            load_registry(LocalStorage(root=tmp_path), "batch-index.json")

    def test_storage_fault_is_load_error(self, tmp_path):
        class Broken(LocalStorage):
            def open(self, key):
                raise StorageError("timeout")

        with pytest.raises(RegistryLoadError):
            load_registry(Broken(root=tmp_path), "batch-index.json")


class TestRegistryHolder:
    def test_unloaded_holder_refuses(self):
        holder = RegistryHolder()
        assert not holder.is_loaded
        with pytest.raises(RegistryUnavailable):
            holder.current()

    def test_swap_replaces_whole_registry(self):
        old = BatchRegistry([_record("AAA")])
        new = BatchRegistry([_record("BBB")])
        holder = RegistryHolder(old)
        seen = holder.current()

        previous = holder.swap(new)

        assert previous is old
        assert holder.current() is new
        # a reader holding the old reference keeps a consistent view
        assert seen.lookup("AAA") is not None
        assert seen.lookup("BBB") is None

    def test_concurrent_readers_see_either_registry_whole(self):
        a = BatchRegistry([_record(f"A{i}") for i in range(50)])
        b = BatchRegistry([_record(f"B{i}") for i in range(50)])
        holder = RegistryHolder(a)
        errors: list[str] = []

        def reader():
            for _ in range(500):
                reg = holder.current()
                codes = reg.codes()
                if len({c[0] for c in codes}) != 1 or len(codes) != 50:
                    errors.append("mixed view")

        def writer():
            for i in range(200):
                holder.swap(b if i % 2 == 0 else a)

        threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
