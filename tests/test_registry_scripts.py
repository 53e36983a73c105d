import json

from scripts import upload_registry, validate_registry

INDEX = {
    "ADIF5HW825": {"code": "ADIF5HW825", "productName": "Tomato Pulp", "reportPath": "reports/ADIF5HW825.pdf"},
    "FOLDER0001": {"code": "FOLDER0001", "productName": "Spice Mix", "reportPath": "https://drive.google.com/drive/folders/1AbC"},
}


def _write(tmp_path, payload) -> str:
    p = tmp_path / "batch-index.json"
    p.write_text(json.dumps(payload), encoding="utf-8")
    return str(p)


def test_validate_ok(tmp_path, capsys):
    assert validate_registry.main([_write(tmp_path, INDEX)]) == 0
    out = capsys.readouterr().out
    assert "OK: 2 batch codes" in out
    assert "folder" in out


def test_validate_reports_missing_objects(tmp_path, capsys):
    reports = tmp_path / "mirror"
    reports.mkdir()
    assert validate_registry.main([_write(tmp_path, INDEX), "--reports-root", str(reports)]) == 1
    assert "[MISSING]" in capsys.readouterr().out


def test_validate_rejects_aliasing(tmp_path, capsys):
    bad = {"OTHER": {"code": "ADIF5HW825", "productName": "X", "reportPath": "a.pdf"}}
    assert validate_registry.main([_write(tmp_path, bad)]) == 1
    assert "INVALID" in capsys.readouterr().out


def test_upload_publishes_index_and_reports(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.delenv("STORAGE_ROOT", raising=False)
    monkeypatch.delenv("REGISTRY_INDEX_KEY", raising=False)
    src = tmp_path / "src"
    (src / "reports").mkdir(parents=True)
    (src / "reports" / "ADIF5HW825.pdf").write_bytes(b"%PDF-1.4")

    assert upload_registry.main([_write(tmp_path, INDEX), "--reports-dir", str(src)]) == 0

    assert (tmp_path / "storage" / "batch-index.json").is_file()
    assert (tmp_path / "storage" / "reports" / "ADIF5HW825.pdf").read_bytes() == b"%PDF-1.4"
