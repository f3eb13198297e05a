"""Tests for the scheduled batch entry point helpers."""

import json

import pytest
from character_enrichment import BatchReport
from run_character_enrichment import load_seed_file, print_report


def test_load_seed_file_list(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps([{"id": "a1", "title": "Bleach", "characters": [{"name": "Rukia"}]}])
    )

    documents = load_seed_file(str(path))

    assert [a.id for a in documents] == ["a1"]
    assert documents[0].characters[0].name == "Rukia"


def test_load_seed_file_data_envelope(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"data": [{"id": "a1", "title": "Bleach"}]}))

    assert len(load_seed_file(str(path))) == 1


def test_load_seed_file_missing(tmp_path):
    with pytest.raises(SystemExit):
        load_seed_file(str(tmp_path / "missing.json"))


def test_print_report(capsys):
    print_report(BatchReport(processed=2, succeeded=1, failed=1, errors=["a1/Nami: boom"]))

    out = capsys.readouterr().out
    assert "Characters processed: 2" in out
    assert "a1/Nami: boom" in out


def test_load_seed_file_assigns_missing_ids(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps([{"title": "Bleach"}]))

    documents = load_seed_file(str(path))

    assert documents[0].id.startswith("anime_")
