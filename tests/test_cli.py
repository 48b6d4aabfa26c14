# ==============================================
# Tests for the command line
# ==============================================

import json

from geo_quality import cli
from geo_quality.cli import build_parser, main
from geo_quality.errors import StoreQueryError


def write_json(path, value):
    path.write_text(json.dumps(value), encoding="utf-8")
    return path


class TestParser:
    def test_analyze(self):
        args = build_parser().parse_args(["analyze", "buildings", "--records", "100"])
        assert (args.command, args.dataset, args.records) == ("analyze", "buildings", 100)

    def test_task(self):
        args = build_parser().parse_args(["task", "65f1c0ffee0000000000beef"])
        assert args.task_id == "65f1c0ffee0000000000beef"


class TestAnalyzeFile:
    def test_prints_state(self, tmp_path, capsys):
        export = write_json(tmp_path / "parcels.json", [
            {"geom": {"type": "Point", "coordinates": [34.3, 61.8]}, "name": "a"},
            {"geom": {"type": "Point", "coordinates": [34.4, 61.9]}, "name": "b"},
        ])
        schema = write_json(tmp_path / "schema.json", {"fields": [
            {"name": "geom", "type": "Geometry"},
            {"name": "name", "type": "String"},
        ]})
        dictionaries = write_json(tmp_path / "dic.json", {"dic": [], "regionTypes": [], "municipalitetTypes": []})

        code = main([
            "--env", str(tmp_path / "missing.env"),
            "analyze-file", str(export),
            "--schema", str(schema),
            "--dictionaries", str(dictionaries),
        ])

        assert code == 0
        state = json.loads(capsys.readouterr().out)
        assert state["properties"]["has_geometry"] is True
        assert state["fieldsQuality"]["geom"]["validness"] == 1.0
        assert state["fieldsQuality"]["name"]["entropy"] == 1.0

    def test_missing_dictionaries_is_configuration_error(self, tmp_path):
        export = write_json(tmp_path / "parcels.json", [{"a": 1}])
        schema = write_json(tmp_path / "schema.json", [{"name": "a", "type": "Int"}])
        code = main([
            "--env", str(tmp_path / "missing.env"),
            "analyze-file", str(export),
            "--schema", str(schema),
            "--dictionaries", str(tmp_path / "nope.json"),
        ])
        assert code == 2


class TestExitCodes:
    def test_rejected_query_exits_with_one(self, tmp_path, monkeypatch):
        def run_store(config, args):
            raise StoreQueryError("dataset listing failed: not authorized")

        monkeypatch.setattr(cli, "run_store", run_store)
        assert main(["--env", str(tmp_path / "missing.env"), "analyze-all"]) == 1
