"""
Command Line Test Suite

Runs cli.main() against catalog and payload files in a temp directory.
"""

import json

import pytest
import yaml

from mesh_schema.cli import main


CATALOG = {
    "components": {
        "schemas": {
            "Order": {
                "type": "object",
                "required": ["id", "total"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "total": {"type": "number", "minimum": 0},
                    "status": {"type": "string", "enum": ["open", "paid"]},
                },
            },
        },
        "messages": {
            "orderPlaced": {"payload": "#/components/schemas/Order"},
        },
    },
}


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG))
    return path


def write_json(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


class TestValidateCommand:
    """mesh-schema validate"""

    def test_valid_payload(self, tmp_path, catalog_file, capsys):
        payload = write_json(tmp_path, "ok.json", {"id": "o1", "total": 9.5})
        code = main(["--config-dir", str(tmp_path), "validate", str(catalog_file), "orderPlaced", payload])
        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["valid"] is True
        assert output["results"] == [{"index": 0, "valid": True, "errors": []}]

    def test_invalid_payload(self, tmp_path, catalog_file, capsys):
        payload = write_json(tmp_path, "bad.json", {"total": -1})
        code = main(["--config-dir", str(tmp_path), "validate", str(catalog_file), "orderPlaced", payload])
        output = json.loads(capsys.readouterr().out)
        assert code == 1
        errors = output["results"][0]["errors"]
        assert [(e["path"], e["constraint"]) for e in errors] == [
            (["id"], "required"),
            (["total"], "minimum"),
        ]

    def test_batch_file(self, tmp_path, catalog_file, capsys):
        payload = write_json(tmp_path, "batch.json", [
            {"id": "a", "total": 1},
            {"id": "b", "total": 2, "status": "lost"},
            {"id": "c", "total": 3},
        ])
        code = main([
            "--config-dir", str(tmp_path),
            "validate", str(catalog_file), "orderPlaced", payload, "--batch", "--workers", "2",
        ])
        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert [r["index"] for r in output["results"]] == [0, 1, 2]
        assert [r["valid"] for r in output["results"]] == [True, False, True]

    def test_unknown_message(self, tmp_path, catalog_file, capsys):
        payload = write_json(tmp_path, "ok.json", {"id": "o1", "total": 1})
        code = main(["--config-dir", str(tmp_path), "validate", str(catalog_file), "ghost", payload])
        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert output["results"][0]["errors"][0]["constraint"] == "not_found"

    def test_yaml_output(self, tmp_path, catalog_file, capsys):
        payload = write_json(tmp_path, "ok.json", {"id": "o1", "total": 1})
        code = main([
            "--config-dir", str(tmp_path), "--format", "yaml",
            "validate", str(catalog_file), "orderPlaced", payload,
        ])
        output = yaml.safe_load(capsys.readouterr().out)
        assert code == 0
        assert output["valid"] is True

    def test_missing_catalog(self, tmp_path, capsys):
        payload = write_json(tmp_path, "ok.json", {})
        code = main(["--config-dir", str(tmp_path), "validate", str(tmp_path / "none.json"), "x", payload])
        assert code == 2
        assert capsys.readouterr().err.startswith("error:")


class TestGeneratorCommands:
    """mesh-schema example / negatives"""

    def test_example(self, tmp_path, catalog_file, capsys):
        code = main(["--config-dir", str(tmp_path), "example", str(catalog_file), "orderPlaced"])
        example = json.loads(capsys.readouterr().out)
        assert code == 0
        assert set(example) == {"id", "total", "status"}

    def test_example_count(self, tmp_path, catalog_file, capsys):
        code = main(["--config-dir", str(tmp_path), "example", str(catalog_file), "orderPlaced", "-n", "3"])
        examples = json.loads(capsys.readouterr().out)
        assert code == 0
        assert len(examples) == 3

    def test_example_unknown_message(self, tmp_path, catalog_file, capsys):
        code = main(["--config-dir", str(tmp_path), "example", str(catalog_file), "ghost"])
        assert code == 2
        assert "ghost" in capsys.readouterr().err

    def test_negatives(self, tmp_path, catalog_file, capsys):
        code = main(["--config-dir", str(tmp_path), "negatives", str(catalog_file), "orderPlaced"])
        cases = json.loads(capsys.readouterr().out)
        assert code == 0
        assert "empty_object" in [c["label"] for c in cases]
        assert all("constraint" in c for c in cases)


class TestCompatCommand:
    """mesh-schema compat"""

    def test_compatible(self, tmp_path, catalog_file, capsys):
        code = main(["--config-dir", str(tmp_path), "compat", str(catalog_file), str(catalog_file)])
        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"compatible": True, "changes": []}

    def test_breaking(self, tmp_path, catalog_file, capsys):
        changed = json.loads(json.dumps(CATALOG))
        changed["components"]["schemas"]["Order"]["required"].append("status")
        new_file = write_json(tmp_path, "new.json", changed)
        code = main(["--config-dir", str(tmp_path), "compat", str(catalog_file), new_file])
        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert output["changes"][0]["kind"] == "required_added"
