import json
import tomllib

import pytest

from schematui.__main__ import main, parse_args

SCHEMA = {
    "title": "Voice",
    "sections": [{"id": "voice_config", "title": "Voice", "fields": [
        {"id": "language", "label": "Language", "type": "enum", "default": "en",
         "options_source": {"type": "static", "values": ["en", "es"]}},
        {"id": "model", "label": "Model", "type": "enum",
         "options_source": {"type": "command", "command": "",
                            "depends_on": ["voice_config.language"]}},
    ]}],
}


@pytest.fixture
def schema_file(tmp_path, models):
    data = json.loads(json.dumps(SCHEMA))
    data["sections"][0]["fields"][1]["options_source"]["command"] = \
        models.command("preview ${voice_config.language}")
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(data))
    return path


def test_parse_args_defaults():
    args = parse_args(["schema.json"])
    assert args.schema == ["schema.json"]
    assert args.config == "config.toml"
    assert not args.defconfig
    assert args.strict is None


def test_print_options(schema_file, tmp_path, capsys):
    code = main([str(schema_file), "-c", str(tmp_path / "config.toml"), "--options", "voice_config.model"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == ["whisper-en-tiny", "whisper-en-base", "whisper-en-small"]


def test_print_options_unknown_field(schema_file, tmp_path, capsys):
    code = main([str(schema_file), "-c", str(tmp_path / "config.toml"), "--options", "voice_config.nope"])
    assert code == 2
    assert "Unknown enum field" in capsys.readouterr().err


def test_defconfig_writes_defaults(schema_file, tmp_path):
    config = tmp_path / "config.toml"
    assert main([str(schema_file), "-c", str(config), "-d"]) == 0
    assert tomllib.loads(config.read_text())["voice_config"]["language"] == "en"


def test_invalid_schema_exits_with_error(tmp_path, capsys):
    path = tmp_path / "schema.json"
    path.write_text("{broken")
    assert main([str(path), "-c", str(tmp_path / "config.toml"), "-d"]) == 1
    assert "Invalid JSON" in capsys.readouterr().err
