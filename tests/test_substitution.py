import pytest

from schematui.config import ConfigStore
from schematui.options import format_value, resolve_params, substitute, template_paths


@pytest.mark.parametrize("template, values, expected", [
    ("list-models.sh preview ${voice_config.language}", {"voice_config.language": "es"},
     "list-models.sh preview es"),
    ("${a.x}-${a.x}", {"a.x": "1"}, "1-1"),
    ("echo ${ a.x }", {"a.x": "spaced"}, "echo spaced"),
    ("echo ${missing.path}!", {}, "echo !"),
    ("flag=${a.on} n=${a.n}", {"a.on": True, "a.n": 3}, "flag=true n=3"),
    ("no tokens here", {"a.x": "1"}, "no tokens here"),
    ("literal $HOME stays", {}, "literal $HOME stays"),
], ids=["single", "repeated", "whitespace", "missing", "scalars", "plain", "shell variable"])
def test_substitute(template, values, expected):
    assert substitute(template, values.get) == expected


def test_substitute_accepts_store():
    store = ConfigStore({"general": {"theme": "dark"}})
    assert substitute("theme=${general.theme}", store) == "theme=dark"


def test_format_value():
    assert format_value(None) == ""
    assert format_value(False) == "false"
    assert format_value(1.5) == "1.5"
    assert format_value(["a"]) == ""


def test_template_paths_in_order():
    assert template_paths("${b.y} ${a.x} ${b.y}") == ["b.y", "a.x"]
    assert template_paths(None) == []


def test_resolve_params_follows_declared_order():
    values = {"a.x": "1", "b.y": 2}
    assert resolve_params(["b.y", "a.x", "c.z"], values.get) == ("2", "1", "")
