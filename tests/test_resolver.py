import os

import pytest

from schematui.errors import ExecutionError, ParseError, PatternError
from schematui.options import FunctionRegistry, OptionResolver
from schematui.schema import CommandSource, FileListSource, FunctionSource, StaticSource


@pytest.fixture
def resolver():
    return OptionResolver()


def test_static_values(resolver):
    assert resolver.resolve(StaticSource(values=["a", "b"])) == ["a", "b"]


def test_command_json_output(resolver, models):
    source = CommandSource(template=models.command("preview ${voice_config.language}"),
                           depends_on=["voice_config.language"])

    assert resolver.resolve(source, ("es",)) == ["whisper-es-tiny", "whisper-es-base"]
    assert models.calls == ["preview es"]


def test_command_params_win_over_live_lookup(resolver, models):
    source = CommandSource(template=models.command("${voice_config.model_type} ${voice_config.language}"),
                           depends_on=["voice_config.language"])
    live = {"voice_config.language": "fr", "voice_config.model_type": "full"}

    assert resolver.resolve(source, ("es",), live.get) == ["whisper-es-medium", "whisper-es-large"]


def test_command_missing_value_substitutes_empty(resolver, models):
    source = CommandSource(template=models.command("preview ${voice_config.language}"),
                           depends_on=["voice_config.language"])
    assert resolver.resolve(source, ("",)) == []


def test_command_non_zero_exit(resolver, python_command):
    source = CommandSource(template=python_command("import sys; sys.stderr.write('boom'); sys.exit(3)"))

    with pytest.raises(ExecutionError, match="boom") as excinfo:
        resolver.resolve(source)
    assert excinfo.value.exit_code == 3
    assert excinfo.value.stderr == "boom"
    assert excinfo.value.kind == "execution"


@pytest.mark.parametrize("code, message", [
    ("print('not json')", "not valid JSON"),
    ("print('{}')", "Expected a list of strings"),
    ("print('[1, 2]')", "found int item"),
], ids=["invalid json", "object", "non-string items"])
def test_command_bad_output(resolver, python_command, code, message):
    with pytest.raises(ParseError, match=message):
        resolver.resolve(CommandSource(template=python_command(code)))


def test_command_lines_output(resolver, python_command):
    source = CommandSource(template=python_command("print('a'); print(''); print('  b  ')"), output="lines")
    assert resolver.resolve(source) == ["a", "b"]


def test_command_runs_in_cwd(tmp_path, python_command):
    source = CommandSource(template=python_command("import os, json; print(json.dumps(os.listdir('.')))"))
    (tmp_path / "marker").write_text("")

    assert OptionResolver(cwd=str(tmp_path)).resolve(source) == ["marker"]


def test_command_reports_spawned_process(resolver, python_command):
    spawned = []
    resolver.resolve(CommandSource(template=python_command("print('[]')")), on_spawn=spawned.append)
    assert len(spawned) == 1
    assert spawned[0].returncode == 0


def test_function_called_with_params():
    registry = FunctionRegistry()

    @registry.register("voices")
    def voices(language):
        return [f"{language}-alice", f"{language}-bob"]

    resolver = OptionResolver(registry)
    source = FunctionSource(handle="voices", depends_on=["voice_config.language"])

    assert resolver.resolve(source, ("es",)) == ["es-alice", "es-bob"]
    assert "voices" in registry
    assert registry.names() == ["voices"]


def test_function_provider_object():
    class Themes:
        def get_options(self):
            return ["dark", "light"]

    registry = FunctionRegistry({"themes": Themes()})
    assert OptionResolver(registry).resolve(FunctionSource(handle="themes")) == ["dark", "light"]


def test_unknown_function(resolver):
    with pytest.raises(ExecutionError, match="Unknown option function: nope"):
        resolver.resolve(FunctionSource(handle="nope"))


def test_failing_function():
    registry = FunctionRegistry()
    registry.register("broken", lambda: 1 / 0)

    with pytest.raises(ExecutionError, match="broken failed"):
        OptionResolver(registry).resolve(FunctionSource(handle="broken"))

    registry.unregister("broken")
    assert "broken" not in registry


def test_function_bad_result():
    registry = FunctionRegistry({"bad": lambda: "not a list"})
    with pytest.raises(ParseError):
        OptionResolver(registry).resolve(FunctionSource(handle="bad"))


@pytest.fixture
def pictures(tmp_path):
    for name in ["b.png", "a.png", "notes.txt"]:
        (tmp_path / name).write_text("")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "c.png").write_text("")
    return tmp_path


def test_file_list_relative_to_directory(resolver, pictures):
    source = FileListSource(directory=str(pictures), pattern="*.png")
    assert resolver.resolve(source) == ["a.png", "b.png"]


def test_file_list_recursive(resolver, pictures):
    source = FileListSource(directory=str(pictures), pattern="**/*.png")
    assert resolver.resolve(source) == ["a.png", "b.png", os.path.join("nested", "c.png")]


def test_file_list_without_directory_returns_full_paths(resolver, pictures):
    source = FileListSource(pattern=str(pictures / "*.txt"))
    assert resolver.resolve(source) == [str(pictures / "notes.txt")]


def test_file_list_extract(resolver, pictures):
    source = FileListSource(directory=str(pictures), pattern="**/*", extract=r"([^/]+)\.png$")
    assert resolver.resolve(source) == ["a", "b", "c"]


def test_file_list_substitutes_directory(resolver, pictures):
    source = FileListSource(directory="${general.dir}", pattern="*.png", depends_on=["general.dir"])
    assert resolver.resolve(source, (str(pictures),)) == ["a.png", "b.png"]


def test_file_list_no_matches_is_empty(resolver, tmp_path):
    assert resolver.resolve(FileListSource(directory=str(tmp_path), pattern="*.png")) == []


@pytest.mark.parametrize("pattern, extract", [
    ("[abc", None),
    ("   ", None),
    ("*.png", "(unclosed"),
], ids=["unbalanced bracket", "empty", "bad extract"])
def test_file_list_bad_patterns(resolver, tmp_path, pattern, extract):
    with pytest.raises(PatternError):
        resolver.resolve(FileListSource(directory=str(tmp_path), pattern=pattern, extract=extract))
