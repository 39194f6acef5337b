import sys

from schematui.actions import CustomCommandAction, ExternalEditorAction
from schematui.schema import SchemaField


def test_custom_command_receives_current_value(python_command):
    action = CustomCommandAction(python_command("import os; print(os.environ['CURRENT_VALUE'].upper())"))
    assert action.execute("dark") == "DARK"


def test_custom_command_unchanged_or_empty_output(python_command):
    assert CustomCommandAction(python_command("print('same')")).execute("same") is None
    assert CustomCommandAction(python_command("pass")).execute("value") is None


def test_custom_command_failure(python_command):
    action = CustomCommandAction(python_command("import sys; print('x'); sys.exit(1)"))
    assert action.execute("value") is None


def test_editor_extension_follows_file_type():
    field = SchemaField(id="f", label="F", type="path", file_type="json")
    assert ExternalEditorAction.for_field(field).extension == "json"
    plain = SchemaField(id="g", label="G", type="path")
    assert ExternalEditorAction.for_field(plain).extension == "txt"


def test_editor_returns_edited_content(tmp_path):
    editor = tmp_path / "editor.py"
    editor.write_text("import sys\nopen(sys.argv[1], 'w').write('edited')\n")
    editor.chmod(0o755)
    wrapper = tmp_path / "editor.sh"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{editor}" "$@"\n')
    wrapper.chmod(0o755)

    assert ExternalEditorAction(editor=str(wrapper)).execute("original") == "edited"


def test_editor_unchanged_content_is_none():
    assert ExternalEditorAction(editor="true").execute("same") is None
