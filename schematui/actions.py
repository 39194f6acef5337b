# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Actions a keybind can run against a field value."""

import os
import subprocess
import tempfile

from .logging import get_logger

logger = get_logger(__name__)

EXTENSIONS = {"json": "json", "image": "png"}


class ExternalEditorAction:
    """Edits the value in $EDITOR (or `editor`) through a temp file."""

    def __init__(self, editor=None, extension="txt"):
        self.editor = editor or os.environ.get("EDITOR", "nano")
        self.extension = extension

    @classmethod
    def for_field(cls, field):
        file_type = field.file_type.value if field.file_type is not None else None
        return cls(extension=EXTENSIONS.get(file_type, "txt"))

    def execute(self, current_value):
        """Returns the edited value, or None when unchanged or aborted."""
        fd, path = tempfile.mkstemp(prefix="schematui-edit.", suffix=f".{self.extension}")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(current_value)
            try:
                status = subprocess.call([self.editor, path])
            except OSError as e:
                logger.warning("editor_launch_failed", editor=self.editor, error=str(e))
                raise
            if status != 0:
                return None
            with open(path, "r", encoding="utf-8") as f:
                new_content = f.read()
        finally:
            if os.path.exists(path):
                os.remove(path)
        return new_content if new_content != current_value else None


class CustomCommandAction:
    """Runs a shell command with CURRENT_VALUE set; stdout is the new value."""

    def __init__(self, command):
        self.command = command

    def execute(self, current_value):
        env = dict(os.environ, CURRENT_VALUE=current_value)
        result = subprocess.run(self.command, shell=True, env=env,
                                capture_output=True, text=True)
        if result.returncode != 0:
            logger.warning("custom_command_failed", command=self.command,
                           exit_code=result.returncode, stderr=result.stderr.strip())
            return None
        new_value = result.stdout.strip()
        if new_value and new_value != current_value:
            return new_value
        return None
