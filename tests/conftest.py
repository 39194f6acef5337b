"""Shared fixtures for the schematui test suite."""

import sys
from pathlib import Path

import pytest
import structlog

from schematui.config import ConfigStore
from schematui.logging import close_logging

# Stand-in for list-models.sh: logs each invocation, prints a JSON array.
LIST_MODELS = '''
import json
import sys

log_path, args = sys.argv[1], sys.argv[2:]
with open(log_path, "a") as log:
    log.write(" ".join(args) + "\\n")

model_type = args[0] if args else ""
language = args[1] if len(args) > 1 else ""
models = {
    "en": (["whisper-en-tiny", "whisper-en-base", "whisper-en-small"],
           ["whisper-en-medium", "whisper-en-large", "whisper-en-large-v2"]),
    "es": (["whisper-es-tiny", "whisper-es-base"],
           ["whisper-es-medium", "whisper-es-large"]),
    "fr": (["whisper-fr-tiny", "whisper-fr-base"],
           ["whisper-fr-medium", "whisper-fr-large"]),
}
if language not in models:
    print("[]")
else:
    preview, full = models[language]
    print(json.dumps(preview if model_type == "preview" else full))
'''


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ModelsScript:
    def __init__(self, directory: Path):
        self.script = directory / "list_models.py"
        self.script.write_text(LIST_MODELS)
        self.log = directory / "calls.log"

    def command(self, args):
        return f'"{sys.executable}" "{self.script}" "{self.log}" {args}'

    @property
    def calls(self):
        if not self.log.exists():
            return []
        return self.log.read_text().splitlines()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def models(tmp_path: Path) -> ModelsScript:
    return ModelsScript(tmp_path)


@pytest.fixture
def store() -> ConfigStore:
    return ConfigStore({"voice_config": {"language": "en", "model_type": "preview"}})


@pytest.fixture
def python_command():
    """Builds a shell command running `code` with the current interpreter.

    `code` goes inside double quotes, so it must use single quotes only.
    """
    def build(code: str) -> str:
        return f'"{sys.executable}" -c "{code}"'

    return build


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    close_logging()
    structlog.reset_defaults()
