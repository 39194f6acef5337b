# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Config store, TOML loading with environment expansion, and TOML saving."""

import copy
import os
import re
import tempfile
import threading
import tomllib

import tomlkit

from .errors import ConfigError
from .logging import get_logger

logger = get_logger(__name__)

ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env_vars(value: str) -> str:
    """Expands a leading `~/`, `${VAR}` and `$VAR`.

    Unknown variables are left as written.
    """
    if value.startswith("~/"):
        value = os.path.expanduser("~") + value[1:]

    def replace(match):
        name = match.group(1) or match.group(2)
        return os.environ.get(name, match.group(0))

    return ENV_PATTERN.sub(replace, value)


def expand_value(value):
    if isinstance(value, str):
        return expand_env_vars(value)
    if isinstance(value, dict):
        return {k: expand_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_value(v) for v in value]
    return value


class ConfigStore:
    """Nested config values addressed by dotted paths.

    `set` is the commit operation: listeners registered with `subscribe`
    are called with the path whenever a committed value actually changes.
    """

    def __init__(self, values=None):
        self._values = copy.deepcopy(values) if values else {}
        self._lock = threading.RLock()
        self._listeners = []

    @classmethod
    def from_flat_map(cls, flat):
        store = cls()
        for path, value in flat.items():
            store.set_nested(path, value)
        return store

    def get_nested(self, path):
        with self._lock:
            current = self._values
            for part in path.split('.'):
                if not isinstance(current, dict) or part not in current:
                    return None
                current = current[part]
            return current

    def get(self, path):
        """Value lookup: the value at `path`, or None if absent or a table."""
        value = self.get_nested(path)
        if isinstance(value, dict):
            return None
        return value

    def __contains__(self, path):
        return self.get_nested(path) is not None

    def set_nested(self, path, value):
        """Writes without notifying listeners (loading, defaults)."""
        parts = path.split('.')
        with self._lock:
            current = self._values
            for part in parts[:-1]:
                child = current.get(part)
                if not isinstance(child, dict):
                    child = current[part] = {}
                current = child
            current[parts[-1]] = value

    def set(self, path, value):
        """Commits a value; returns True when it changed."""
        with self._lock:
            previous = self.get_nested(path)
            if previous == value and type(previous) is type(value) and path in self:
                return False
            self.set_nested(path, value)
            listeners = list(self._listeners)
        logger.debug("value_committed", path=path)
        for listener in listeners:
            listener(path, value)
        return True

    def subscribe(self, listener):
        """Registers `listener(path, value)`; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def fill_defaults(self, schema):
        """Sets schema defaults for every path the store does not hold yet."""
        for path, default in schema.defaults().items():
            if path not in self:
                self.set_nested(path, default)

    def as_dict(self):
        with self._lock:
            return copy.deepcopy(self._values)

    def as_flat_map(self):
        """{"general": {"wallpaper": "x"}} -> {"general.wallpaper": "x"}"""
        flat = {}

        def flatten(prefix, value):
            if isinstance(value, dict):
                for key, child in value.items():
                    flatten(f"{prefix}.{key}" if prefix else key, child)
            else:
                flat[prefix] = value

        flatten("", self.as_dict())
        return flat

    def expanded(self, schema):
        """Flat values with env expansion applied to `env_expand` fields."""
        flat = self.as_flat_map()
        for path, field in schema.fields():
            if field.env_expand and isinstance(flat.get(path), str):
                flat[path] = expand_env_vars(flat[path])
        return flat


def load_toml(path):
    if not os.path.exists(path):
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


class ConfigLoader:

    @staticmethod
    def from_toml_string(content, expand=True):
        try:
            data = tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML: {e}") from e
        return ConfigStore(expand_value(data) if expand else data)

    @staticmethod
    def from_toml_file(path, expand=True):
        data = load_toml(path)
        logger.info("config_loaded", path=str(path), expand=expand)
        return ConfigStore(expand_value(data) if expand else data)


def add_comments(container, text):
    """Adds `text` as comment lines, one `#` per line."""
    for line in (text or "").splitlines():
        container.add(tomlkit.comment(line.rstrip()))


class ConfigSaver:

    @staticmethod
    def render_toml(store, schema):
        doc = tomlkit.document()
        add_comments(doc, schema.title)
        add_comments(doc, schema.description)
        doc.add(tomlkit.comment("This file is auto-generated but safe to edit manually"))
        doc.add(tomlkit.nl())

        for section in schema.sections:
            table = tomlkit.table()
            add_comments(table, section.description)
            for field in section.fields:
                add_comments(table, field.description)
                value = store.get_nested(f"{section.id}.{field.id}")
                if value is None:
                    value = field.default
                # TOML has no null; missing values are written as ""
                table.add(field.id, "" if value is None else value)
            doc.add(section.id, table)
        return tomlkit.dumps(doc)

    @staticmethod
    def save_toml(store, schema, path):
        content = ConfigSaver.render_toml(store, schema)
        directory = os.path.dirname(os.path.abspath(path))
        try:
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".schematui-", suffix=".toml")
        except OSError as e:
            raise ConfigError(f"Cannot write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, path)
        except OSError as e:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise ConfigError(f"Cannot write {path}: {e}") from e
        logger.info("config_saved", path=str(path))
