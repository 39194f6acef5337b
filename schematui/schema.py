# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Schema models, parsing and validation.

A schema is JSON:

    {
      "version": "1.0",
      "title": "Voice daemon",
      "include": ["extra.json"],
      "sections": [
        {"id": "voice_config", "title": "Voice", "fields": [
          {"id": "language", "label": "Language", "description": "...",
           "type": "enum", "options_source": {"type": "static", "values": ["en", "es"]}},
          {"id": "model", "label": "Model", "description": "...",
           "type": "enum", "ui_widget": "dropdown_searchable",
           "options_source": {"type": "command",
                              "command": "list-models.sh preview ${voice_config.language}",
                              "depends_on": ["voice_config.language"],
                              "ttl": 300}}
        ]}
      ]
    }
"""

import json
import os
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import SchemaError, ValueValidationError
from .expression import Condition


def _ordered_unique(paths):
    seen = []
    for path in paths:
        path = path.strip()
        if path and path not in seen:
            seen.append(path)
    return tuple(seen)


class _Source(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    @property
    def kind(self):
        return self.type


class _DynamicSource(_Source):
    depends_on: tuple[str, ...] = ()
    ttl: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("ttl", "cache_duration")
    )

    @field_validator("depends_on", mode="before")
    @classmethod
    def _dedupe(cls, value):
        if isinstance(value, str):
            value = [value]
        return _ordered_unique(value or ())


class StaticSource(_Source):
    type: Literal["static"] = "static"
    values: tuple[str, ...]

    @property
    def depends_on(self):
        return ()

    @property
    def ttl(self):
        return None


class CommandSource(_DynamicSource):
    type: Literal["command", "script"] = "command"
    template: str = Field(validation_alias=AliasChoices("template", "command"))
    output: Literal["json", "lines"] = "json"
    cwd: Optional[str] = None


class FunctionSource(_DynamicSource):
    type: Literal["function", "provider"] = "function"
    handle: str = Field(validation_alias=AliasChoices("handle", "name", "provider"))


class FileListSource(_DynamicSource):
    type: Literal["file_list"] = "file_list"
    pattern: str
    directory: Optional[str] = None
    extract: Optional[str] = None


OptionSource = Annotated[
    Union[StaticSource, CommandSource, FunctionSource, FileListSource],
    Field(discriminator="type"),
]


class UIWidget(str, Enum):
    TEXT_INPUT = "text_input"
    NUMBER_INPUT = "number_input"
    TOGGLE = "toggle"
    DROPDOWN = "dropdown"
    DROPDOWN_SEARCHABLE = "dropdown_searchable"
    FILE_PICKER = "file_picker"


class FileTypeFilter(str, Enum):
    IMAGE = "image"
    JSON = "json"
    ANY = "any"


FIELD_TYPES = ("string", "number", "float", "boolean", "enum", "path")


class SchemaField(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str
    description: str = ""
    type: Literal["string", "number", "float", "boolean", "enum", "path"]
    default: Any = None
    optional: bool = False
    env_expand: bool = False
    ui_widget: Optional[UIWidget] = None
    keybind: Optional[str] = None
    subsection: Optional[str] = None

    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options_source: Optional[OptionSource] = None
    file_type: Optional[FileTypeFilter] = None
    must_exist: bool = False

    @field_validator("id")
    @classmethod
    def _no_whitespace(cls, value):
        if not value or any(c.isspace() for c in value) or "." in value:
            raise ValueError(f"Field id must be non-empty without spaces or dots: {value!r}")
        return value

    @model_validator(mode="before")
    @classmethod
    def _boolean_default(cls, data):
        if isinstance(data, dict) and data.get("type") == "boolean" and data.get("default") is None:
            data = {**data, "default": False}
        return data

    @model_validator(mode="after")
    def _check_type(self):
        if self.type == "enum" and self.options_source is None:
            raise ValueError(f"enum field {self.id} needs an options_source")
        if self.type != "enum" and self.options_source is not None:
            raise ValueError(f"options_source is only valid on enum fields ({self.id})")
        return self

    @property
    def widget(self):
        """The declared widget, or the natural one for the field type."""
        if self.ui_widget is not None:
            return self.ui_widget
        return {
            "boolean": UIWidget.TOGGLE,
            "number": UIWidget.NUMBER_INPUT,
            "float": UIWidget.NUMBER_INPUT,
            "enum": UIWidget.DROPDOWN,
            "path": UIWidget.FILE_PICKER,
        }.get(self.type, UIWidget.TEXT_INPUT)


class SchemaSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    visible_when: Optional[str] = None
    fields: tuple[SchemaField, ...] = ()


class ConfigSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "1.0"
    title: Optional[str] = None
    description: Optional[str] = None
    sections: tuple[SchemaSection, ...] = ()

    def fields(self):
        """Yields (dotted path, field) for every field in schema order."""
        for section in self.sections:
            for field in section.fields:
                yield f"{section.id}.{field.id}", field

    def field(self, path):
        for field_path, field in self.fields():
            if field_path == path:
                return field
        raise KeyError(path)

    def section(self, section_id):
        for section in self.sections:
            if section.id == section_id:
                return section
        raise KeyError(section_id)

    def option_sources(self):
        """Maps every enum field path to its option source descriptor."""
        return {path: field.options_source for path, field in self.fields()
                if field.options_source is not None}

    def defaults(self):
        return {path: field.default for path, field in self.fields()
                if field.default is not None}


def _merge(into, data):
    sections = {s["id"]: s for s in into.setdefault("sections", [])}
    for section in data.get("sections", []):
        existing = sections.get(section.get("id"))
        if existing is None:
            into["sections"].append(section)
            sections[section.get("id")] = section
        else:
            existing.setdefault("fields", []).extend(section.get("fields", []))
    for key in ("version", "title", "description"):
        if key in data and key not in into:
            into[key] = data[key]


def _read_schema_file(filepath, merged, seen):
    filepath = os.path.abspath(filepath)
    if filepath in seen:
        raise SchemaError(f"Schema include cycle through {filepath}")
    seen.add(filepath)
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise SchemaError(f"Cannot read schema {filepath}: {e}") from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in schema {filepath}: {e}") from e
    _merge(merged, data)

    # Handle includes relative to current file
    base_path = os.path.dirname(filepath)
    for include_file in data.get('include', []):
        include_path = os.path.join(base_path, include_file)
        if not os.path.exists(include_path):
            raise SchemaError(f"File {filepath} includes a non-existing file: {include_path}")
        _read_schema_file(include_path, merged, seen)


def build_schema(data):
    try:
        schema = ConfigSchema.model_validate(data)
    except ValidationError as e:
        raise SchemaError(f"Invalid schema: {e}") from e
    validate_schema(schema)
    return schema


def parse_schema(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in schema: {e}") from e
    if data.get("include"):
        raise SchemaError("include is only supported when loading schema files")
    return build_schema(data)


def load_schema(paths):
    """Loads one or more schema files (and their includes) into one schema."""
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    merged = {}
    seen = set()
    for path in paths:
        _read_schema_file(path, merged, seen)
    merged.pop("include", None)
    return build_schema(merged)


def validate_schema(schema):
    if not schema.sections:
        raise SchemaError("Schema must have at least one section")
    paths = set()
    for section in schema.sections:
        if not section.fields:
            raise SchemaError(f"Section '{section.id}' has no fields")
        if section.visible_when:
            try:
                Condition(section.visible_when)
            except ValueError as e:
                raise SchemaError(f"Section '{section.id}' has an invalid visible_when: {e}") from e
        for field in section.fields:
            path = f"{section.id}.{field.id}"
            if path in paths:
                raise SchemaError(f"Duplicate field {path}")
            paths.add(path)


def validate_value(field, value, path=None):
    """Raises ValueValidationError when `value` does not fit `field`."""
    path = path or field.id
    if value is None:
        if field.optional:
            return
        raise ValueValidationError(path, "Value is required")

    if field.type in ("string", "enum", "path"):
        if not isinstance(value, str):
            raise ValueValidationError(path, "Value must be a string")
        if field.type == "string" and field.max_length is not None and len(value) > field.max_length:
            raise ValueValidationError(path, f"String exceeds max length of {field.max_length}")
        if field.type == "path" and field.must_exist and not os.path.exists(os.path.expanduser(value)):
            raise ValueValidationError(path, f"Path does not exist: {value}")
    elif field.type == "boolean":
        if not isinstance(value, bool):
            raise ValueValidationError(path, "Value must be a boolean")
    elif field.type in ("number", "float"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueValidationError(path, "Value must be a number")
        if field.type == "number" and not isinstance(value, int):
            raise ValueValidationError(path, "Value must be an integer")
        if field.min is not None and value < field.min:
            raise ValueValidationError(path, f"Number is below minimum of {field.min:g}")
        if field.max is not None and value > field.max:
            raise ValueValidationError(path, f"Number exceeds maximum of {field.max:g}")
