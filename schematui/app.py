# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

import curses
import curses.ascii
import curses.textpad
import os
import textwrap
from typing import NamedTuple, Optional

from .actions import ExternalEditorAction
from .config import ConfigLoader, ConfigSaver, ConfigStore
from .errors import ConfigError, SchemaTUIError, ValueValidationError
from .expression import evaluate_condition
from .logging import get_logger
from .options import FunctionRegistry, OptionsService
from .schema import StaticSource, UIWidget, load_schema, validate_value
from .settings import Settings

logger = get_logger(__name__)


class Row(NamedTuple):
    kind: str  # "section", "subsection" or "field"
    section: object
    field: Optional[object] = None
    path: str = ""
    depth: int = 0
    title: str = ""


def display_value(field, value, width=10):
    if value is None:
        return "" if field.type != "boolean" else "False"
    if field.type == "boolean":
        return "True" if value else "False"
    text = str(value)
    return text[:width] + "..." if len(text) > width else text


def filter_choices(choices, query):
    if not query:
        return list(choices)
    return [c for c in choices if query.lower() in c.lower()]


class SchemaTUI:
    def __init__(self, schema, store=None, options=None, config_path=None,
                 settings=None, save_func=None, actions=None, expanded=True,
                 show_hidden=False):
        self.schema = schema
        self.store = store if store is not None else ConfigStore()
        self.settings = settings or Settings()
        self.options = options if options is not None else OptionsService(schema, self.store, settings=self.settings)
        self.config_path = config_path
        self.output_file = config_path or "config.toml"
        self.save_func = save_func
        self.actions = dict(actions or {})
        self.show_hidden = show_hidden
        self.expanded = {section.id: expanded for section in schema.sections}
        self.change_handlers = []
        self.dirty = False
        self.message = ""

        self.save_key = ord('s')
        self.quite_key = ord('q')
        self.collapse_key = ord('c')
        self.search_key = ord('/')
        self.help_key = ord('h')
        self.edit_key = ord('e')
        self.abort_key = 1  # Ctrl+A
        self.description_key = 4  # Ctrl+D

    # --- state, independent of curses ---

    def on_change(self, handler):
        self.change_handlers.append(handler)

    def get_value(self, path):
        value = self.store.get(path)
        if value is None:
            value = self.schema.field(path).default
        return value

    def is_section_visible(self, section):
        return evaluate_condition(section.visible_when, self.store.get)

    def flatten_rows(self, query=""):
        rows = []
        for section in self.schema.sections:
            if not self.show_hidden and not self.is_section_visible(section):
                continue
            fields = []
            subsection = None
            for field in section.fields:
                path = f"{section.id}.{field.id}"
                if query and query.lower() not in f"{path} {field.label}".lower():
                    continue
                if field.subsection and field.subsection != subsection and not query:
                    fields.append(Row("subsection", section, depth=1, title=field.subsection))
                subsection = field.subsection
                fields.append(Row("field", section, field, path, 2 if field.subsection else 1))
            if query and not fields:
                continue
            rows.append(Row("section", section, title=section.title))
            if self.expanded.get(section.id) or query:
                rows.extend(fields)
        return rows

    def commit(self, path, value):
        """Validates and stores a value; dependents are invalidated by the store."""
        field = self.schema.field(path)
        validate_value(field, value, path)
        if not self.store.set(path, value):
            return False
        self.dirty = True
        for handler in self.change_handlers:
            handler(path, value)
        if self.settings.autosave and self.config_path:
            self.save()
        return True

    def save(self):
        ConfigSaver.save_toml(self.store, self.schema, self.output_file)
        if self.save_func:
            self.save_func(self.store.expanded(self.schema), self.schema)
        self.dirty = False

    def parse_input(self, field, text):
        text = text.replace('\n', '').strip()
        if field.type == "number":
            return int(text)
        if field.type == "float":
            return float(text)
        return text

    # --- pages ---

    def show_help(self, stdscr):
        help_text = [
            "Help Page",
            "",
            "Keybindings:",
            "  Arrow Up/Down: Navigate",
            "  Enter  : Edit field / Toggle boolean / Expand section",
            "  s      : Save configuration",
            "  q      : Quit",
            "  c      : Collapse/Expand section",
            "  /      : Search",
            "  e      : Run the field action (external editor for paths)",
            "  h      : Show this help page",
            "  Ctrl+A : Exit search / abort editing",
            "  Ctrl+D : Show description of item",
            "",
            "How it works:",
            "  - Sections with a visibility condition appear when it holds.",
            "  - Dropdown options may come from commands, functions or files;",
            "    they load in the background and are cached.",
            "  - Changing a field reloads the options of fields that depend on it.",
            ""
        ]

        start_index = 0
        while True:
            stdscr.clear()
            max_y, _ = stdscr.getmaxyx()
            display_limit = max(max_y - 3, 1)
            if max_y > 2:
                stdscr.addstr(max_y - 2, 2, "Press 'q' to return to the menu or UP/DOWN to scroll")
            if max_y >= 4:
                for idx, line in enumerate(help_text[start_index:start_index + display_limit]):
                    stdscr.addstr(idx + 1, 2, line)
            stdscr.refresh()
            key = stdscr.getch()
            if key == curses.KEY_UP and start_index > 0:
                start_index -= 1
            elif key == curses.KEY_DOWN and start_index < len(help_text) - display_limit:
                start_index += 1
            elif key == ord('q'):
                break

    def describe(self, row):
        if row.kind != "field":
            section = row.section
            return [
                "",
                "Visible when ",
                section.visible_when or "Always visible",
                "",
                "Description ",
                section.description or "No description available",
            ]
        field = row.field
        content = [
            "",
            "Path ",
            row.path,
            "",
            "Type ",
            field.type,
            "",
            "Description ",
            field.description or "No description available",
        ]
        source = field.options_source
        if source is not None and not isinstance(source, StaticSource):
            content += [
                "",
                "Options ",
                f"{source.type}, depends on: {', '.join(source.depends_on) or 'nothing'}",
                f"cache: {'until invalidated' if source.ttl is None else f'{source.ttl:g}s'}",
            ]
            error = self.options.last_error(row.path)
            if error is not None:
                content += ["", "Last error ", str(error)]
        return content

    def description_page(self, stdscr, row):
        start_index = 0
        title = row.path or row.section.id
        while True:
            stdscr.clear()
            stdscr.border(0)
            stdscr.addstr(0, 2, f" {title} ")
            max_y, max_x = stdscr.getmaxyx()
            display_limit = max(max_y - 3, 1)
            if max_y > 2:
                stdscr.addstr(max_y - 2, 2, "Press 'q' to return to the menu or UP/DOWN to scroll")

            wrapped_content = []
            for line in self.describe(row):
                if line == "":
                    wrapped_content.append(line)
                else:
                    wrapped_content.extend(textwrap.wrap(line, max(max_x - 4, 10)))

            if max_y >= 4:
                for idx, line in enumerate(wrapped_content[start_index:start_index + display_limit]):
                    stdscr.addstr(idx + 1, 2, line)
            stdscr.refresh()
            key = stdscr.getch()
            if key == curses.KEY_UP and start_index > 0:
                start_index -= 1
            elif key == curses.KEY_DOWN and start_index < len(wrapped_content) - display_limit:
                start_index += 1
            elif key == ord('q'):
                break

    def prompt(self, stdscr, message):
        message = f"{message} (Press any key)"
        while True:
            stdscr.clear()
            curses.curs_set(0)
            max_y, max_x = stdscr.getmaxyx()
            wrapped_text = textwrap.wrap(message, max(max_x - 4, 10))
            question_start_y = max(max_y // 2 - len(wrapped_text) // 2 - 1, 0)
            for i, line in enumerate(wrapped_text):
                stdscr.addstr(question_start_y + i, max((max_x - len(line)) // 2, 0), line)
            stdscr.refresh()
            key = stdscr.getch()
            if key != curses.KEY_RESIZE:
                break

    def message_box(self, stdscr, message):
        message = f"{message} (Press 'q' to cancel.)"
        yes_option = "[ Yes ]"
        no_option = "[ No ]"
        current_option = 0
        while True:
            stdscr.clear()
            curses.curs_set(0)
            max_y, max_x = stdscr.getmaxyx()
            wrapped_text = textwrap.wrap(message, max(max_x - 4, 10))
            question_start_y = max(max_y // 2 - len(wrapped_text) // 2 - 1, 0)
            for i, line in enumerate(wrapped_text):
                stdscr.addstr(question_start_y + i, max((max_x - len(line)) // 2, 0), line)
            buttons_y = max_y // 2 + 1
            if max_y > 3:
                for idx, (text, x) in enumerate(((yes_option, max_x // 2 - len(yes_option) - 2),
                                                 (no_option, max_x // 2 + 2))):
                    if idx == current_option:
                        stdscr.attron(curses.color_pair(1))
                    stdscr.addstr(buttons_y, x, text)
                    if idx == current_option:
                        stdscr.attroff(curses.color_pair(1))
            stdscr.refresh()
            key = stdscr.getch()
            if key in (curses.KEY_LEFT, curses.KEY_RIGHT):
                current_option = 1 - current_option
            elif key in (curses.KEY_ENTER, 10, 13):
                return current_option == 0
            elif key == ord('q'):
                return None

    def display_rows(self, stdscr, rows, start_index, current_row, search_mode):
        max_y, max_x = stdscr.getmaxyx()
        display_limit = max_y - 4 if not search_mode else max_y - 6
        for idx in range(start_index, min(start_index + display_limit, len(rows))):
            row = rows[idx]
            if row.kind == "section":
                indicator = "[-]" if self.expanded.get(row.section.id) else "[+]"
                display_text = f"{indicator} {row.title}"
                if not self.is_section_visible(row.section):
                    display_text += " [hidden]"
            elif row.kind == "subsection":
                display_text = f"-- {row.title} --"
            else:
                value = display_value(row.field, self.get_value(row.path))
                display_text = f"{row.field.label}: {value}"
                if row.field.options_source is not None and self.options.last_error(row.path):
                    display_text += " [!]"
            if len(display_text) > max_x - 2 - row.depth * 2:
                display_text = display_text[:max(max_x - 5 - row.depth * 2, 0)] + "..."
            if idx == current_row:
                stdscr.attron(curses.color_pair(1))
            stdscr.addstr(2 + idx - start_index, 2 + row.depth * 2, display_text)
            if idx == current_row:
                stdscr.attroff(curses.color_pair(1))

    # --- main loop ---

    def run(self, graphical=True):
        if graphical:
            try:
                curses.wrapper(self.menu_loop)
            finally:
                self.options.close()
        else:
            self.save()
            self.options.close()

    def menu_loop(self, stdscr):
        curses.curs_set(0)
        stdscr.keypad(True)
        curses.start_color()
        curses.init_pair(1, curses.COLOR_BLACK, curses.COLOR_WHITE)
        current_row = 0
        search_mode, search_query = False, ""
        start_index = 0
        title = self.schema.title or "Configuration"

        while True:
            stdscr.clear()
            stdscr.border(0)
            stdscr.addstr(0, 2, f" {title}{' *' if self.dirty else ''} ")
            max_y, max_x = stdscr.getmaxyx()
            if not search_mode and max_y > 2:
                info = self.message or "Press 'q' to Exit, 's' to Save, 'c' to Collapse, '/' to Search, 'h' for more"
                stdscr.addstr(max_y - 2, 2, info[:max_x - 5])

            rows = self.flatten_rows(search_query if search_mode else "")
            if current_row >= len(rows):
                current_row = len(rows) - 1
            if current_row < 0:
                current_row = 0
            visible_rows = max(max_y - 6 if search_mode else max_y - 4, 1)
            if current_row < start_index:
                start_index = current_row
            elif current_row >= start_index + visible_rows:
                start_index = current_row - visible_rows + 1

            self.display_rows(stdscr, rows, start_index, current_row, search_mode)
            if search_mode:
                if max_y > 3:
                    stdscr.addstr(max_y - 3, 2, f"Search: {search_query}"[:max_x - 5])
                if max_y > 2:
                    stdscr.addstr(max_y - 2, 2, "Press Ctrl+A to abort search")
            stdscr.refresh()
            key = stdscr.getch()
            self.message = ""
            if key == curses.KEY_RESIZE:
                continue
            if key in (curses.KEY_UP, curses.KEY_DOWN):
                if key == curses.KEY_UP and current_row > 0:
                    current_row -= 1
                elif key == curses.KEY_DOWN and current_row < len(rows) - 1:
                    current_row += 1
            elif key in (curses.KEY_ENTER, 10, 13):
                self.handle_enter(stdscr, rows, current_row, search_mode)
            elif key == self.description_key and rows:
                self.description_page(stdscr, rows[current_row])
            elif search_mode:
                if key in (curses.KEY_BACKSPACE, 127):
                    search_query = search_query[:-1]
                elif key == self.abort_key:
                    search_mode, search_query = False, ""
                elif 32 <= key <= 126:
                    search_query += chr(key)
                    current_row = 0
            elif key == self.save_key:
                self.save_with_feedback(stdscr)
            elif key == self.quite_key:
                if not self.dirty:
                    break
                answer = self.message_box(stdscr, "Save changes before quitting?")
                if answer is None:
                    continue
                if answer:
                    self.save_with_feedback(stdscr)
                break
            elif key == self.collapse_key:
                current_row = self.collapse_current_section(rows, current_row)
            elif key == self.search_key:
                search_mode, search_query, current_row = True, "", 0
            elif key == self.help_key:
                self.show_help(stdscr)
            elif key == self.edit_key and rows:
                self.run_action(stdscr, rows[current_row])

    def collapse_current_section(self, rows, current_row):
        if not rows:
            return current_row
        row = rows[current_row]
        section_id = row.section.id
        self.expanded[section_id] = not self.expanded.get(section_id)
        if row.kind == "section":
            return current_row
        for idx, other in enumerate(rows):
            if other.kind == "section" and other.section.id == section_id:
                return idx
        return current_row

    def handle_enter(self, stdscr, rows, row_index, search_mode):
        if not rows:
            return
        row = rows[row_index]
        if row.kind == "section":
            if not search_mode:
                self.expanded[row.section.id] = not self.expanded.get(row.section.id)
            return
        if row.kind != "field":
            return
        field = row.field
        try:
            if field.type == "boolean":
                self.commit(row.path, not bool(self.get_value(row.path)))
            elif field.type == "enum":
                self.edit_choice(stdscr, row.path, field)
            else:
                self.edit_text(stdscr, row.path, field)
        except ValueValidationError as e:
            self.prompt(stdscr, str(e))
        except ConfigError as e:
            self.prompt(stdscr, f"Autosave failed: {e}")

    def run_action(self, stdscr, row):
        if row.kind != "field":
            return
        action = self.actions.get(row.path)
        if action is None and row.field.type == "path":
            action = ExternalEditorAction.for_field(row.field)
        if action is None:
            self.message = "No action for this field"
            return
        curses.def_prog_mode()
        curses.endwin()
        try:
            new_value = action.execute(str(self.get_value(row.path) or ""))
        except OSError as e:
            new_value = None
            self.message = f"Action failed: {e}"
        finally:
            curses.reset_prog_mode()
            stdscr.refresh()
        if new_value is not None:
            try:
                self.commit(row.path, self.parse_input(row.field, new_value))
                self.message = f"Updated {row.path}"
            except (ValueError, SchemaTUIError) as e:
                self.prompt(stdscr, str(e))

    def edit_text(self, stdscr, path, field):
        original_value = self.get_value(path)
        curses.curs_set(1)

        def redraw_window():
            stdscr.clear()
            max_y, max_x = stdscr.getmaxyx()
            start_y, start_x = 1, 2
            end_y, end_x = max(max_y - 3, 4), max(max_x - 3, 6)
            curses.textpad.rectangle(stdscr, start_y, start_x, end_y, end_x)
            editwin = curses.newwin(end_y - start_y - 1, end_x - start_x - 1, start_y + 1, start_x + 1)
            if max_y > 1:
                stdscr.addstr(0, 2, f"Editing - {field.label} "[:max_x - 4])
            if max_y > 3:
                stdscr.addstr(max_y - 2, 2, "Press Enter to confirm, Ctrl+A to abort "[:max_x - 4])
            stdscr.refresh()
            editwin.addstr(0, 0, "" if original_value is None else str(original_value))
            editwin.refresh()
            return editwin

        editwin = redraw_window()

        def validate_input(ch):
            nonlocal editwin
            if ch == curses.KEY_RESIZE:
                editwin = redraw_window()
                return 0
            elif ch == self.abort_key:
                raise KeyboardInterrupt
            elif ch in (curses.ascii.CR, curses.ascii.NL):
                return curses.ascii.BEL  # Ctrl+G ends the Textbox edit
            return ch

        box = curses.textpad.Textbox(editwin, insert_mode=True)
        try:
            content = box.edit(validate_input)
        except KeyboardInterrupt:
            return
        finally:
            curses.curs_set(0)

        try:
            value = self.parse_input(field, content)
        except ValueError:
            self.prompt(stdscr, f"'{content.strip()}' is not a valid {field.type}")
            return
        self.commit(path, value)

    def edit_choice(self, stdscr, path, field):
        """Dropdown whose options load in the background."""
        pending = self.options.request_options(path)
        searchable = field.widget == UIWidget.DROPDOWN_SEARCHABLE
        current_value = self.get_value(path)
        query = ""
        current_choice = None
        curses.curs_set(0)
        stdscr.timeout(100)
        try:
            while True:
                options = pending.result(0) if pending.done() else None
                choices = filter_choices(options or [], query)
                if options is not None and current_choice is None:
                    current_choice = choices.index(current_value) if current_value in choices else 0
                if current_choice is not None and current_choice >= len(choices):
                    current_choice = max(len(choices) - 1, 0)

                stdscr.clear()
                max_y, max_x = stdscr.getmaxyx()
                stdscr.addstr(0, 2, f"Editing - {field.label} "[:max_x - 4])
                top = 2
                if searchable:
                    stdscr.addstr(top, 4, f"Search: {query}"[:max_x - 6])
                    top += 2
                if options is None:
                    stdscr.addstr(top, 4, "Loading options..."[:max_x - 6])
                elif not choices:
                    stdscr.addstr(top, 4, "No options available"[:max_x - 6])
                    if pending.error is not None and max_y > top + 2:
                        stdscr.addstr(top + 1, 4, f"Error: {pending.error}"[:max_x - 6])
                else:
                    limit = max(max_y - top - 3, 1)
                    first = max(0, current_choice - limit + 1)
                    for idx, choice in enumerate(choices[first:first + limit], start=first):
                        if idx == current_choice:
                            stdscr.attron(curses.color_pair(1))
                        stdscr.addstr(top + idx - first, 4, choice[:max_x - 6])
                        if idx == current_choice:
                            stdscr.attroff(curses.color_pair(1))
                if max_y > 2:
                    stdscr.addstr(max_y - 2, 2, "Press Enter to select, Ctrl+A to abort "[:max_x - 4])
                stdscr.refresh()

                key = stdscr.getch()
                if key == -1 or key == curses.KEY_RESIZE:
                    continue
                if key == self.abort_key:
                    pending.cancel()
                    return
                if key == curses.KEY_UP and current_choice:
                    current_choice -= 1
                elif key == curses.KEY_DOWN and current_choice is not None and current_choice < len(choices) - 1:
                    current_choice += 1
                elif key in (curses.KEY_ENTER, 10, 13):
                    if choices:
                        self.commit(path, choices[current_choice])
                        return
                    if options is not None:
                        return
                elif searchable and key in (curses.KEY_BACKSPACE, 127):
                    query = query[:-1]
                elif searchable and 32 <= key <= 126:
                    query += chr(key)
        finally:
            stdscr.timeout(-1)

    def save_with_feedback(self, stdscr):
        try:
            self.save()
        except ConfigError as e:
            self.prompt(stdscr, f"Save failed: {e}")
            return
        self.message = f"Configuration saved to {self.output_file}"


class SchemaTUIBuilder:
    """Assembles a SchemaTUI from files, providers and settings."""

    def __init__(self):
        self._schema = None
        self._config_path = None
        self._store = None
        self._registry = FunctionRegistry()
        self._actions = {}
        self._settings = None
        self._save_func = None
        self._handlers = []

    def schema(self, schema):
        self._schema = schema
        return self

    def schema_file(self, *paths):
        self._schema = load_schema(list(paths))
        return self

    def config_file(self, path):
        self._config_path = os.fspath(path)
        return self

    def initial_values(self, values):
        self._store = ConfigStore.from_flat_map(values)
        return self

    def register_option_provider(self, name, provider):
        self._registry.register(name, provider)
        return self

    def register_action(self, path, action):
        self._actions[path] = action
        return self

    def settings(self, settings):
        self._settings = settings
        return self

    def save_func(self, func):
        self._save_func = func
        return self

    def on_change(self, handler):
        self._handlers.append(handler)
        return self

    def build(self):
        if self._schema is None:
            raise SchemaTUIError("Schema not provided")
        settings = self._settings or Settings()
        store = self._store
        if store is None:
            if self._config_path and os.path.exists(self._config_path):
                # Literal $VAR values stay visible in the editor
                store = ConfigLoader.from_toml_file(self._config_path, expand=False)
            else:
                store = ConfigStore()
        store.fill_defaults(self._schema)
        options = OptionsService(self._schema, store, registry=self._registry, settings=settings)
        app = SchemaTUI(self._schema, store, options, config_path=self._config_path,
                        settings=settings, save_func=self._save_func, actions=self._actions)
        for handler in self._handlers:
            app.on_change(handler)
        return app
