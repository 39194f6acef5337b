# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

import argparse
import json
import sys

from .app import SchemaTUIBuilder
from .errors import SchemaTUIError
from .logging import close_logging, get_logger, setup_logging
from .settings import get_settings

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="schematui", description="Edit a TOML config described by a JSON schema")
    parser.add_argument("schema", nargs="+", help="Schema file(s); includes are resolved relative to each file")
    parser.add_argument("-c", "--config", default="config.toml", help="TOML config file to edit")
    parser.add_argument("-d", "--defconfig", action="store_true",
                        help="Write the config with defaults filled in, without the UI")
    parser.add_argument("--options", metavar="FIELD",
                        help="Print the options for FIELD (section.field) as JSON and exit")
    parser.add_argument("--log-level")
    parser.add_argument("--log-file", help="Defaults to schematui.log while the UI runs")
    parser.add_argument("--strict", action="store_true", default=None,
                        help="Reject option sources with undeclared dependencies")
    return parser.parse_args(argv)


def print_options(app, field_id):
    try:
        options = app.options.options_for(field_id)
    except KeyError:
        print(f"Unknown enum field: {field_id}", file=sys.stderr)
        return 2
    finally:
        app.options.close()
    print(json.dumps(options))
    error = app.options.last_error(field_id)
    if error is not None:
        print(f"error: {error}", file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    args = parse_args(argv)
    graphical = not (args.defconfig or args.options)
    settings = get_settings(
        log_level=args.log_level.upper() if args.log_level else None,
        log_file=args.log_file or ("schematui.log" if graphical else None),
        strict_dependencies=args.strict,
    )
    setup_logging(settings.log_level, settings.log_format, settings.log_file)

    try:
        app = (SchemaTUIBuilder()
               .schema_file(*args.schema)
               .config_file(args.config)
               .settings(settings)
               .build())
        if args.options:
            return print_options(app, args.options)
        app.run(graphical=graphical)
    except SchemaTUIError as e:
        logger.error("startup_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        close_logging()
    return 0


if __name__ == "__main__":
    sys.exit(main())
