# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Application settings.

Loaded in this order:
1. model defaults
2. SCHEMATUI_* environment variables
3. keyword arguments (the CLI passes its flags this way)
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SCHEMATUI_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: LogLevel = "INFO"
    log_format: Literal["json", "console"] = "console"
    log_file: Optional[str] = Field(
        default=None, description="Write logs here instead of stderr"
    )

    max_workers: int = Field(
        default=4, ge=1, description="Background threads resolving options"
    )
    command_cwd: Optional[str] = Field(
        default=None, description="Working directory for option commands"
    )
    strict_dependencies: bool = Field(
        default=False,
        description="Reject schemas whose depends_on omits a referenced path",
    )
    autosave: bool = Field(
        default=False, description="Rewrite the config file after every commit"
    )


def get_settings(**overrides) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
