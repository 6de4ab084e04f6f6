#!/usr/bin/env python3
# Copyright (C) 2024-2025 Viktor Kolbasov <contact@studentdotai.com>
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
config.py

Decoder settings. Defaults match the S-57 Edition 3.1 ENC product
specification; environment variables prefixed with ENC_DECODER_ override them.
"""

import codecs
import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "ENC_DECODER_"


class DecoderConfig(BaseModel):
    """A Pydantic model holding the knobs of one decode run."""
    check_sequence: bool = Field(True, description="Enforce monotonic '0001' record numbering")
    resolve_references: bool = Field(True, description="Run the end-of-file reference check")
    attribute_encoding: str = Field("latin-1", description="Codec for ATTF and level 0/1 text")
    national_encoding: str = Field("utf-16-le", description="Codec for level 2 (UCS-2) text")
    log_level: str = Field("INFO", description="Logging level used by the command line tool")

    @field_validator('attribute_encoding', 'national_encoding')
    @classmethod
    def check_codec(cls, value: str) -> str:
        """Reject codec names Python does not know."""
        try:
            codecs.lookup(value)
        except LookupError:
            raise ValueError(f"Unknown text encoding: {value}")
        return value

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "DecoderConfig":
        """
        Builds a config from ENC_DECODER_* environment variables.

        A .env file is loaded first (without overriding variables already set),
        mirroring how the workflow scripts pick up their settings.
        """
        load_dotenv(env_file)
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if cls.model_fields[name].annotation is bool:
                values[name] = raw.strip().lower() in ('1', 'true', 'yes', 'on')
            else:
                values[name] = raw.strip()
        if values:
            logger.debug(f"Decoder settings from environment: {values}")
        return cls(**values)
