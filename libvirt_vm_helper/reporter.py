"""
Result reporter: writes an ``OperationResult`` to standard output and
decides the process exit code.
"""

import json
from typing import Any

import typer
from pydantic import BaseModel

from .config import Config
from .models import OperationResult, ResultKind


def format_error(message: str) -> str:
    """Strip double quotes so the message can be embedded in ad-hoc JSON."""
    return message.replace('"', "")


def to_json(value: Any) -> str:
    """Serialize a payload as compact single-line JSON."""
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return json.dumps(value, separators=(",", ":"))


def render(result: OperationResult, config: Config) -> str:
    """Text written to stdout for ``result``, including the trailing newline."""
    if not result.success:
        message = format_error(result.message)
        if config.output.json_errors:
            return to_json({"error": message}) + "\n"
        return message + "\n"

    if result.kind == ResultKind.TEXT:
        return str(result.payload)
    if result.kind == ResultKind.DATA:
        return to_json(result.payload) + "\n"
    return to_json({"ok": format_error(result.message)}) + "\n"


def exit_code(result: OperationResult, config: Config) -> int:
    return 0 if result.success else config.output.error_exit_code


def report(result: OperationResult, config: Config) -> int:
    """Write ``result`` to stdout and return the exit code for it."""
    typer.echo(render(result, config), nl=False)
    return exit_code(result, config)
