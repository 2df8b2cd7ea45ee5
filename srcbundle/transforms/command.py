#!/usr/bin/env python3
"""Stages backed by an external program.

The compiler and minifier are not implemented here; they are separate
programs driven through a small file protocol:

1. The stage writes the code (and the incoming map, if any) into a scratch
   directory, plus its options as JSON.
2. The argv template is rendered with Jinja2 and run with subprocess.
3. The program's output file (and ``<output>.map``, if written) is read back.

Template variables:
    input, input_map, output, output_map, map_name, options_file,
    file_path, options

Arguments that render to an empty string are dropped, so optional flags
can be written as ``{% if input_map %}--input-source-map={{ input_map }}{% endif %}``.

Example:
    >>> stage = CommandTransform(
    ...     name="strip",
    ...     command=["sed", "-e", "s/debug//", "{{ input }}"],
    ...     output_from_stdout=True,
    ... )
"""

import json
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import jinja2
from jinja2 import meta

from srcbundle.core.constants import ErrorCode, Limits
from srcbundle.core.errors import ConfigResolutionError
from srcbundle.core.validators import ValidationError, validate_command
from srcbundle.transforms.base import Transform, TransformError

TEMPLATE_VARIABLES = frozenset(
    {
        "input",
        "input_map",
        "output",
        "output_map",
        "map_name",
        "options_file",
        "file_path",
        "options",
    }
)

# Bytes of stderr quoted in error messages
STDERR_TAIL = 2000

_jinja_env = jinja2.Environment(undefined=jinja2.StrictUndefined, autoescape=False)


class CommandTransform(Transform):
    """Transform that runs an external program once per file."""

    default_command: List[str] = []

    def __init__(
        self,
        name: Optional[str] = None,
        command: Optional[List[str]] = None,
        options: Optional[Dict[str, Any]] = None,
        extensions: Optional[Iterable[str]] = None,
        timeout: float = Limits.MAX_TRANSFORM_TIME,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        output_from_stdout: bool = False,
        enabled: bool = True,
    ):
        """Initialize command transform.

        Args:
            name: Transform name
            command: argv template (class default if None)
            options: Tool options, written to ``options_file`` as JSON
            extensions: Only transform files with these suffixes (all if None)
            timeout: Seconds before the program is killed
            cwd: Working directory for the program
            env: Extra environment variables
            output_from_stdout: Read code from stdout instead of ``output``
            enabled: Whether transform is enabled

        Raises:
            ConfigResolutionError: If the command template is unusable
        """
        super().__init__(name=name, enabled=enabled)

        if command is None:
            command = self.default_command
        try:
            validate_command(command)
        except ValidationError as e:
            raise ConfigResolutionError(f"{self.name}: {e.message}", ErrorCode.INVALID_INPUT) from e

        self.command = list(command)
        self._templates = [self._compile_arg(arg) for arg in self.command]
        self.options = dict(options or {})
        self.extensions = tuple(ext.lower() for ext in extensions) if extensions else None
        self.timeout = timeout
        self.cwd = cwd
        self.env = dict(env or {})
        self.output_from_stdout = output_from_stdout

    def _compile_arg(self, arg: str) -> jinja2.Template:
        try:
            undeclared = meta.find_undeclared_variables(_jinja_env.parse(arg))
            template = _jinja_env.from_string(arg)
        except jinja2.TemplateSyntaxError as e:
            raise ConfigResolutionError(
                f"{self.name}: invalid command template {arg!r}: {e}", ErrorCode.INVALID_INPUT
            ) from e

        unknown = undeclared - TEMPLATE_VARIABLES
        if unknown:
            raise ConfigResolutionError(
                f"{self.name}: unknown template variables {sorted(unknown)} in {arg!r}",
                ErrorCode.INVALID_INPUT,
            )
        return template

    def supports(self, file_path: str) -> bool:
        if self.extensions is None:
            return True
        return Path(file_path).suffix.lower() in self.extensions

    def render_command(self, variables: Dict[str, Any]) -> List[str]:
        """Render the argv template, dropping empty arguments."""
        rendered = (template.render(**variables) for template in self._templates)
        return [arg for arg in rendered if arg]

    def transform(self, code: bytes, source_map: bytes, file_path: str) -> Tuple[bytes, bytes]:
        with tempfile.TemporaryDirectory(prefix="srcbundle-") as scratch:
            scratch_dir = Path(scratch)
            name = Path(file_path).name or "input"

            input_dir = scratch_dir / "in"
            output_dir = scratch_dir / "out"
            input_dir.mkdir()
            output_dir.mkdir()

            input_path = input_dir / name
            input_path.write_bytes(code)

            input_map = ""
            if source_map:
                input_map_path = input_dir / f"{name}.map"
                input_map_path.write_bytes(source_map)
                input_map = str(input_map_path)

            options_file = scratch_dir / "options.json"
            options_file.write_text(json.dumps(self.options), encoding="utf-8")

            output_path = output_dir / name
            output_map_path = output_dir / f"{name}.map"

            argv = self.render_command(
                {
                    "input": str(input_path),
                    "input_map": input_map,
                    "output": str(output_path),
                    "output_map": str(output_map_path),
                    "map_name": f"{name}.map",
                    "options_file": str(options_file),
                    "file_path": file_path,
                    "options": self.options,
                }
            )

            stdout = self._run(argv, file_path)

            if self.output_from_stdout:
                new_code = stdout
            elif output_path.exists():
                new_code = output_path.read_bytes()
            else:
                raise TransformError(
                    f"{argv[0]} produced no output file", self.name, file_path
                )

            new_map = output_map_path.read_bytes() if output_map_path.exists() else b""
            return new_code, new_map

    def _run(self, argv: List[str], file_path: str) -> bytes:
        env = {**os.environ, **self.env} if self.env else None

        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                cwd=self.cwd,
                env=env,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise TransformError(
                f"Program not found: {argv[0]}", self.name, file_path, ErrorCode.DEPENDENCY_ERROR
            ) from e
        except subprocess.TimeoutExpired as e:
            raise TransformError(
                f"{argv[0]} timed out after {self.timeout}s",
                self.name,
                file_path,
                ErrorCode.TIMEOUT,
            ) from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()[-STDERR_TAIL:]
            raise TransformError(
                f"{argv[0]} exited with status {proc.returncode}: {stderr}",
                self.name,
                file_path,
            )

        return proc.stdout

    def get_metadata(self, file_path: str) -> Dict[str, Any]:
        metadata = super().get_metadata(file_path)
        metadata["program"] = self.command[0]
        return metadata
