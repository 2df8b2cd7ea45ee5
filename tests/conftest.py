"""Shared pytest fixtures for srcbundle tests."""
import logging
import sys
import textwrap
from pathlib import Path
from typing import Callable, Dict, List

import pytest
import yaml

from srcbundle.infrastructure.logger import Logger, set_global_logger

# Stand-in for an external compiler/minifier. Wraps its input as TAG(...)
# and writes a JSON map recording the stage and the map it was handed.
FAKE_TOOL = textwrap.dedent(
    """
    import json
    import sys

    tag, src, dst = sys.argv[1:4]
    flags = sys.argv[4:]
    if "--fail" in flags:
        sys.stderr.write("boom: cannot transform " + src + "\\n")
        sys.exit(3)

    prev = None
    for flag in flags:
        if flag.startswith("--map="):
            with open(flag[len("--map="):]) as f:
                prev = json.load(f)

    with open(src, "rb") as f:
        code = f.read()
    with open(dst, "wb") as f:
        f.write(tag.encode() + b"(" + code + b")")

    if "--no-map" not in flags:
        with open(dst + ".map", "w") as f:
            json.dump({"stage": tag, "prev": prev}, f)
    """
)


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create files (and parent directories) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Factory creating a project tree under tmp_path/project."""

    def _make(files: Dict[str, str]) -> Path:
        return write_tree(tmp_path / "project", files)

    return _make


@pytest.fixture
def project_root(make_tree) -> Path:
    """A small JavaScript project with tests, dotfiles and dependencies."""
    return make_tree(
        {
            "lib/a.js": "export const a = 1;\n",
            "lib/a.test.js": "test('a', () => {});\n",
            "lib/util/b.js": "export const b = 2;\n",
            "lib/node_modules/x.js": "module.exports = 'nested dep';\n",
            "node_modules/left-pad/index.js": "module.exports = 'dep';\n",
            "config/app.json": '{"debug": false}\n',
            "README.md": "# demo\n",
            ".env": "SECRET=1\n",
        }
    )


@pytest.fixture
def fake_tool(tmp_path: Path) -> Callable[..., List[str]]:
    """Factory returning an argv template that runs the fake external tool."""
    tool_dir = tmp_path / "tools"
    tool_dir.mkdir(exist_ok=True)
    script = tool_dir / "fake_tool.py"
    script.write_text(FAKE_TOOL)

    def _command(tag: str, *flags: str) -> List[str]:
        return [
            sys.executable,
            str(script),
            tag,
            "{{ input }}",
            "{{ output }}",
            "{% if input_map %}--map={{ input_map }}{% endif %}",
            *flags,
        ]

    return _command


@pytest.fixture
def logger() -> Logger:
    """Quiet logger for components under test."""
    return Logger("srcbundle.test", level="DEBUG", handlers=[logging.NullHandler()])


@pytest.fixture
def sample_config() -> Dict:
    """Provide a sample srcbundle configuration."""
    return {
        "srcbundle": {
            "includes": ["lib/**", {"regex": r"\.json$"}],
            "excludes": ["**/*.test.js"],
            "method": "none",
            "minify": False,
            "compress": True,
            "logging": {
                "level": "DEBUG",
                "file": None,
            },
        }
    }


@pytest.fixture
def config_file(tmp_path: Path, sample_config: Dict) -> Path:
    """Create a configuration file."""
    config_path = tmp_path / "srcbundle.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path


@pytest.fixture(autouse=True)
def reset_global_logger():
    """Drop the process-wide logger between tests."""
    yield
    set_global_logger(None)
