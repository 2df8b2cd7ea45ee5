#!/usr/bin/env python3
"""Tests for TransformPipeline and pipeline construction."""

import json

import pytest

from srcbundle.bundler import BundleConfig
from srcbundle.core.constants import ErrorCode
from srcbundle.core.errors import ConfigResolutionError
from srcbundle.transforms.base import Transform, TransformError
from srcbundle.transforms.compile import CompileTransform
from srcbundle.transforms.minify import MinifyTransform
from srcbundle.transforms.pipeline import TransformPipeline, build_pipeline


class WrapTransform(Transform):
    """Wraps code in name(...) and appends its name to the map."""

    def transform(self, code, source_map, file_path):
        return self.name.encode() + b"(" + code + b")", source_map + self.name.encode() + b";"


class FailingTransform(Transform):
    """Transform that always fails."""

    def transform(self, code, source_map, file_path):
        raise TransformError("Intentional failure")


class RecordingTransform(Transform):
    """Records the inputs it was called with."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = []

    def transform(self, code, source_map, file_path):
        self.calls.append((code, source_map, file_path))
        return code, source_map


class TestTransformPipeline:
    """Tests for TransformPipeline class."""

    def test_empty_pipeline_is_identity(self, logger):
        result = TransformPipeline(logger=logger).run(b"code", b"", "/p/a.js")

        assert result.code == b"code"
        assert result.map == b""
        assert result.metadata["transforms_applied"] == []

    def test_stages_run_in_order(self, logger):
        pipeline = TransformPipeline([WrapTransform(name="compile")], logger=logger)
        pipeline.add_transform(WrapTransform(name="minify"))

        result = pipeline.run(b"x", b"", "a.js")

        assert result.code == b"minify(compile(x))"
        assert result.map == b"compile;minify;"
        assert result.metadata["transforms_applied"] == ["compile", "minify"]

    def test_map_is_threaded_to_next_stage(self, logger):
        recorder = RecordingTransform(name="second")
        pipeline = TransformPipeline([WrapTransform(name="first"), recorder], logger=logger)

        pipeline.run(b"x", b"", "/p/a.js")

        assert recorder.calls == [(b"first(x)", b"first;", "/p/a.js")]

    def test_halts_on_first_error(self, logger):
        recorder = RecordingTransform(name="after")
        pipeline = TransformPipeline(
            [WrapTransform(name="compile"), FailingTransform(name="minify"), recorder],
            logger=logger,
        )

        with pytest.raises(TransformError) as exc_info:
            pipeline.run(b"x", b"", "/p/a.js")

        assert exc_info.value.transform_name == "minify"
        assert exc_info.value.file_path == "/p/a.js"
        assert recorder.calls == []
        assert pipeline.get_stats()["failed_runs"] == 1

    def test_skipped_stage_not_listed(self, logger):
        pipeline = TransformPipeline(
            [WrapTransform(name="on"), WrapTransform(name="off", enabled=False)], logger=logger
        )

        result = pipeline.run(b"x", b"", "a.js")

        assert result.code == b"on(x)"
        assert result.metadata["transforms_applied"] == ["on"]

    def test_remove_and_clear(self, logger):
        pipeline = TransformPipeline(
            [WrapTransform(name="a"), WrapTransform(name="b")], logger=logger
        )

        assert pipeline.remove_transform("a") is True
        assert pipeline.remove_transform("missing") is False
        assert [t.name for t in pipeline.get_transforms()] == ["b"]

        pipeline.clear_transforms()
        assert len(pipeline) == 0

    def test_stats(self, logger):
        pipeline = TransformPipeline([WrapTransform(name="wrap")], logger=logger)
        pipeline.run(b"x", b"", "a.js")
        pipeline.run(b"y", b"", "b.js")

        stats = pipeline.get_stats()
        assert stats["total_runs"] == 2
        assert stats["successful_runs"] == 2
        assert stats["transform_stats"]["wrap"]["successful_transforms"] == 2

        pipeline.reset_stats()
        assert pipeline.get_stats()["total_runs"] == 0
        assert pipeline.get_stats()["transform_stats"]["wrap"]["total_transforms"] == 0

    def test_repr(self, logger):
        pipeline = TransformPipeline([WrapTransform(name="wrap")], logger=logger)

        assert repr(pipeline) == "<TransformPipeline transforms=['wrap']>"


class TestBuildPipeline:
    """Tests for building the stage list from a BundleConfig."""

    def test_no_stages_by_default(self, tmp_path, logger):
        pipeline = build_pipeline(BundleConfig(project_root=tmp_path), logger)

        assert len(pipeline) == 0

    def test_compile_stage_with_explicit_options(self, tmp_path, logger):
        config = BundleConfig(
            project_root=tmp_path, method="compile", compile_options={"presets": ["env"]}
        )

        stages = build_pipeline(config, logger).get_transforms()

        assert len(stages) == 1
        assert isinstance(stages[0], CompileTransform)
        assert stages[0].options == {"presets": ["env"]}
        assert stages[0].cwd == str(tmp_path)

    def test_compile_options_from_project_file(self, tmp_path, logger):
        (tmp_path / ".babelrc").write_text(json.dumps({"presets": ["@babel/preset-env"]}))
        config = BundleConfig(project_root=tmp_path, method="compile")

        stage = build_pipeline(config, logger).get_transforms()[0]

        assert stage.options == {"presets": ["@babel/preset-env"]}

    def test_missing_project_file_fails(self, tmp_path, logger):
        config = BundleConfig(project_root=tmp_path, method="compile")

        with pytest.raises(ConfigResolutionError) as exc_info:
            build_pipeline(config, logger)

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_minify_only(self, tmp_path, logger):
        config = BundleConfig(project_root=tmp_path, minify=True, minify_options={"mangle": False})

        stages = build_pipeline(config, logger).get_transforms()

        assert len(stages) == 1
        assert isinstance(stages[0], MinifyTransform)
        assert stages[0].options == {"mangle": False}

    def test_compile_runs_before_minify(self, tmp_path, logger):
        config = BundleConfig(
            project_root=tmp_path, method="compile", compile_options={}, minify=True
        )

        stages = build_pipeline(config, logger).get_transforms()

        assert [type(s) for s in stages] == [CompileTransform, MinifyTransform]

    def test_custom_stages_come_last(self, tmp_path, logger):
        custom = WrapTransform(name="banner")
        config = BundleConfig(project_root=tmp_path, minify=True, transforms=[custom])

        stages = build_pipeline(config, logger).get_transforms()

        assert isinstance(stages[0], MinifyTransform)
        assert stages[1] is custom

    def test_custom_commands(self, tmp_path, logger, fake_tool):
        config = BundleConfig(
            project_root=tmp_path,
            method="compile",
            compile_options={},
            compile_command=fake_tool("compile"),
            minify=True,
            minify_command=fake_tool("minify"),
        )

        stages = build_pipeline(config, logger).get_transforms()

        assert stages[0].command == fake_tool("compile")
        assert stages[1].command == fake_tool("minify")

    def test_unknown_method_fails(self, tmp_path, logger):
        config = BundleConfig(project_root=tmp_path, method="typescript")

        with pytest.raises(ConfigResolutionError) as exc_info:
            build_pipeline(config, logger)

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT
        assert "typescript" in str(exc_info.value)
