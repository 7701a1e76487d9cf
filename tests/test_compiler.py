"""Tests for the compiler module."""

import subprocess
from pathlib import Path

import pytest

from typst_pack import compiler
from typst_pack.compiler import build_template, template_entrypoint_path
from typst_pack.errors import BuildError
from typst_pack.manifest import PackageManifest, TemplateDescriptor


class FakeRun:
    """Records subprocess.run calls and replays queued results."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((list(args), kwargs))
        result = self.results.pop(0) if self.results else (0, "", "")
        if isinstance(result, BaseException):
            raise result
        returncode, stdout, stderr = result
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)


@pytest.fixture
def fake_run(monkeypatch):
    def install(*results):
        fake = FakeRun(*results)
        monkeypatch.setattr(compiler.subprocess, "run", fake)
        return fake

    return install


def make_manifest(tmp_path, template=None):
    package_dir = tmp_path / "cards"
    package_dir.mkdir(exist_ok=True)
    return PackageManifest(
        name="cards",
        version="1.0.0",
        template=template,
        manifest_path=package_dir / "typst.toml",
    )


class TestBuildTemplate:
    """Tests for build_template."""

    def test_no_template_runs_nothing(self, tmp_path, fake_run):
        """Without a template the compiler is never invoked."""
        fake = fake_run()

        assert build_template(make_manifest(tmp_path)) is None
        assert fake.calls == []

    def test_compiles_template(self, tmp_path, fake_run):
        """The template is compiled from the package's parent directory."""
        fake = fake_run()
        manifest = make_manifest(tmp_path, TemplateDescriptor("template", "main.typ"))

        build_template(manifest)

        assert len(fake.calls) == 1
        args, kwargs = fake.calls[0]
        assert args == ["typst", "compile", "--root", ".", str(Path("cards/template/main.typ"))]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["capture_output"] is True

    def test_generates_thumbnail_after_compile(self, tmp_path, fake_run):
        """A declared thumbnail triggers a second, one-page compile."""
        fake = fake_run()
        manifest = make_manifest(
            tmp_path, TemplateDescriptor("template", "main.typ", "thumbnail.png")
        )

        thumbnail = build_template(manifest, compiler="/opt/typst")

        assert thumbnail == Path("cards") / "thumbnail.png"
        assert len(fake.calls) == 2
        args, kwargs = fake.calls[1]
        assert args == [
            "/opt/typst",
            "compile",
            "--root",
            ".",
            "--pages",
            "1",
            str(Path("cards/template/main.typ")),
            str(Path("cards/thumbnail.png")),
        ]
        assert kwargs["cwd"] == tmp_path

    def test_failed_compile_skips_thumbnail(self, tmp_path, fake_run):
        """A failing template build is fatal and stops before the thumbnail."""
        fake = fake_run((1, "compiling...", "error: unknown variable"))
        manifest = make_manifest(
            tmp_path, TemplateDescriptor("template", "main.typ", "thumbnail.png")
        )

        with pytest.raises(BuildError) as exc_info:
            build_template(manifest)

        message = str(exc_info.value)
        assert "Template compilation failed" in message
        assert "compiling..." in message
        assert "error: unknown variable" in message
        assert len(fake.calls) == 1

    def test_failed_thumbnail(self, tmp_path, fake_run):
        """A failing thumbnail build is fatal too."""
        fake_run((0, "", ""), (2, "", "cannot export"))
        manifest = make_manifest(
            tmp_path, TemplateDescriptor("template", "main.typ", "thumbnail.png")
        )

        with pytest.raises(BuildError) as exc_info:
            build_template(manifest)

        assert "Thumbnail generation failed" in str(exc_info.value)
        assert "cannot export" in str(exc_info.value)

    def test_missing_compiler(self, tmp_path, fake_run):
        """A compiler that cannot be launched is a build error."""
        fake_run(FileNotFoundError("typst"))
        manifest = make_manifest(tmp_path, TemplateDescriptor("template", "main.typ"))

        with pytest.raises(BuildError) as exc_info:
            build_template(manifest)

        assert "Failed to compile template" in str(exc_info.value)


class TestTemplateEntrypointPath:
    """Tests for template_entrypoint_path."""

    def test_rooted_at_package_name(self):
        """The path starts with the package directory name."""
        template = TemplateDescriptor("template", "main.typ")

        assert template_entrypoint_path("cards", template) == Path("cards/template/main.typ")
