from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pytest

from batch_converter.config import ToolsConfig
from batch_converter.converters import available_converters, get_converter
from batch_converter.converters.base import Converter, ExternalToolConverter
from batch_converter.converters.byml import BymlToYamlConverter
from batch_converter.errors import (
    ConversionTimeout,
    FileReadError,
    ToolMissing,
    UnsupportedOrCorruptInput,
)
from batch_converter.events import EventRecorder, RunError
from batch_converter.pipeline import BatchPipeline

COPY_SCRIPT = "import shutil, sys; shutil.copyfile(sys.argv[1], sys.argv[2])"


def python_tool(script: str, timeout_s: float | None = None) -> ExternalToolConverter:
    return ExternalToolConverter(
        executable=sys.executable,
        arguments=("-c", script, "{input}", "{output}"),
        timeout_s=timeout_s,
    )


def test_registry_covers_audio_and_data_pairs() -> None:
    names = {spec.name for spec in available_converters()}
    assert {"adx2wav", "hca2wav", "dsp2wav", "idsp2wav", "brwav2wav", "wav2qoa", "qoa2wav", "byml2yml"} <= names
    spec = get_converter("ADX2WAV")
    assert (spec.source_extension, spec.target_extension) == (".adx", ".wav")


def test_every_registration_builds_a_converter() -> None:
    for spec in available_converters():
        assert isinstance(spec.build(), Converter), spec.name


def test_unknown_converter_raises_key_error() -> None:
    with pytest.raises(KeyError):
        get_converter("mp3toflac")


def test_vgaudio_converter_uses_configured_tool() -> None:
    tools = ToolsConfig(vgaudio="/opt/vgaudio/VGAudioCli", timeout_s=30)
    converter = get_converter("hca2adx").build(tools)
    assert isinstance(converter, ExternalToolConverter)
    assert converter.executable == "/opt/vgaudio/VGAudioCli"
    assert converter.timeout_s == 30
    assert "{input}" in converter.arguments and "{output}" in converter.arguments


def test_spec_builds_job_for_directory(tmp_path: Path) -> None:
    job = get_converter("wav2qoa").job(tmp_path)
    assert job.root == tmp_path
    assert job.pattern == "*.wav"
    assert job.target_extension == ".qoa"
    assert job.label == "wav2qoa"


def test_external_tool_success(tmp_path: Path) -> None:
    source = tmp_path / "in.wav"
    source.write_bytes(b"RIFF")
    output = tmp_path / "in.qoa"

    outcome = python_tool(COPY_SCRIPT)(source, output)

    assert outcome.ok
    assert output.read_bytes() == b"RIFF"


def test_external_tool_nonzero_exit_is_unsupported_input(tmp_path: Path) -> None:
    source = tmp_path / "in.wav"
    source.write_bytes(b"junk")
    script = "import sys; sys.stderr.write('bad header'); sys.exit(3)"

    with pytest.raises(UnsupportedOrCorruptInput) as exc:
        python_tool(script)(source, tmp_path / "in.qoa")

    assert "exited with 3" in str(exc.value)
    assert "bad header" in str(exc.value)


def test_external_tool_missing_executable(tmp_path: Path) -> None:
    source = tmp_path / "in.adx"
    source.write_bytes(b"x")
    converter = ExternalToolConverter(executable="definitely-not-installed-codec-tool")

    with pytest.raises(ToolMissing):
        converter(source, tmp_path / "in.wav")


def test_external_tool_timeout(tmp_path: Path) -> None:
    source = tmp_path / "in.adx"
    source.write_bytes(b"x")

    with pytest.raises(ConversionTimeout):
        python_tool("import time; time.sleep(5)", timeout_s=0.2)(source, tmp_path / "in.wav")


def test_external_tool_missing_input(tmp_path: Path) -> None:
    with pytest.raises(FileReadError):
        python_tool(COPY_SCRIPT)(tmp_path / "gone.adx", tmp_path / "gone.wav")


def test_external_tool_inside_pipeline_isolates_failures(tmp_path: Path) -> None:
    (tmp_path / "a.adx").write_bytes(b"fail")
    (tmp_path / "b.adx").write_bytes(b"ok")
    script = (
        "import shutil, sys\n"
        "data = open(sys.argv[1], 'rb').read()\n"
        "sys.exit(2) if data == b'fail' else shutil.copyfile(sys.argv[1], sys.argv[2])"
    )
    job = replace(get_converter("adx2wav").job(tmp_path), convert=python_tool(script))
    recorder = EventRecorder()

    summary = BatchPipeline(recorder).run(job)

    assert (summary.succeeded, summary.failed) == (1, 1)
    assert (tmp_path / "b.wav").exists()
    assert not (tmp_path / "a.wav").exists()
    assert [event.code for event in recorder.of_type(RunError)] == ["UNSUPPORTED_INPUT"]


def test_byml_rejects_tiny_files_before_decoding(tmp_path: Path) -> None:
    source = tmp_path / "tiny.byml"
    source.write_bytes(b"BY")

    with pytest.raises(UnsupportedOrCorruptInput):
        BymlToYamlConverter()(source, tmp_path / "tiny.yml")


def test_byml_without_oead_reports_tool_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "oead", None)
    source = tmp_path / "stage.byml"
    source.write_bytes(b"YB\x00\x03payload")

    with pytest.raises(ToolMissing) as exc:
        BymlToYamlConverter()(source, tmp_path / "stage.yml")

    assert exc.value.code == "TOOL_MISSING"
    assert not (tmp_path / "stage.yml").exists()


def test_byml_converts_with_oead(tmp_path: Path) -> None:
    oead = pytest.importorskip("oead")
    document = oead.byml.from_text("name: stage01\ncount: 3\n")
    source = tmp_path / "stage.byml"
    source.write_bytes(bytes(oead.byml.to_binary(document, big_endian=False)))
    output = tmp_path / "stage.yml"

    outcome = BymlToYamlConverter()(source, output)

    assert outcome.ok
    text = output.read_text(encoding="utf-8")
    assert "stage01" in text
