from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path, PurePath

import pytest

from docmirror.convert.converter import (
    ConversionStatus,
    Converter,
    PandocConverter,
)
from docmirror.convert.dispatcher import dispatch
from docmirror.convert.errors import ConversionError
from docmirror.convert.output import ConversionTask
from fixtures import RecordingConverter

pytestmark = pytest.mark.skipif(
    os.name == "nt", reason="uses a POSIX shell script as the converter"
)

_FAKE_PANDOC = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "pandoc 3.1"
  exit 0
fi
case "$4" in
  *bad*) echo "cannot parse $4" >&2; exit 3 ;;
esac
cp "$4" "$6"
"""


@pytest.fixture
def fake_pandoc(tmp_path: Path) -> Path:
    script = tmp_path / "bin" / "pandoc"
    script.parent.mkdir()
    script.write_text(_FAKE_PANDOC, encoding="utf-8")
    script.chmod(0o755)
    return script


def test_command_line_extracts_media_next_to_input(tmp_path):
    converter = PandocConverter(Path("/usr/bin/pandoc"))
    source = tmp_path / "docs" / "report.docx"

    command = converter.command_for(source, tmp_path / "out" / "report.md")

    assert command == [
        "/usr/bin/pandoc",
        "--extract-media",
        str(tmp_path / "docs" / "report"),
        "-s",
        str(source),
        "-o",
        str(tmp_path / "out" / "report.md"),
    ]
    assert converter.name() == "/usr/bin/pandoc"


def test_convert_runs_the_program(tmp_path, fake_pandoc):
    source = tmp_path / "a.docx"
    source.write_text("content", encoding="utf-8")
    target = tmp_path / "a.md"

    asyncio.run(PandocConverter(fake_pandoc).convert(source, target))

    assert target.read_text(encoding="utf-8") == "content"


def test_convert_raises_with_diagnostics_on_nonzero_exit(tmp_path, fake_pandoc):
    source = tmp_path / "bad.docx"
    source.write_text("content", encoding="utf-8")

    with pytest.raises(ConversionError) as excinfo:
        asyncio.run(
            PandocConverter(fake_pandoc).convert(source, tmp_path / "bad.md")
        )

    message = str(excinfo.value)
    assert "exit status 3" in message
    assert "cannot parse" in message


def test_convert_raises_when_program_cannot_start(tmp_path):
    converter = PandocConverter(tmp_path / "missing-pandoc")

    with pytest.raises(ConversionError, match="Failed to run"):
        asyncio.run(converter.convert(tmp_path / "a.docx", tmp_path / "a.md"))


def test_check_installed(tmp_path, fake_pandoc):
    assert asyncio.run(PandocConverter(fake_pandoc).check_installed()) is True
    missing = PandocConverter(tmp_path / "missing-pandoc")
    assert asyncio.run(missing.check_installed()) is False


def test_check_installed_false_on_failing_probe(tmp_path):
    script = tmp_path / "broken"
    script.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")
    script.chmod(0o755)

    assert asyncio.run(PandocConverter(script).check_installed()) is False


def test_implementations_satisfy_protocol(tmp_path):
    assert isinstance(PandocConverter(tmp_path / "pandoc"), Converter)
    assert isinstance(RecordingConverter(), Converter)


def test_timed_out_conversion_kills_the_process(tmp_path, logger):
    script = tmp_path / "slow-pandoc"
    script.write_text(
        "#!/bin/sh\n"
        'if [ "$1" = "--version" ]; then exit 0; fi\n'
        "sleep 1 </dev/null >/dev/null 2>&1\n"
        'echo late > "$6"\n',
        encoding="utf-8",
    )
    script.chmod(0o755)
    source = tmp_path / "slow.docx"
    source.write_text("content", encoding="utf-8")
    task = ConversionTask(
        input=source,
        output=tmp_path / "slow.md",
        relative_path=PurePath("slow.docx"),
    )

    outcomes = asyncio.run(
        dispatch([task], PandocConverter(script), logger=logger, timeout=0.2)
    )

    assert outcomes[0].status is ConversionStatus.INFRASTRUCTURE_FAILURE
    time.sleep(1.5)
    assert not task.output.exists()


def test_cancelled_conversion_removes_partial_output(tmp_path):
    script = tmp_path / "partial-pandoc"
    script.write_text(
        "#!/bin/sh\n"
        'echo partial > "$6"\n'
        "sleep 5 </dev/null >/dev/null 2>&1\n",
        encoding="utf-8",
    )
    script.chmod(0o755)
    source = tmp_path / "doc.docx"
    source.write_text("content", encoding="utf-8")
    target = tmp_path / "doc.md"

    async def run_and_cancel():
        running = asyncio.ensure_future(
            PandocConverter(script).convert(source, target)
        )
        for _ in range(100):
            if target.exists():
                break
            await asyncio.sleep(0.02)
        running.cancel()
        with pytest.raises(asyncio.CancelledError):
            await running

    asyncio.run(run_and_cancel())

    assert not target.exists()
