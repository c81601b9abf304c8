from __future__ import annotations

from pathlib import Path

from docmirror.convert import discovery, output
from docmirror.convert.converter import ConversionStatus


def _entry(root: Path, relative: str) -> discovery.FileEntry:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("doc", encoding="utf-8")
    return discovery.FileEntry.from_path(root, path)


def test_resolve_output_in_place(tmp_path):
    root = tmp_path / "notes"
    entry = _entry(root, "sub/a.docx")

    resolution = output.resolve_output(entry, "md")

    assert resolution.output == root / "sub" / "a.md"
    assert resolution.skipped is False


def test_resolve_output_mirrors_relative_structure(tmp_path):
    root = tmp_path / "notes"
    out = tmp_path / "out"
    entry = _entry(root, "sub/a.docx")

    resolution = output.resolve_output(entry, ".md", out)

    assert resolution.output == out / "sub" / "a.md"
    assert (out / "sub").is_dir()
    assert not resolution.output.exists()
    task = resolution.to_task()
    assert task.input == root / "sub" / "a.docx"
    assert task.output == out / "sub" / "a.md"


def test_resolve_output_parent_creation_is_idempotent(tmp_path):
    root = tmp_path / "notes"
    out = tmp_path / "out"
    first = _entry(root, "sub/a.docx")
    second = _entry(root, "sub/b.docx")

    output.resolve_output(first, "md", out)
    resolution = output.resolve_output(second, "md", out)

    assert resolution.output == out / "sub" / "b.md"


def test_resolve_output_signals_skip_for_existing_output(tmp_path):
    root = tmp_path / "notes"
    out = tmp_path / "out"
    entry = _entry(root, "sub/a.docx")
    existing = out / "sub" / "a.md"
    existing.parent.mkdir(parents=True)
    existing.write_text("keep me", encoding="utf-8")

    resolution = output.resolve_output(entry, "md", out)

    assert resolution.skipped is True
    assert existing.read_text(encoding="utf-8") == "keep me"


def test_resolve_output_keeps_dotted_stems(tmp_path):
    root = tmp_path / "notes"
    entry = _entry(root, "v1.2.docx")

    resolution = output.resolve_output(entry, "md")

    assert resolution.output.name == "v1.2.md"


def test_build_tasks_partitions_skips(tmp_path, logger):
    root = tmp_path / "notes"
    out = tmp_path / "out"
    entries = [
        _entry(root, "a.docx"),
        _entry(root, "sub/b.docx"),
        _entry(root, "sub/deeper/c.docx"),
    ]
    (out / "sub").mkdir(parents=True)
    (out / "sub" / "b.md").write_text("done", encoding="utf-8")

    plan = output.build_tasks(entries, "md", out, logger=logger)

    assert [t.relative_path.as_posix() for t in plan.tasks] == [
        "a.docx",
        "sub/deeper/c.docx",
    ]
    assert [s.output for s in plan.skipped] == [out / "sub" / "b.md"]
    assert plan.failures == ()


def test_build_tasks_records_unresolvable_outputs(tmp_path, logger):
    root = tmp_path / "notes"
    out = tmp_path / "out"
    entries = [_entry(root, "sub/a.docx"), _entry(root, "b.docx")]
    out.mkdir()
    # A file where the mirrored directory should go blocks mkdir.
    (out / "sub").write_text("not a directory", encoding="utf-8")

    plan = output.build_tasks(entries, "md", out, logger=logger)

    assert [t.output for t in plan.tasks] == [out / "b.md"]
    assert len(plan.failures) == 1
    failure = plan.failures[0]
    assert failure.status is ConversionStatus.TASK_FAILURE
    assert failure.source == root / "sub" / "a.docx"
