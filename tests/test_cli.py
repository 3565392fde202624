"""
CLI tests: exit codes, keep-order output and the dedupe-files verb.
"""
import sys
from unittest import mock

import pytest

from fanout.aliases import EXIT_FAILURES, EXIT_NO_ITEMS, EXIT_OK, EXIT_SETUP_ERROR
from fanout.cli import CLIApplication
from fanout.core.models import SourceKind
from fanout.presets import PRESETS
from fanout.services.file_service import FileService

PRINT_NAME = "import os, sys; print(os.path.basename(sys.argv[1]))"


def run_cli(*args):
    return CLIApplication().run([str(a) for a in args])


class TestExitCodes:
    def test_success(self, numbered_files, temp_dir, capsys):
        code = run_cli("run", temp_dir, 4, sys.executable, "-c", PRINT_NAME, "{}")

        captured = capsys.readouterr()
        assert code == EXIT_OK
        assert captured.out.split() == sorted(numbered_files)
        assert "Succeeded: 10" in captured.err

    def test_some_items_failed(self, numbered_files, temp_dir, capsys):
        code_str = "import sys; sys.exit(2 if sys.argv[1].endswith('f03.txt') else 0)"

        code = run_cli("run", temp_dir, 3, sys.executable, "-c", code_str, "{}")

        captured = capsys.readouterr()
        assert code == EXIT_FAILURES
        assert "Failed: 1" in captured.err
        assert "f03.txt [non-zero-exit, exit=2]" in captured.err

    def test_no_items(self, temp_dir, capsys):
        code = run_cli("run", temp_dir, 2, "echo", "{}")

        assert code == EXIT_NO_ITEMS
        assert "No items found" in capsys.readouterr().err

    def test_missing_source_is_setup_error(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("run", temp_dir / "missing", 2, "echo", "{}")

        assert exc_info.value.code == EXIT_SETUP_ERROR
        assert "Source unavailable" in capsys.readouterr().err

    def test_template_error_is_setup_error(self, numbered_files, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("run", temp_dir, 2, "echo", "{password}", "{}")

        assert exc_info.value.code == EXIT_SETUP_ERROR

    def test_template_without_item(self, numbered_files, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("run", temp_dir, 2, "echo", "hello")

        assert exc_info.value.code == EXIT_SETUP_ERROR

    def test_zero_jobs_rejected(self, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("run", temp_dir, 0, "echo", "{}")

        assert exc_info.value.code == 2

    def test_invalid_timeout(self, numbered_files, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("run", "--timeout", "soon", temp_dir, 2, "echo", "{}")

        assert exc_info.value.code == EXIT_SETUP_ERROR


class TestRunOptions:
    def test_set_params_and_quiet(self, numbered_files, temp_dir, capsys):
        code_str = "import sys; print(sys.argv[2])"

        code = run_cli("run", "-q", "--set", "greeting=hi", "--pattern", "f00.txt",
                       temp_dir, 1, sys.executable, "-c", code_str, "{}", "{greeting}")

        captured = capsys.readouterr()
        assert code == EXIT_OK
        assert captured.out == "hi\n"
        assert "Succeeded" not in captured.err

    def test_kind_help_lists_every_kind(self, capsys):
        with pytest.raises(SystemExit):
            run_cli("run", "--help")

        out = capsys.readouterr().out
        for kind in SourceKind:
            assert kind.value in out
        assert SourceKind.LINES.display_name in out

    def test_walk_kind(self, test_files, temp_dir, capsys):
        code = run_cli("run", "--kind", "walk", temp_dir, 2, sys.executable, "-c", PRINT_NAME, "{}")

        assert code == EXIT_OK
        assert "dup_in_subdir.txt" in capsys.readouterr().out

    def test_timeout(self, temp_dir, capsys):
        (temp_dir / "only.txt").write_text("x")

        code = run_cli("run", "--timeout", "500ms", temp_dir, 1,
                       sys.executable, "-c", "import time; time.sleep(30)", "{}")

        assert code == EXIT_FAILURES
        assert "timeout" in capsys.readouterr().err

    def test_failed_item_output_is_still_written(self, temp_dir, capsys):
        (temp_dir / "only.txt").write_text("x")
        code_str = "import sys; print('partial'); sys.exit(4)"

        code = run_cli("run", temp_dir, 1, sys.executable, "-c", code_str, "{}")

        captured = capsys.readouterr()
        assert code == EXIT_FAILURES
        assert captured.out == "partial\n"
        assert "exit=4" in captured.err


class TestPresetVerbs:
    def test_preset_params_become_placeholders(self, temp_dir):
        app = CLIApplication()
        args = app.parse_args(["resize-images", str(temp_dir), "800", "600", "4"])

        params = app.create_dispatch_params(args, preset=PRESETS["resize-images"])

        assert params.params == {"width": "800", "height": "600"}
        assert params.spec.concurrency == 4
        assert params.pattern == "*.jpg"

    def test_jobs_optional(self, temp_dir):
        args = CLIApplication().parse_args(["wc", str(temp_dir)])
        assert args.jobs is None

    def test_local_verb(self, temp_dir, capsys):
        (temp_dir / "sorted.txt").write_bytes(b"a\na\nb\n")

        code = run_cli("dedupe-sorted", temp_dir, 2)

        assert code == EXIT_OK
        assert (temp_dir / "sorted.txt_deduped").read_bytes() == b"a\nb\n"
        assert "1 dropped" in capsys.readouterr().out

    def test_local_verb_failure(self, temp_dir):
        (temp_dir / "broken.json").write_text("{")

        assert run_cli("json-to-csv", temp_dir) == EXIT_FAILURES

    def test_local_verb_rejects_timeout(self, temp_dir, capsys):
        (temp_dir / "sorted.txt").write_bytes(b"a\n")

        with pytest.raises(SystemExit) as exc_info:
            run_cli("dedupe-sorted", "--timeout", "5s", temp_dir, 2)

        assert exc_info.value.code == EXIT_SETUP_ERROR
        assert "runs in-process" in capsys.readouterr().err
        assert not (temp_dir / "sorted.txt_deduped").exists()

    def test_local_verb_output_limit(self, temp_dir, capsys):
        (temp_dir / "sorted.txt").write_bytes(b"a\na\nb\n")

        code = run_cli("dedupe-sorted", "--max-output", "4", "--quiet", temp_dir, 2)

        assert code == EXIT_OK
        assert len(capsys.readouterr().out) == 4


class TestDedupeFiles:
    def test_dry_run_keeps_everything(self, test_files, temp_dir, capsys):
        code = run_cli("dedupe-files", temp_dir, 2, "--dry-run")

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert all(p.exists() for p in test_files.values())
        assert "[DRY RUN] 3 files would be removed" in out
        assert f"[KEEP] {test_files['dup1_a']}" in out
        assert f"[DEL]  {test_files['dup1_b']}" in out

    def test_removes_duplicates(self, test_files, temp_dir, capsys):
        code = run_cli("dedupe-files", temp_dir, 2)

        assert code == EXIT_OK
        assert test_files["dup1_a"].exists()
        assert not test_files["dup1_b"].exists()
        assert not test_files["sub_dup"].exists()
        assert "Removed 3 of 3 duplicates" in capsys.readouterr().out

    def test_trash(self, test_files, temp_dir):
        with mock.patch.object(FileService, "move_to_trash") as trash:
            code = run_cli("dedupe-files", temp_dir, "--trash", "-a", "sha256")

        assert code == EXIT_OK
        assert trash.call_count == 3

    def test_extensions_filter(self, test_files, temp_dir):
        (temp_dir / "copy.bin").write_bytes(b"A" * 1024)

        code = run_cli("dedupe-files", temp_dir, 2, "-x", "bin")

        assert code == EXIT_OK
        assert (temp_dir / "copy.bin").exists()
        assert test_files["dup1_b"].exists()

    def test_empty_directory(self, temp_dir):
        assert run_cli("dedupe-files", temp_dir) == EXIT_NO_ITEMS

    def test_missing_directory(self, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("dedupe-files", temp_dir / "missing")

        assert exc_info.value.code == EXIT_SETUP_ERROR

    def test_timeout_requires_hash_command(self, test_files, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("dedupe-files", "--timeout", "5s", temp_dir)

        assert exc_info.value.code == EXIT_SETUP_ERROR
        assert "external hash command" in capsys.readouterr().err
        assert test_files["dup1_b"].exists()

    def test_max_output_rejected(self, test_files, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("dedupe-files", "--max-output", "64K", temp_dir)

        assert exc_info.value.code == EXIT_SETUP_ERROR
        assert "--max-output" in capsys.readouterr().err
