import io
import subprocess
from unittest import mock

import pytest

from humalite.recorder import (
    Delay,
    Script,
    ScriptError,
    Shell,
    Wait,
    main,
    parse_control,
    parse_delay,
    parse_wait,
)


def _quiet_script(**kwargs):
    return Script(delay=0, wait=0, stdin=io.BytesIO(), **kwargs)


def test_shell_appends_newline():
    assert Shell("ls").cmd == "ls\n"
    assert Shell("ls\n").cmd == "ls\n"


def test_shell_types_each_character():
    script = _quiet_script()
    Shell("echo héllo").run(script)
    assert script.stdin.getvalue() == "echo héllo\n".encode("utf-8")


def test_shell_without_stdin_raises():
    with pytest.raises(ScriptError):
        Shell("ls").run(Script(delay=0))


def test_shell_write_failure_exits():
    script = _quiet_script()
    script.stdin.close()
    with pytest.raises(SystemExit) as info:
        Shell("ls").run(script)
    assert info.value.code == 1


def test_parse_wait_and_delay():
    assert parse_wait(["250"]) == Wait(0.25)
    assert parse_delay([" 40 "]) == Delay(0.04)


@pytest.mark.parametrize("parser", [parse_wait, parse_delay])
def test_parse_requires_argument(parser):
    with pytest.raises(ScriptError, match="no arguments given to command"):
        parser([])


@pytest.mark.parametrize("bad", ["abc", "1.5", "", "1_000", "99999999999999999999"])
def test_parse_rejects_bad_argument(bad):
    with pytest.raises(ScriptError, match="invalid command argument"):
        parse_wait([bad])


def test_parse_control_dispatch():
    assert parse_control("delay 100") == Delay(0.1)
    assert parse_control("wait 100") == Wait(0.1)
    with pytest.raises(ScriptError, match="unknown control command"):
        parse_control("pause 10")


def test_wait_and_delay_update_script():
    script = _quiet_script()
    Wait(0.5).run(script)
    Delay(0.2).run(script)
    assert (script.wait, script.delay) == (0.5, 0.2)


def test_from_file_parses_commands(tmp_path):
    path = tmp_path / "demo.sh"
    path.write_text("#$ delay 0\necho one\n#$ wait 0\n\necho two\n", encoding="utf-8")
    script = Script.from_file(str(path), ["out.cast"])
    assert script.args == ["out.cast"]
    assert script.delay == 0.04
    assert script.wait == 0.1
    assert script.commands == [
        Delay(0.0),
        Shell("echo one"),
        Wait(0.0),
        Shell(""),
        Shell("echo two"),
    ]


def test_from_file_reports_line_number(tmp_path):
    path = tmp_path / "bad.sh"
    path.write_text("echo ok\n#$ bogus\n", encoding="utf-8")
    with pytest.raises(ScriptError) as info:
        Script.from_file(str(path), [])
    assert str(info.value) == "unknown control command (line 2)"


def test_execute_runs_commands_in_order(tmp_path):
    path = tmp_path / "run.sh"
    path.write_text("#$ delay 0\n#$ wait 0\nls\npwd\n", encoding="utf-8")
    script = Script.from_file(str(path), [])
    script.stdin = io.BytesIO()
    script.execute()
    assert script.stdin.getvalue() == b"ls\npwd\n"
    assert script.delay == 0 and script.wait == 0


def _fake_process():
    process = mock.MagicMock()
    process.stdin = io.BytesIO()
    process.stdout = io.BytesIO(b"")
    process.stderr = io.BytesIO(b"")
    return process


def test_start_and_stop_with_output_file():
    process = _fake_process()
    script = Script(args=["out.cast"], delay=0, wait=0)
    with mock.patch("subprocess.Popen", return_value=process) as popen:
        script.start()
    assert popen.call_args.args[0] == ["asciinema", "rec", "out.cast"]
    assert script.stdin is process.stdin
    script.stop()
    assert process.stdin.getvalue() == b"\x04"
    process.wait.assert_called_once()


def test_stop_dialog_confirms_with_enter():
    process = _fake_process()
    script = Script(args=[], process=process, stdin=process.stdin)
    with mock.patch("sys.stdin", io.StringIO("\n")):
        script.stop()
    assert process.stdin.getvalue() == b"\x04\n"
    process.wait.assert_called_once()


def test_stop_before_start_raises():
    with pytest.raises(ScriptError):
        Script().stop()


def test_main_usage(capsys):
    assert main([]) == 1
    assert "usage:" in capsys.readouterr().err
    assert main(["--help"]) == 1


def test_main_missing_asciinema(tmp_path, capsys):
    path = tmp_path / "s.sh"
    path.write_text("ls\n", encoding="utf-8")
    with mock.patch("subprocess.run", side_effect=FileNotFoundError):
        assert main([str(path)]) == 1
    assert "can't find asciinema executable" in capsys.readouterr().err


def test_main_bad_script(tmp_path, capsys):
    path = tmp_path / "s.sh"
    path.write_text("#$ wait\n", encoding="utf-8")
    ok = subprocess.CompletedProcess(["asciinema", "-h"], 0)
    with mock.patch("subprocess.run", return_value=ok):
        assert main([str(path)]) == 1
    assert "no arguments given to command (line 1)" in capsys.readouterr().err


def test_main_records_script(tmp_path):
    path = tmp_path / "s.sh"
    path.write_text("#$ delay 0\n#$ wait 0\nls\n", encoding="utf-8")
    ok = subprocess.CompletedProcess(["asciinema", "-h"], 0)
    process = _fake_process()
    with mock.patch("subprocess.run", return_value=ok), mock.patch(
        "subprocess.Popen", return_value=process
    ) as popen:
        assert main([str(path), "out.cast"]) == 0
    assert popen.call_args.args[0] == ["asciinema", "rec", "out.cast"]
    assert process.stdin.getvalue() == b"ls\n\x04"