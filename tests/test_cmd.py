import io
import random
import sys
from datetime import datetime

import pytest

from lwos.shell import REBOOT, SHUTDOWN, Shell, main

KEYWORDS = [
    "help",
    "ls",
    "dir",
    "create",
    "write",
    "append",
    "read",
    "delete",
    "del",
    "rename",
    "copy",
    "calc",
    "date",
    "clear",
    "ver",
    "sysinfo",
    "echo",
    "rand",
    "memalloc",
    "memfree",
    "meminfo",
    "shutdown",
    "reboot",
]


def new_shell(text: str = "", **kwargs) -> Shell:
    return Shell(verbose=True, stdin=io.StringIO(text), stdout=io.StringIO(), **kwargs)


def run(shell: Shell, line: str) -> str:
    shell.stdout.seek(0)
    shell.stdout.truncate()
    shell.onecmd(line, batch=True)
    return shell.stdout.getvalue()


def test_commands():
    shell = new_shell()
    for keyword in KEYWORDS:
        assert keyword in shell.commands
        assert hasattr(shell, shell.commands[keyword])
    assert shell.commands["del"] == shell.commands["delete"]
    # Keywords are case insensitive
    assert run(shell, "ECHO Hello") == "Hello\n"
    assert run(shell, "Echo   Hello  World ") == "Hello  World\n"
    assert run(shell, "echo") == "\n"


def test_unknown():
    shell = new_shell()
    assert run(shell, "foo") == "Unknown command. Type 'help' to see commands.\n"
    assert run(shell, "createx a") == "Unknown command. Type 'help' to see commands.\n"
    assert run(shell, "EOF!") == "Unknown command. Type 'help' to see commands.\n"
    assert len(shell.fs) == 0
    assert run(shell, "") == ""
    assert run(shell, "   ") == ""


def test_help():
    shell = new_shell()
    out = run(shell, "HELP")
    for keyword in KEYWORDS:
        if keyword != "del":
            assert keyword.upper() in out
    assert "SYNTAX" in run(shell, "help create")
    assert "SYNTAX" in run(shell, "?memalloc")
    assert run(shell, "help xyz") == "*** No help on xyz\n"


def test_files():
    shell = new_shell("hello\n")
    assert run(shell, "ls") == "(no files)\n"
    assert run(shell, "dir") == "(no files)\n"
    assert run(shell, "create notes.txt") == "File created: notes.txt\n"
    assert run(shell, "create NOTES.TXT") == "File already exists.\n"
    assert run(shell, "read notes.txt") == "(empty file)\n"
    assert run(shell, "write notes.txt") == "Enter text: Wrote notes.txt\n"
    assert run(shell, "read notes.txt") == "hello\n"
    assert run(shell, "ls") == "notes.txt\n"
    assert run(shell, "dir") == "notes.txt" + " " * 15 + "      5 bytes\n"
    assert run(shell, "delete notes.txt") == "Deleted: notes.txt\n"
    assert run(shell, "read notes.txt") == "File not found.\n"
    assert run(shell, "ls") == "(no files)\n"


def test_write_append():
    shell = new_shell("t1\nt2\n\nX\n")
    run(shell, "create a.txt")
    assert run(shell, "append a.txt") == "Enter text: Appended to a.txt\n"
    assert run(shell, "append A.TXT") == "Enter text: Appended to A.TXT\n"
    assert run(shell, "read a.txt") == "t1t2\n"
    # Empty text is accepted
    assert run(shell, "write a.txt") == "Enter text: Wrote a.txt\n"
    assert run(shell, "read a.txt") == "(empty file)\n"
    # No prompt for a missing file
    assert run(shell, "write b.txt") == "File not found.\n"
    assert run(shell, "append b.txt") == "File not found.\n"
    assert shell.stdin.readline() == "X\n"


def test_usage():
    shell = new_shell()
    assert run(shell, "create") == "Usage: create <file>\n"
    assert run(shell, "create    ") == "Usage: create <file>\n"
    assert run(shell, "write") == "Usage: write <file>\n"
    assert run(shell, "append") == "Usage: append <file>\n"
    assert run(shell, "read") == "Usage: read <file>\n"
    assert run(shell, "delete") == "Usage: delete <file>\n"
    assert run(shell, "del") == "Usage: delete <file>\n"
    assert run(shell, "rename") == "Usage: rename <old> <new>\n"
    assert run(shell, "rename a") == "Usage: rename <old> <new>\n"
    assert run(shell, "copy a") == "Usage: copy <src> <dest>\n"
    assert run(shell, "memalloc") == "Usage: memalloc <size>\n"
    assert run(shell, "memfree") == "Usage: memfree <id>\n"
    assert len(shell.fs) == 0
    assert shell.memory.blocks == []


def test_rename_copy():
    shell = new_shell("X\n")
    run(shell, "create a.txt")
    assert run(shell, "copy a.txt b.txt") == "Copied 'a.txt' -> 'b.txt'\n"
    assert run(shell, "read b.txt") == "(empty file)\n"
    run(shell, "write b.txt")
    assert run(shell, "read b.txt") == "X\n"
    assert run(shell, "read a.txt") == "(empty file)\n"
    assert run(shell, "copy a.txt B.TXT") == "Target exists: B.TXT\n"
    assert run(shell, "copy c.txt d.txt") == "File not found: c.txt\n"
    assert run(shell, "rename a.txt a.txt") == "Target exists: a.txt\n"
    assert run(shell, "rename c.txt d.txt") == "File not found: c.txt\n"
    assert run(shell, "rename b.txt c.txt") == "Renamed 'b.txt' -> 'c.txt'\n"
    assert run(shell, "read c.txt") == "X\n"
    assert run(shell, "read b.txt") == "File not found.\n"
    assert run(shell, "ls") == "a.txt\nc.txt\n"
    assert run(shell, "del c.txt") == "Deleted: c.txt\n"


def test_memory():
    shell = new_shell()
    assert run(shell, "meminfo") == (
        "=== Memory Info ===\n" "Blocks: 0  (Used: 0, Free: 0)\n" "Total used: 0 bytes\n" "No memory blocks yet.\n"
    )
    assert run(shell, "memalloc 100") == "Allocated block 1 (100 bytes).\n"
    assert run(shell, "memalloc 50") == "Allocated block 2 (50 bytes).\n"
    assert run(shell, "memfree 1") == "Freed block 1 (100 bytes).\n"
    assert run(shell, "memfree 1") == "Invalid block ID!\n"
    assert run(shell, "memfree 3") == "Invalid block ID!\n"
    assert run(shell, "meminfo") == (
        "=== Memory Info ===\n"
        "Blocks: 2  (Used: 1, Free: 1)\n"
        "Total used: 50 bytes\n"
        "  Block 1: 100 bytes - Free\n"
        "  Block 2: 50 bytes - Used\n"
    )
    for arg in ["0", "-5", "abc", "1.5"]:
        assert run(shell, f"memalloc {arg}") == "Usage: memalloc <size>\n"
        assert run(shell, f"memfree {arg}") == "Usage: memfree <id>\n"
    assert run(shell, "memalloc 10") == "Allocated block 3 (10 bytes).\n"


def test_calc():
    shell = new_shell("10\n/\n0\n")
    out = run(shell, "calc")
    assert out.startswith("=== Calculator ===\n")
    assert out.endswith("Error: divide by zero\n")
    assert "Result" not in out
    shell = new_shell("10\n/\n4\n")
    assert run(shell, "calc").endswith("Enter second number: Result: 2.5\n")
    shell = new_shell("6\n*\n7\n")
    assert run(shell, "calc").endswith("Result: 42\n")
    shell = new_shell("6\n%\n7\n")
    assert run(shell, "calc").endswith("Invalid operator\n")
    # Invalid first number, no further prompts
    shell = new_shell("abc\n+\n1\n")
    assert run(shell, "calc") == "=== Calculator ===\nEnter first number: Invalid number\n"
    assert shell.stdin.readline() == "+\n"
    shell = new_shell("1\n+\nxyz\n")
    assert run(shell, "calc").endswith("Invalid number\n")


def test_utilities():
    shell = new_shell(clock=lambda: datetime(2024, 1, 2, 3, 4, 5), rng=random.Random(42))
    assert run(shell, "date") == "2024-01-02 03:04:05\n"
    assert run(shell, "ver") == "Light_Weight_Operating_System v1.0\n"
    assert run(shell, "clear") == "\033[2J\033[H"
    lines = run(shell, "sysinfo").splitlines()
    assert lines[0] == "OS: Light_Weight_Operating_System"
    assert lines[1].startswith("CPU: ")
    assert lines[2].startswith("RAM: ") and lines[2].endswith(" MB")
    for _ in range(200):
        out = run(shell, "rand")
        assert out.startswith("Random: ")
        assert 1 <= int(out[8:]) < 100


def test_power():
    shell = new_shell()
    assert shell.power is None
    assert shell.onecmd("shutdown", batch=True)
    assert shell.power == SHUTDOWN
    shell = new_shell()
    assert shell.onecmd("REBOOT", batch=True)
    assert shell.power == REBOOT
    assert shell.stdout.getvalue() == "System is rebooting...\n"


def test_cmdloop():
    shell = new_shell("create a.txt\nwrite a.txt\nhello\n\nread a.txt\nshutdown\nls\n")
    shell.cmdloop()
    out = shell.stdout.getvalue()
    assert shell.power == SHUTDOWN
    assert "File created: a.txt\n" in out
    assert "hello\n" in out
    assert out.endswith("System is shutting down...\n")
    # The loop stops after shutdown
    assert shell.stdin.readline() == "ls\n"
    # End of input
    shell = new_shell("memalloc 10\n")
    shell.cmdloop()
    assert shell.power is None
    assert len(shell.memory.blocks) == 1


def test_sessions_are_isolated():
    shell1 = new_shell()
    shell2 = new_shell()
    run(shell1, "create a.txt")
    run(shell1, "memalloc 10")
    assert run(shell2, "ls") == "(no files)\n"
    assert run(shell2, "memalloc 10") == "Allocated block 1 (10 bytes).\n"


def test_main(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["lwos", "-c", "memalloc 10", "-c", "create a", "-c", "dir"])
    main()
    out = capsys.readouterr().out
    assert "Allocated block 1 (10 bytes).\n" in out
    assert "File created: a\n" in out
    assert "a" + " " * 23 + "      0 bytes\n" in out


def test_main_shutdown(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["lwos", "-c", "shutdown", "-c", "echo never"])
    main()
    out = capsys.readouterr().out
    assert out == "System is shutting down...\n"


def test_unexpected_error(monkeypatch):
    shell = new_shell()

    def fail(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(shell.memory, "info", fail)
    # Reported and the loop goes on
    assert shell.onecmd("meminfo") is False
    assert "boom\n" in shell.stdout.getvalue()
    with pytest.raises(RuntimeError):
        shell.onecmd("meminfo", batch=True)


def test_main_reboot(monkeypatch, capsys, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(sys, "argv", ["lwos", "-c", "create a", "-c", "memalloc 5", "-c", "reboot"])
    monkeypatch.setattr(sys, "stdin", io.StringIO("ls\nmemalloc 7\nshutdown\n"))
    main()
    out = capsys.readouterr().out
    assert "File created: a\n" in out
    assert "Allocated block 1 (5 bytes).\n" in out
    assert "System is rebooting...\n" in out
    # A new session after the reboot
    assert "(no files)\n" in out
    assert "Allocated block 1 (7 bytes).\n" in out
    assert out.endswith("System is shutting down...\n")


def test_raw_input(monkeypatch):
    answers = ["hello"]

    def fake_input(prompt=""):
        if not answers:
            raise EOFError
        return answers.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    shell = Shell(stdout=io.StringIO())
    assert shell.use_rawinput
    run(shell, "create a.txt")
    assert run(shell, "write a.txt") == "Wrote a.txt\n"
    assert run(shell, "read a.txt") == "hello\n"
    # End of input is an empty answer
    assert run(shell, "append a.txt") == "Appended to a.txt\n"
    assert run(shell, "read a.txt") == "hello\n"


def test_non_ascii_arguments():
    shell = new_shell("-1\n*\n0\n")
    assert run(shell, "memalloc ٣") == "Usage: memalloc <size>\n"
    assert run(shell, "memfree ١") == "Usage: memfree <id>\n"
    assert shell.memory.blocks == []
    assert run(shell, "calc").endswith("Result: -0\n")
    run(shell, "create ß")
    assert run(shell, "create SS") == "File created: SS\n"
    assert run(shell, "create ss") == "File already exists.\n"
