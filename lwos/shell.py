# Copyright (C) 2014 Andrea Bonomi <andrea.bonomi@gmail.com>

# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to
# deal in the Software without restriction, including without limitation the
# rights to use, copy, modify, merge, publish, distribute, sublicense, and/or
# sell copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.

import argparse
import cmd
import importlib.resources
import os
import random
import sys
import traceback
import typing as t
from datetime import datetime

from .calc import evaluate, format_result, parse_operand
from .commons import (
    OS_NAME,
    InvalidBlockError,
    InvalidOperatorError,
    get_amount_of_ram,
    get_cpu_label,
    split_command,
    split_two,
)
from .memfs import MemoryFilesystem
from .memory import MemoryManager

try:
    import readline
except ImportError:
    readline = None  # type: ignore

__all__ = [
    "Shell",
    "SHUTDOWN",
    "REBOOT",
]

HISTORY_FILENAME = "~/.lwos_history"
HISTORY_LENGTH = 1000
PROMPT = "LWOS> "
CLEAR_SCREEN = "\033[2J\033[H"

SHUTDOWN = "shutdown"
REBOOT = "reboot"

# alias => command
ALIASES = {
    "del": "delete",
    "?": "help",
}

BANNER = """\
=======================================
  Light Weight Operating System (LWOS)
  Booted successfully!
  Type 'help' to see commands.
======================================="""


def parse_positive_int(arg: str) -> int:
    """
    Parse a strictly positive integer argument
    """
    value = int(arg.strip())
    if value <= 0 or "_" in arg or not arg.isascii():
        raise ValueError(f"Invalid value {arg!r}")
    return value


def get_version() -> str:
    with importlib.resources.files("lwos").joinpath("VERSION").open("r", encoding="utf-8") as f:
        return f.read().strip()


class Shell(cmd.Cmd):
    verbose: bool = False
    fs: MemoryFilesystem
    memory: MemoryManager
    commands: t.Dict[str, str]  # keyword => method name
    power: t.Optional[str] = None  # SHUTDOWN, REBOOT or None

    def __init__(
        self,
        verbose: bool = False,
        stdin: t.Optional[t.TextIO] = None,
        stdout: t.Optional[t.TextIO] = None,
        history: bool = False,
        rng: t.Optional[random.Random] = None,
        clock: t.Optional[t.Callable[[], datetime]] = None,
    ):
        cmd.Cmd.__init__(self, stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.verbose = verbose
        self.prompt = PROMPT
        self.fs = MemoryFilesystem()
        self.memory = MemoryManager()
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now
        self.power = None
        self.history_file = os.path.expanduser(HISTORY_FILENAME) if history else None
        # Init readline and history
        if readline is not None and history:
            if sys.platform == "darwin":
                readline.parse_and_bind("bind ^I rl_complete")
            else:
                readline.parse_and_bind("tab: complete")
                readline.parse_and_bind("set bell-style none")
            readline.set_completer(self.complete)
            try:
                if self.history_file:
                    readline.set_history_length(HISTORY_LENGTH)
                    readline.read_history_file(self.history_file)
            except IOError:
                pass
        # Process cmd names
        self.commands = {}
        for name in self.get_names():
            if name[:3] == "do_" and name[3:].islower():
                self.commands[name[3:]] = name
        for alias, target in ALIASES.items():
            if target not in self.commands:
                raise ValueError(f"Alias {alias} refers to an unknown command {target}")
            self.commands[alias] = self.commands[target]

    def completenames(self, text: str, *ignored: t.Any) -> t.List[str]:
        text = text.lower()
        return ["%s " % a for a in sorted(self.commands) if a.startswith(text) and a != "?"]

    def completedefault(self, *ignored: t.Any) -> t.List[str]:
        text: str = ignored[0]
        return [x.basename for x in self.fs.entries_list if x.basename.lower().startswith(text.lower())]

    def postloop(self) -> None:
        if readline is not None and self.history_file:
            # Cleanup and write history file
            readline.set_completer(None)
            try:
                readline.set_history_length(HISTORY_LENGTH)
                readline.write_history_file(self.history_file)
            except IOError:
                pass

    def cmdloop(self, intro: t.Optional[str] = None) -> None:
        try:
            return cmd.Cmd.cmdloop(self, intro)
        except KeyboardInterrupt:
            self.stdout.write("\n")

    def ask(self, prompt: str) -> str:
        """
        Prompt the user for a line of input
        """
        if self.use_rawinput:
            try:
                return input(prompt)
            except EOFError:
                return ""
        self.stdout.write(prompt)
        self.stdout.flush()
        return self.stdin.readline().rstrip("\r\n")

    def onecmd(self, line: str, catch_exceptions: bool = True, batch: bool = False) -> bool:
        try:
            if line == "EOF":
                self.lastcmd = ""
                return self.do_EOF("")
            cmd, arg, line = self.parseline(line)
            if not line:
                return self.emptyline()
            self.lastcmd = line
            try:
                func = getattr(self, self.commands[cmd or ""])
            except KeyError:
                self.default(line)
                return False
            return bool(func(arg))
        except KeyboardInterrupt:
            self.stdout.write("\n")
            return False
        except Exception as ex:
            if not catch_exceptions:
                raise ex
            message = str(sys.exc_info()[1])
            self.stdout.write(f"{message}\n")
            if self.verbose:
                traceback.print_exc()
            if batch:
                raise ex
            return False

    def parseline(self, line: str) -> t.Tuple[t.Optional[str], t.Optional[str], str]:
        """
        Parse the line into a command name and arguments
        """
        line = line.strip()
        if not line:
            return None, None, line
        elif line[0] == "?":
            line = f"help {line[1:]}"
        cmd, arg = split_command(line)
        return cmd, arg, line

    def default(self, line: str) -> bool:
        self.stdout.write("Unknown command. Type 'help' to see commands.\n")
        return False

    def emptyline(self) -> bool:
        return False

    def do_ls(self, arg: str) -> None:
        # fmt: off
        """
LS              Lists the file names

  SYNTAX
        LS [pattern]

  EXAMPLES
        LS
        LS *.TXT

        """
        # fmt: on
        self.fs.dir(arg or None, brief=True, file=self.stdout)

    def do_dir(self, arg: str) -> None:
        # fmt: off
        """
DIR             Lists the files with their size

  SYNTAX
        DIR [pattern]

        """
        # fmt: on
        self.fs.dir(arg or None, brief=False, file=self.stdout)

    def do_create(self, arg: str) -> None:
        # fmt: off
        """
CREATE          Creates an empty file

  SYNTAX
        CREATE file

  EXAMPLES
        CREATE NOTES.TXT

        """
        # fmt: on
        if not arg:
            self.stdout.write("Usage: create <file>\n")
            return
        try:
            self.fs.create_file(arg)
        except FileExistsError:
            self.stdout.write("File already exists.\n")
            return
        self.stdout.write(f"File created: {arg}\n")

    def write_file(self, arg: str, append: bool) -> None:
        if not arg:
            self.stdout.write("Usage: %s <file>\n" % ("append" if append else "write"))
            return
        if not self.fs.exists(arg):
            self.stdout.write("File not found.\n")
            return
        text = self.ask("Enter text: ")
        if append:
            self.fs.append_text(arg, text)
            self.stdout.write(f"Appended to {arg}\n")
        else:
            self.fs.write_text(arg, text)
            self.stdout.write(f"Wrote {arg}\n")

    def do_write(self, arg: str) -> None:
        # fmt: off
        """
WRITE           Overwrites a file (prompts for text)

  SYNTAX
        WRITE file

        """
        # fmt: on
        self.write_file(arg, append=False)

    def do_append(self, arg: str) -> None:
        # fmt: off
        """
APPEND          Appends text to a file (prompts for text)

  SYNTAX
        APPEND file

        """
        # fmt: on
        self.write_file(arg, append=True)

    def do_read(self, arg: str) -> None:
        # fmt: off
        """
READ            Outputs a file to the terminal

  SYNTAX
        READ file

        """
        # fmt: on
        if not arg:
            self.stdout.write("Usage: read <file>\n")
            return
        try:
            entry = self.fs.get_file_entry(arg)
        except FileNotFoundError:
            self.stdout.write("File not found.\n")
            return
        if entry.get_size() == 0:
            self.stdout.write("(empty file)\n")
        else:
            self.stdout.write(f"{entry.read_text()}\n")

    def do_delete(self, arg: str) -> None:
        # fmt: off
        """
DELETE          Removes a file (alias DEL)

  SYNTAX
        DELETE file

        """
        # fmt: on
        if not arg:
            self.stdout.write("Usage: delete <file>\n")
            return
        try:
            self.fs.delete(arg)
        except FileNotFoundError:
            self.stdout.write("File not found.\n")
            return
        self.stdout.write(f"Deleted: {arg}\n")

    def do_rename(self, arg: str) -> None:
        # fmt: off
        """
RENAME          Renames a file

  SYNTAX
        RENAME old new

        """
        # fmt: on
        old, new = split_two(arg)
        if not old or not new:
            self.stdout.write("Usage: rename <old> <new>\n")
            return
        try:
            self.fs.rename(old, new)
        except FileNotFoundError:
            self.stdout.write(f"File not found: {old}\n")
            return
        except FileExistsError:
            self.stdout.write(f"Target exists: {new}\n")
            return
        self.stdout.write(f"Renamed '{old}' -> '{new}'\n")

    def do_copy(self, arg: str) -> None:
        # fmt: off
        """
COPY            Copies a file

  SYNTAX
        COPY src dest

        """
        # fmt: on
        src, dest = split_two(arg)
        if not src or not dest:
            self.stdout.write("Usage: copy <src> <dest>\n")
            return
        try:
            self.fs.copy(src, dest)
        except FileNotFoundError:
            self.stdout.write(f"File not found: {src}\n")
            return
        except FileExistsError:
            self.stdout.write(f"Target exists: {dest}\n")
            return
        self.stdout.write(f"Copied '{src}' -> '{dest}'\n")

    def do_calc(self, arg: str) -> None:
        # fmt: off
        """
CALC            Evaluates a two-operand expression

  SYNTAX
        CALC

  SEMANTICS
        Prompts for a number, an operator (+, -, *, /)
        and a second number, then displays the result.

        """
        # fmt: on
        self.stdout.write("=== Calculator ===\n")
        try:
            a = parse_operand(self.ask("Enter first number: "))
            op = self.ask("Enter operator (+,-,*,/): ")
            b = parse_operand(self.ask("Enter second number: "))
        except ValueError:
            self.stdout.write("Invalid number\n")
            return
        try:
            result = evaluate(a, op, b)
        except InvalidOperatorError:
            self.stdout.write("Invalid operator\n")
        except ZeroDivisionError:
            self.stdout.write("Error: divide by zero\n")
        else:
            self.stdout.write(f"Result: {format_result(result)}\n")

    def do_date(self, arg: str) -> None:
        # fmt: off
        """
DATE            Displays the system date and time

  SYNTAX
        DATE

        """
        # fmt: on
        self.stdout.write(self.clock().strftime("%Y-%m-%d %H:%M:%S") + "\n")

    def do_clear(self, arg: str) -> None:
        # fmt: off
        """
CLEAR           Clears the screen

  SYNTAX
        CLEAR

        """
        # fmt: on
        self.stdout.write(CLEAR_SCREEN)
        self.stdout.flush()

    def do_ver(self, arg: str) -> None:
        # fmt: off
        """
VER             Displays the system version

  SYNTAX
        VER

        """
        # fmt: on
        self.stdout.write(f"{OS_NAME} v{get_version()}\n")

    def do_sysinfo(self, arg: str) -> None:
        # fmt: off
        """
SYSINFO         Displays system information

  SYNTAX
        SYSINFO

        """
        # fmt: on
        self.stdout.write(f"OS: {OS_NAME}\n")
        self.stdout.write(f"CPU: {get_cpu_label()}\n")
        self.stdout.write(f"RAM: {get_amount_of_ram()} MB\n")

    def do_echo(self, arg: str) -> None:
        # fmt: off
        """
ECHO            Prints a text

  SYNTAX
        ECHO text

        """
        # fmt: on
        self.stdout.write(f"{arg}\n")

    def do_rand(self, arg: str) -> None:
        # fmt: off
        """
RAND            Generates a random number between 1 and 99

  SYNTAX
        RAND

        """
        # fmt: on
        self.stdout.write(f"Random: {self.rng.randrange(1, 100)}\n")

    def do_memalloc(self, arg: str) -> None:
        # fmt: off
        """
MEMALLOC        Allocates a memory block

  SYNTAX
        MEMALLOC size

  EXAMPLES
        MEMALLOC 100

        """
        # fmt: on
        try:
            size = parse_positive_int(arg)
        except ValueError:
            self.stdout.write("Usage: memalloc <size>\n")
            return
        block = self.memory.allocate(size)
        self.stdout.write(f"Allocated block {block.id} ({block.size} bytes).\n")

    def do_memfree(self, arg: str) -> None:
        # fmt: off
        """
MEMFREE         Frees a memory block by id

  SYNTAX
        MEMFREE id

        """
        # fmt: on
        try:
            block_id = parse_positive_int(arg)
        except ValueError:
            self.stdout.write("Usage: memfree <id>\n")
            return
        try:
            block = self.memory.free(block_id)
        except InvalidBlockError:
            self.stdout.write("Invalid block ID!\n")
            return
        self.stdout.write(f"Freed block {block.id} ({block.size} bytes).\n")

    def do_meminfo(self, arg: str) -> None:
        # fmt: off
        """
MEMINFO         Displays the memory usage

  SYNTAX
        MEMINFO

        """
        # fmt: on
        self.memory.info(file=self.stdout)

    def do_shutdown(self, arg: str) -> bool:
        # fmt: off
        """
SHUTDOWN        Powers off the system

  SYNTAX
        SHUTDOWN

        """
        # fmt: on
        self.stdout.write("System is shutting down...\n")
        self.power = SHUTDOWN
        return True

    def do_reboot(self, arg: str) -> bool:
        # fmt: off
        """
REBOOT          Restarts the system

  SYNTAX
        REBOOT

  SEMANTICS
        Files and memory blocks are lost.

        """
        # fmt: on
        self.stdout.write("System is rebooting...\n")
        self.power = REBOOT
        return True

    def do_help(self, arg: str) -> None:
        # fmt: off
        """
HELP            Displays commands help

  SYNTAX
        HELP [command]

        """
        # fmt: on
        if arg and arg != "*":
            name = self.commands.get(arg.lower())
            if name is not None:
                doc = getattr(self, name).__doc__
                if doc:
                    self.stdout.write(f"{str(doc)}\n")
                    return
            self.stdout.write("%s\n" % str(self.nohelp % (arg,)))
        else:
            for name in sorted(set(self.commands.values())):
                if getattr(self, name).__doc__:
                    self.stdout.write(getattr(self, name).__doc__.split("\n")[1])
                    self.stdout.write("\n")

    def do_EOF(self, arg: str) -> bool:
        self.stdout.write("\n")
        return True


def main() -> None:
    parser = argparse.ArgumentParser(prog="lwos")
    parser.add_argument(
        "-c",
        action="append",
        metavar="command",
        help="execute a single command",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        default=False,
        help="force opening an interactive shell even if commands are provided",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="display verbose output",
    )
    options = parser.parse_args()
    commands = options.c or []
    interactive = options.interactive or not commands
    while True:
        shell = Shell(verbose=options.verbose, history=interactive)
        # Execute the commands
        try:
            for command in commands:
                if shell.onecmd(command, batch=True):
                    break
        except Exception:
            pass
        # Start interactive shell
        if interactive and shell.power is None:
            shell.cmdloop(BANNER)
        if shell.power != REBOOT:
            break
        # Reboot, start again with an empty session
        commands = []
        interactive = True
