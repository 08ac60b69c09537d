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

__all__ = [
    "OS_NAME",
    "InvalidBlockError",
    "InvalidOperatorError",
    "filename_match",
    "get_amount_of_ram",
    "get_cpu_label",
    "split_command",
    "split_two",
]

import errno
import fnmatch
import platform
import typing as t

import psutil

OS_NAME = "Light_Weight_Operating_System"
MB = 1024 * 1024


class InvalidBlockError(OSError):
    """
    Memory block id unknown or already freed
    """

    def __init__(self, block_id: int):
        super().__init__(errno.EINVAL, "Invalid block ID", str(block_id))
        self.block_id = block_id


class InvalidOperatorError(ValueError):
    """
    Calculator operator not supported
    """


def split_command(line: str) -> t.Tuple[str, str]:
    """
    Split a command line into a lowercase command name and
    the rest of the line (stripped, not tokenized)
    """
    line = line.strip()
    cmd, _, arg = line.partition(" ")
    return cmd.lower(), arg.strip()


def split_two(arg: t.Optional[str]) -> t.Tuple[str, str]:
    """
    Split an argument string at the first space.
    The second part keeps any further spaces.
    """
    first, _, second = (arg or "").partition(" ")
    return first.strip(), second.strip()


def filename_match(basename: str, pattern: t.Optional[str]) -> bool:
    """
    Case insensitive wildcard match (*, ?, [seq])
    """
    if not pattern:
        return True
    return fnmatch.fnmatchcase(basename.lower(), pattern.lower())


def get_amount_of_ram() -> int:
    """
    Get the amount of physical memory in MB
    """
    return psutil.virtual_memory().total // MB


def get_cpu_label() -> str:
    """
    Get a short description of the host processor
    """
    label = platform.processor() or platform.machine()
    if not label:
        label = "Unknown CPU"
    cores = psutil.cpu_count()
    if cores:
        label = f"{label} ({cores} cores)"
    return label
