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

import errno
import os
import sys
import typing as t

from .commons import filename_match

__all__ = [
    "MemoryDirectoryEntry",
    "MemoryFilesystem",
]

DEFAULT_ENCODING = "utf-8"


def canonical_filename(fullname: t.Optional[str]) -> str:
    """
    Case insensitive identity of a file name
    """
    return (fullname or "").strip().lower()


def check_filename(fullname: t.Optional[str]) -> str:
    fullname = (fullname or "").strip()
    if not fullname:
        raise ValueError("Invalid file name")
    return fullname


class MemoryDirectoryEntry:
    """
    A named byte buffer in the memory filesystem
    """

    fs: "MemoryFilesystem"
    content: bytes

    def __init__(self, fs: "MemoryFilesystem", fullname: str, content: bytes = b""):
        self.fs = fs
        self._fullname = fullname
        self.content = content

    @property
    def fullname(self) -> str:
        return self._fullname

    @property
    def basename(self) -> str:
        # Flat filesystem, no directories
        return self._fullname

    def get_size(self) -> int:
        """
        Get file size in bytes
        """
        return len(self.content)

    def delete(self) -> bool:
        """
        Delete the directory entry
        """
        try:
            self.fs.delete(self.fullname)
            return True
        except FileNotFoundError:
            return False

    def read_bytes(self) -> bytes:
        return self.content

    def read_text(self, encoding: str = DEFAULT_ENCODING, errors: str = "replace") -> str:
        return self.content.decode(encoding, errors)

    def __str__(self) -> str:
        return f"{self.fullname:<24} {self.get_size():>6} bytes"

    def __repr__(self) -> str:
        return f"MemoryDirectoryEntry({self.fullname!r}, {self.get_size()} bytes)"


class MemoryFilesystem:
    """
    Flat, single directory, in-memory filesystem.

    File names are case insensitive; the name given at creation
    is kept for display. Entries are listed in creation order.
    """

    entries: t.Dict[str, MemoryDirectoryEntry]  # canonical name -> entry

    def __init__(self) -> None:
        self.entries = {}

    def __len__(self) -> int:
        return len(self.entries)

    def filter_entries_list(self, pattern: t.Optional[str] = None) -> t.Iterator[MemoryDirectoryEntry]:
        """
        Iterate over the entries matching a wildcard pattern
        """
        for entry in list(self.entries.values()):
            if filename_match(entry.basename, pattern):
                yield entry

    @property
    def entries_list(self) -> t.Iterator[MemoryDirectoryEntry]:
        yield from self.filter_entries_list(None)

    def get_file_entry(self, fullname: str) -> MemoryDirectoryEntry:
        """
        Get the directory entry for a file
        """
        try:
            return self.entries[canonical_filename(fullname)]
        except KeyError:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), fullname)

    def exists(self, fullname: str) -> bool:
        return canonical_filename(fullname) in self.entries

    def create_file(self, fullname: str, content: bytes = b"") -> MemoryDirectoryEntry:
        """
        Create a new file
        """
        fullname = check_filename(fullname)
        if self.exists(fullname):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), fullname)
        entry = MemoryDirectoryEntry(self, fullname, bytes(content))
        self.entries[canonical_filename(fullname)] = entry
        return entry

    def read_bytes(self, fullname: str) -> bytes:
        """
        Get the content of a file
        """
        return self.get_file_entry(fullname).read_bytes()

    def read_text(self, fullname: str, encoding: str = DEFAULT_ENCODING, errors: str = "replace") -> str:
        """
        Get the content of a file as text
        """
        return self.get_file_entry(fullname).read_text(encoding, errors)

    def write_bytes(self, fullname: str, content: bytes) -> None:
        """
        Replace the content of an existing file
        """
        entry = self.get_file_entry(fullname)
        entry.content = bytes(content)

    def append_bytes(self, fullname: str, content: bytes) -> None:
        """
        Append content to an existing file
        """
        entry = self.get_file_entry(fullname)
        entry.content = entry.content + bytes(content)

    def write_text(self, fullname: str, text: str, encoding: str = DEFAULT_ENCODING) -> None:
        self.write_bytes(fullname, text.encode(encoding))

    def append_text(self, fullname: str, text: str, encoding: str = DEFAULT_ENCODING) -> None:
        self.append_bytes(fullname, text.encode(encoding))

    def delete(self, fullname: str) -> None:
        """
        Remove a file
        """
        key = canonical_filename(fullname)
        if key not in self.entries:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), fullname)
        del self.entries[key]

    def rename(self, old_fullname: str, new_fullname: str) -> MemoryDirectoryEntry:
        """
        Rename a file, keeping its position in the directory
        """
        old_fullname = check_filename(old_fullname)
        new_fullname = check_filename(new_fullname)
        entry = self.get_file_entry(old_fullname)
        # Renaming a file to itself is a collision too
        if self.exists(new_fullname):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), new_fullname)
        old_key = canonical_filename(old_fullname)
        new_key = canonical_filename(new_fullname)
        entry._fullname = new_fullname
        self.entries = {(new_key if k == old_key else k): v for k, v in self.entries.items()}
        return entry

    def copy(self, from_fullname: str, to_fullname: str) -> MemoryDirectoryEntry:
        """
        Copy a file to a new name
        """
        from_fullname = check_filename(from_fullname)
        to_fullname = check_filename(to_fullname)
        source = self.get_file_entry(from_fullname)
        if self.exists(to_fullname):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), to_fullname)
        return self.create_file(to_fullname, source.content)

    def dir(self, pattern: t.Optional[str] = None, brief: bool = False, file: t.Optional[t.TextIO] = None) -> None:
        """
        List the directory contents
        """
        out = file or sys.stdout
        match = False
        for x in self.filter_entries_list(pattern):
            match = True
            if brief:
                # Lists only file names
                out.write(f"{x.basename}\n")
            else:
                out.write(f"{x}\n")
        if not match:
            out.write("(no files)\n")

    def get_size(self) -> int:
        """
        Get the total size of the files in bytes
        """
        return sum(x.get_size() for x in self.entries.values())