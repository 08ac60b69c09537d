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

import sys
import typing as t
from dataclasses import dataclass, field, replace

from .commons import InvalidBlockError

__all__ = [
    "MemoryBlock",
    "MemoryManager",
    "MemoryReport",
]


@dataclass
class MemoryBlock:
    id: int  # Block id, never reused
    size: int  # Size in bytes
    used: bool = True

    @property
    def status(self) -> str:
        return "Used" if self.used else "Free"

    def __str__(self) -> str:
        return f"Block {self.id}: {self.size} bytes - {self.status}"


@dataclass
class MemoryReport:
    blocks: t.List[MemoryBlock] = field(default_factory=list)

    @property
    def total_blocks(self) -> int:
        return len(self.blocks)

    @property
    def used_blocks(self) -> int:
        return sum(1 for x in self.blocks if x.used)

    @property
    def free_blocks(self) -> int:
        return sum(1 for x in self.blocks if not x.used)

    @property
    def used_bytes(self) -> int:
        """
        Sum of the sizes of the blocks in use
        """
        return sum(x.size for x in self.blocks if x.used)


class MemoryManager:
    """
    Simulated memory allocator.

    Keeps the ledger of every block ever allocated. Blocks are
    never removed or compacted; freeing a block only marks it
    as free, and its id is never assigned again.
    """

    blocks: t.List[MemoryBlock]
    next_block_id: int

    def __init__(self) -> None:
        self.blocks = []
        self.next_block_id = 1

    def allocate(self, size: int) -> MemoryBlock:
        """
        Allocate a new block of the given size
        """
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ValueError(f"Invalid block size {size!r}")
        block = MemoryBlock(id=self.next_block_id, size=size)
        self.next_block_id += 1
        self.blocks.append(block)
        return block

    def get_block(self, block_id: int) -> t.Optional[MemoryBlock]:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def free(self, block_id: int) -> MemoryBlock:
        """
        Free a block; unknown and already freed blocks are both invalid
        """
        block = self.get_block(block_id)
        if block is None or not block.used:
            raise InvalidBlockError(block_id)
        block.used = False
        return block

    def report(self) -> MemoryReport:
        # Snapshot, later frees do not change a report
        return MemoryReport(blocks=[replace(x) for x in self.blocks])

    def info(self, file: t.Optional[t.TextIO] = None) -> None:
        """
        Display the memory usage
        """
        out = file or sys.stdout
        report = self.report()
        out.write("=== Memory Info ===\n")
        out.write(
            f"Blocks: {report.total_blocks}  (Used: {report.used_blocks}, Free: {report.free_blocks})\n"
        )
        out.write(f"Total used: {report.used_bytes} bytes\n")
        if not report.blocks:
            out.write("No memory blocks yet.\n")
        for block in report.blocks:
            out.write(f"  {block}\n")
