"""
ZIP Stream Module

Serial, failure-tolerant ZIP assembly streamed while it is built.
"""

from .assembler import ArchiveAssembler, AssemblyReport, EntryResult, build_archive_name

__all__ = ["ArchiveAssembler", "AssemblyReport", "EntryResult", "build_archive_name"]
