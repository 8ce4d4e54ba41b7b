"""
Archive Assembler

Bundles many images into a ZIP that is produced while it is being sent.

Images are fetched one at a time so at most one asset body is in memory.
A failed item is logged, recorded in the AssemblyReport and skipped; the
archive itself always finalizes. Entries are numbered in the order they are
written (image_001, image_002, ...), so skipped items leave no gaps.
"""

import asyncio
import logging
import zipfile
from dataclasses import dataclass, field
from typing import AsyncIterator, BinaryIO, List, Optional, Sequence, Union

from image_stream.converter import ImageFormat, parse_format
from image_stream.streamer import AssetStreamer
from reddit_gallery.errors import GalleryError, RequestCancelled

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_NAME = "reddit_gallery"


def build_archive_name(title: Optional[str]) -> str:
    """
    Sanitise a post title into an archive base name.

    Letters and digits are kept, whitespace becomes "_", everything else is
    dropped. Falls back to DEFAULT_ARCHIVE_NAME when nothing is left.
    """
    cleaned = "".join(
        ch if ch.isalnum() else "_"
        for ch in (title or "")
        if ch.isalnum() or ch.isspace()
    )
    return cleaned or DEFAULT_ARCHIVE_NAME


def entry_name(position: int, extension: str) -> str:
    """Archive member name for the `position`-th written entry (1-based)."""
    return f"image_{position:03d}{extension}"


@dataclass
class EntryResult:
    """Outcome of one input URL."""
    index: int                      # 1-based position in the input list
    url: str
    name: Optional[str] = None      # Archive member name when written
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.name is not None and self.error is None


@dataclass
class AssemblyReport:
    """Side channel describing what ended up in the archive."""
    results: List[EntryResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def written(self) -> List[EntryResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[EntryResult]:
        return [r for r in self.results if not r.success]


class _ZipSink:
    """
    Write-only buffer handed to zipfile.

    It has no tell()/seek(), so zipfile treats it as unseekable and writes
    data descriptors instead of seeking back to patch local headers.
    """

    def __init__(self):
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer.extend(data)
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


class ArchiveAssembler:
    """
    Streams a ZIP of many images.

    Usage:
        assembler = ArchiveAssembler(AssetStreamer(http_client))
        async for chunk in assembler.iter_archive(urls, "original", cancel):
            ...
    """

    def __init__(self, streamer: AssetStreamer):
        self.streamer = streamer

    async def assemble(
        self,
        urls: Sequence[str],
        target: Union[str, ImageFormat, None],
        sink: BinaryIO,
        cancel: Optional[asyncio.Event] = None,
    ) -> AssemblyReport:
        """Write the whole archive to a file-like `sink` and return the report."""
        report = AssemblyReport()
        async for chunk in self.iter_archive(urls, target, cancel, report):
            sink.write(chunk)
        return report

    async def iter_archive(
        self,
        urls: Sequence[str],
        target: Union[str, ImageFormat, None],
        cancel: Optional[asyncio.Event] = None,
        report: Optional[AssemblyReport] = None,
    ) -> AsyncIterator[bytes]:
        """
        Yield the ZIP archive as it is built.

        `cancel` is checked before each item; once set, no further entries
        are started and the archive is finalized with what was written.

        Raises:
            UnsupportedFormat: `target` is not a known format
        """
        fmt = parse_format(target)
        report = report if report is not None else AssemblyReport()
        sink = _ZipSink()
        written = 0

        logger.info(f"[ArchiveAssembler] Starting archive of {len(urls)} images ({fmt.value})")

        with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for index, url in enumerate(urls, start=1):
                if cancel is not None and cancel.is_set():
                    logger.info("[ArchiveAssembler] Client disconnected, stopping archive stream")
                    report.cancelled = True
                    break

                result = EntryResult(index=index, url=url)
                report.results.append(result)

                try:
                    asset = await self.streamer.open(url, cancel)
                except RequestCancelled:
                    report.results.pop()
                    report.cancelled = True
                    break
                except GalleryError as e:
                    result.error = str(e)
                    logger.warning(f"[ArchiveAssembler] Skipping {url[:80]}: {e}")
                    continue

                async with asset:
                    # The whole body is read before an entry is opened, so a
                    # failed read leaves nothing in the archive.
                    try:
                        if fmt == ImageFormat.ORIGINAL:
                            data = await asset.read_all(cancel)
                        else:
                            data = await self.streamer.convert(asset, fmt, cancel)
                    except RequestCancelled:
                        report.results.pop()
                        report.cancelled = True
                        break
                    except GalleryError as e:
                        result.error = str(e)
                        logger.warning(f"[ArchiveAssembler] Skipping {url[:80]}: {e}")
                        continue

                    name = entry_name(written + 1, self.streamer.output_extension(asset, fmt))
                    archive.writestr(name, data)

                written += 1
                result.name = name
                pending = sink.drain()
                if pending:
                    yield pending

        logger.info(
            f"[ArchiveAssembler] Archive complete: {len(report.written)}/{len(urls)} written, "
            f"{len(report.failed)} failed{', cancelled' if report.cancelled else ''}"
        )
        tail = sink.drain()
        if tail:
            yield tail
