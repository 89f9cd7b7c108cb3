import os
import re
import asyncio
from typing import List

from asyfolder import logger
from asyfolder.errors import PathEscapeError, UploadDestinationEscapeError
from asyfolder.folder.multipart import MultipartPart
from asyfolder.folder.resolver import PathResolver

CURRENT_PATH_FIELD = 'current_path'
FILE_FIELD = 'file'
TEMP_PREFIX = '.upload-'


class UploadOutcome:
    def __init__(self, label:str = ''):
        self.label = label
        self.total = 0
        self.succeeded = 0
        self.failed:List[str] = []

    @property
    def message(self):
        if self.succeeded == 0:
            return 'upload failed'
        if self.succeeded == self.total:
            if self.total == 1:
                return 'file uploaded'
            return 'all %d files uploaded' % self.total
        return '%d of %d files uploaded' % (self.succeeded, self.total)

    def __repr__(self):
        return 'UploadOutcome(label=%r, total=%s, succeeded=%s)' % (self.label, self.total, self.succeeded)


def leaf_filename(filename):
    """
    Reduce a client-supplied filename to its last path segment.

    Returns None when nothing usable is left.
    """
    if filename is None:
        return None
    leaf = re.split(r'[/\\]', filename)[-1]
    if not leaf or leaf in ('.', '..') or '\x00' in leaf:
        return None
    return leaf


class UploadIngestor:
    """
    Writes the file parts of a parsed upload into the served tree.

    The destination comes from the first `current_path` field, wherever it
    sits in the body, and is containment-checked before anything is written.
    """

    def __init__(self, resolver:PathResolver, print_cb=None, chunk_size=1024*1024):
        self.resolver = resolver
        self.print_cb = print_cb
        self.chunk_size = chunk_size

    async def print(self, msg=''):
        if self.print_cb is None:
            return
        await self.print_cb(msg)

    @staticmethod
    def find_current_path(parts:List[MultipartPart]):
        for part in parts:
            if part.name == CURRENT_PATH_FIELD and not part.is_file:
                if not part.complete:
                    continue
                try:
                    return part.text()
                except UnicodeDecodeError:
                    continue
        return ''

    def resolve_destination(self, current_path):
        """
        Raises:
            UploadDestinationEscapeError: The destination leaves the root
        """
        try:
            return self.resolver.resolve(current_path.rstrip('/'))
        except PathEscapeError:
            raise UploadDestinationEscapeError(current_path)

    async def ingest(self, parts:List[MultipartPart]) -> UploadOutcome:
        current_path = self.find_current_path(parts)
        destination = self.resolve_destination(current_path)
        outcome = UploadOutcome(self.resolver.relative_label(destination))

        for part in parts:
            if part.name != FILE_FIELD or not part.is_file:
                continue
            outcome.total += 1
            if await self.store(part, destination):
                outcome.succeeded += 1
            else:
                outcome.failed.append(part.filename)

        msg = '[UPLOAD] %s -> /%s' % (outcome.message, outcome.label)
        if outcome.failed:
            msg += ' (failed: %s)' % ', '.join(repr(x) for x in outcome.failed)
        await self.print(msg)
        return outcome

    async def _copy_part(self, part:MultipartPart, f):
        src = part.open()
        while True:
            data = src.read(self.chunk_size)
            if not data:
                break
            f.write(data)
            # let other connections run between chunks
            await asyncio.sleep(0)

    async def store(self, part:MultipartPart, destination):
        """Write one file part, True only if the file was written completely."""
        if not part.complete:
            await self.print('[UPLOAD-ERROR] Incomplete payload for %r' % part.filename)
            return False

        filename = leaf_filename(part.filename)
        if filename is None:
            await self.print('[UPLOAD-ERROR] Rejected filename %r' % part.filename)
            return False

        final_path = os.path.join(destination, filename)
        temp_path = os.path.join(destination, '%s%s' % (TEMP_PREFIX, os.urandom(8).hex()))
        try:
            with open(temp_path, 'wb') as f:
                await self._copy_part(part, f)
            os.replace(temp_path, final_path)
        except OSError as e:
            await self.print('[UPLOAD-ERROR] Error writing %s: %s' % (final_path, e))
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.exception('Failed to remove temp file %s' % temp_path)
            return False

        await self.print('[UPLOAD-SUCCESS] Uploaded: %s (%s bytes, %s)' % (final_path, part.size, part.content_type or 'no content type'))
        return True
