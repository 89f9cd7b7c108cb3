import os
import re

from asyfolder.errors import ReadError
from asyfolder.folder.mime import classify

_CTRL_RE = re.compile(r'[\x00-\x1f\x7f]')


def content_disposition(filename):
    """`inline; filename="<name>"` with the name made safe for a quoted-string."""
    name = _CTRL_RE.sub('', filename)
    name = name.replace('\\', '\\\\').replace('"', '\\"')
    return ('inline; filename="%s"' % name).encode('utf-8', errors='replace')


class FileTransmitter:
    """
    Streams a resolved file.

    The file is opened and its size taken before any header goes out, so
    open failures still get a clean error response.
    """

    def __init__(self, path, chunk_size=512*1024):
        self.path = path
        self.chunk_size = chunk_size
        self.filename = os.path.basename(path)
        self.content_type = classify(self.filename)
        self.size = None
        self._fh = None

    async def __aenter__(self):
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        try:
            self._fh = open(self.path, 'rb')
            self.size = os.fstat(self._fh.fileno()).st_size
        except OSError as e:
            self.close()
            raise ReadError(self.path, e)

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def headers(self):
        return [
            ('Content-Type', self.content_type.encode('ascii')),
            ('Content-Length', str(self.size).encode('ascii')),
            ('Content-Disposition', content_disposition(self.filename)),
        ]

    async def chunks(self):
        """
        Yield the file contents, `size` bytes in total.

        Raises:
            ReadError: Reading failed or the file shrank while being sent
        """
        remaining = self.size
        while remaining > 0:
            try:
                chunk = self._fh.read(min(self.chunk_size, remaining))
            except OSError as e:
                raise ReadError(self.path, e)
            if not chunk:
                raise ReadError(self.path, message='File truncated while reading')
            remaining -= len(chunk)
            yield chunk
