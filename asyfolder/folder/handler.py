import os
import urllib.parse

import h11

from asyfolder.config import ServerConfig
from asyfolder.errors import FolderServerError, BadRequestError, NotFoundError, UploadTooLargeError
from asyfolder.folder.resolver import PathResolver
from asyfolder.folder.listing import list_directory, href_for
from asyfolder.folder.render import render_listing, render_message
from asyfolder.folder.transmit import FileTransmitter
from asyfolder.folder.multipart import MultipartStreamProcessor, parse_boundary
from asyfolder.folder.upload import UploadIngestor
from asyfolder.unicomm.protocol.server.http.httpserver import HTTPServerHandler

UPLOAD_PATH = 'upload'
CORS_METHODS = b'GET, HEAD, POST, OPTIONS'


class FolderHandler(HTTPServerHandler):
    """
    Serves one directory tree over HTTP.

    - GET/HEAD on a directory: HTML listing
    - GET/HEAD on a file: the file contents
    - POST /upload: multipart upload into the directory named by `current_path`
    """

    def __init__(self, config:ServerConfig, print_cb=None):
        super().__init__(print_cb)
        self.config = config
        self.resolver = PathResolver(config.root)

    def basic_headers(self):
        headers = super().basic_headers()
        if self.config.cors is True:
            headers.append(("Access-Control-Allow-Origin", b"*"))
        return headers

    @staticmethod
    def get_header(event, name:bytes):
        for key, value in event.headers:
            if key == name:
                return value.decode('latin-1')
        return None

    @staticmethod
    def request_path(event):
        """
        Decoded request path without its leading slash.

        Bytes that are not UTF-8 decode the way `os.fsdecode` does, so
        listing links to such names resolve back to the same file.

        Raises:
            BadRequestError: The path contains a NUL byte
        """
        target = event.target
        if target.startswith(b'/'):
            # origin-form; urlsplit would read '//x/y' as a network location
            path = target.split(b'?', 1)[0].split(b'#', 1)[0]
        else:
            path = urllib.parse.urlsplit(target).path
        path = urllib.parse.unquote_to_bytes(path)
        if b'\x00' in path:
            raise BadRequestError('Invalid request path')
        path = path.decode('utf-8', errors='surrogateescape')
        if path.startswith('/'):
            path = path[1:]
        return path

    def allowed_methods(self):
        methods = ['GET', 'HEAD']
        if self.config.uploads_enabled is True:
            methods.append('POST')
        if self.config.cors is True:
            methods.append('OPTIONS')
        return ', '.join(methods).encode('ascii')

    async def do_GET(self, event):
        await self._handle_get(event)

    async def do_HEAD(self, event):
        await self._handle_get(event, head_only=True)

    async def do_POST(self, event):
        try:
            path = self.request_path(event)
            if self.config.uploads_enabled is False or path != UPLOAD_PATH:
                await self._serve_method_not_allowed()
                return
            await self._handle_upload(event)
        except FolderServerError as e:
            if self.response_started():
                raise
            # an oversized body is not drained, the connection cannot be reused
            await self._serve_error(e.status_code, e.message, close=isinstance(e, UploadTooLargeError))

    async def do_OPTIONS(self, event):
        if self.config.cors is False:
            await self._serve_method_not_allowed()
            return
        headers = self.basic_headers()
        headers.append(("Access-Control-Allow-Methods", CORS_METHODS))
        request_headers = self.get_header(event, b'access-control-request-headers')
        if request_headers:
            headers.append(("Access-Control-Allow-Headers", request_headers.encode('latin-1')))
        headers.append(("Access-Control-Max-Age", b"86400"))
        await self.send_headers(204, headers)
        await self._wrapper.send(h11.EndOfMessage())

    async def _handle_get(self, event, head_only=False):
        try:
            resolved = self.resolver.resolve(self.request_path(event))
            if not os.path.exists(resolved):
                raise NotFoundError()
            if os.path.isdir(resolved):
                await self._serve_directory(resolved, head_only)
            else:
                await self._serve_file(resolved, head_only)
        except FolderServerError as e:
            if self.response_started():
                raise
            await self._serve_error(e.status_code, e.message, head_only=head_only)

    async def _serve_directory(self, dir_path, head_only=False):
        page = list_directory(dir_path, self.resolver.relative_label(dir_path))
        body = render_listing(page, self.config.uploads_enabled).encode('utf-8', errors='surrogateescape')
        await self.send_response(
            200,
            body,
            content_type=b"text/html; charset=utf-8",
            head_only=head_only,
        )

    async def _serve_file(self, file_path, head_only=False):
        async with FileTransmitter(file_path) as transmitter:
            headers = self.basic_headers()
            headers.extend(transmitter.headers())
            await self.send_headers(200, headers)
            if head_only is False:
                async for chunk in transmitter.chunks():
                    await self._wrapper.send(h11.Data(data=chunk))
            await self._wrapper.send(h11.EndOfMessage())

    async def _read_upload_body(self, processor:MultipartStreamProcessor):
        received = 0
        while True:
            try:
                event = await self._wrapper.next_event()
            except h11.RemoteProtocolError as e:
                await self.print('[UPLOAD-ERROR] Request body cut short: %s' % e)
                break
            if isinstance(event, h11.Data):
                received += len(event.data)
                if received > self.config.max_upload_size:
                    raise UploadTooLargeError(self.config.max_upload_size)
                processor.process_chunk(event.data)
            elif isinstance(event, h11.EndOfMessage):
                break
            else:
                await self.print('[UPLOAD-ERROR] Unexpected event type: %s' % type(event))
                break
        return processor.finalize()

    async def _handle_upload(self, event):
        boundary = parse_boundary(self.get_header(event, b'content-type'))
        content_length = self.get_header(event, b'content-length')
        if content_length is not None and int(content_length) > self.config.max_upload_size:
            raise UploadTooLargeError(self.config.max_upload_size)

        processor = MultipartStreamProcessor(boundary)
        try:
            parts = await self._read_upload_body(processor)
            ingestor = UploadIngestor(self.resolver, print_cb=self.print_cb)
            outcome = await ingestor.ingest(parts)
        finally:
            processor.cleanup()

        await self.send_response(
            303,
            outcome.message.encode('utf-8'),
            content_type=b"text/plain; charset=utf-8",
            headers=[("Location", href_for(outcome.label).encode('ascii'))],
        )

    async def _serve_method_not_allowed(self):
        await self.send_response(
            405,
            b"Method Not Allowed",
            content_type=b"text/plain; charset=utf-8",
            headers=[("Allow", self.allowed_methods())],
        )

    async def _serve_error(self, status_code, message, head_only=False, close=False):
        body = render_message('Error %d' % status_code, message).encode('utf-8')
        headers = []
        if close is True:
            headers.append(("Connection", b"close"))
        await self.send_response(
            status_code,
            body,
            content_type=b"text/html; charset=utf-8",
            headers=headers,
            head_only=head_only,
        )
