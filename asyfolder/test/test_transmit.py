import os
import tempfile
import unittest

from asyfolder.errors import ReadError
from asyfolder.folder.transmit import FileTransmitter, content_disposition


class TestContentDisposition(unittest.TestCase):
    def test_plain(self):
        self.assertEqual(content_disposition('report.pdf'), b'inline; filename="report.pdf"')

    def test_quotes_and_backslashes_escaped(self):
        self.assertEqual(content_disposition('say "hi".txt'), b'inline; filename="say \\"hi\\".txt"')
        self.assertEqual(content_disposition('a\\b.txt'), b'inline; filename="a\\\\b.txt"')

    def test_control_characters_removed(self):
        self.assertEqual(content_disposition('evil\r\nSet-Cookie: x.txt'), b'inline; filename="evilSet-Cookie: x.txt"')
        self.assertEqual(content_disposition('tab\there\x7f.txt'), b'inline; filename="tabhere.txt"')

    def test_utf8(self):
        self.assertEqual(content_disposition('résumé.txt'), 'inline; filename="résumé.txt"'.encode('utf-8'))


class TestFileTransmitter(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, 'data.json')
        with open(self.path, 'wb') as f:
            f.write(b'0123456789' * 10)

    def tearDown(self):
        self.tmp.cleanup()

    async def test_streams_whole_file(self):
        async with FileTransmitter(self.path, chunk_size=32) as transmitter:
            self.assertEqual(dict(transmitter.headers()), {
                'Content-Type': b'application/json; charset=utf-8',
                'Content-Length': b'100',
                'Content-Disposition': b'inline; filename="data.json"',
            })
            chunks = [chunk async for chunk in transmitter.chunks()]
        self.assertEqual([len(x) for x in chunks], [32, 32, 32, 4])
        self.assertEqual(b''.join(chunks), b'0123456789' * 10)

    async def test_missing_file(self):
        with self.assertRaises(ReadError):
            async with FileTransmitter(os.path.join(self.tmp.name, 'gone')):
                pass

    async def test_directory(self):
        with self.assertRaises(ReadError):
            async with FileTransmitter(self.tmp.name):
                pass

    async def test_file_shrinks_while_sending(self):
        received = b''
        async with FileTransmitter(self.path, chunk_size=16) as transmitter:
            self.assertEqual(transmitter.size, 100)
            os.truncate(self.path, 20)
            with self.assertRaises(ReadError) as ctx:
                async for chunk in transmitter.chunks():
                    received += chunk
        self.assertEqual(received, b'01234567890123456789')
        self.assertEqual(ctx.exception.message, 'File truncated while reading')

    async def test_closed_after_use(self):
        transmitter = FileTransmitter(self.path)
        async with transmitter:
            pass
        self.assertIsNone(transmitter._fh)


if __name__ == '__main__':
    unittest.main()
