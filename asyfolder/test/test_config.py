import os
import argparse
import tempfile
import unittest

from asyfolder.config import ServerConfig, DEFAULT_PORT, DEFAULT_MAX_UPLOAD_SIZE
from asyfolder.unicomm.common.target import UniProto


class TestServerConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults(self):
        config = ServerConfig(self.root)
        self.assertEqual(config.root, os.path.realpath(self.root))
        self.assertEqual(config.host, '0.0.0.0')
        self.assertEqual(config.port, DEFAULT_PORT)
        self.assertTrue(config.uploads_enabled)
        self.assertFalse(config.use_ssl)
        self.assertEqual(config.max_upload_size, DEFAULT_MAX_UPLOAD_SIZE)

    def test_missing_root(self):
        with self.assertRaises(ValueError):
            ServerConfig(os.path.join(self.root, 'nope'))

    def test_root_is_file(self):
        path = os.path.join(self.root, 'f.txt')
        with open(path, 'wb') as f:
            f.write(b'x')
        with self.assertRaises(ValueError):
            ServerConfig(path)

    def test_bad_values(self):
        with self.assertRaises(ValueError):
            ServerConfig(self.root, port=70000)
        with self.assertRaises(ValueError):
            ServerConfig(self.root, max_upload_size=0)
        with self.assertRaises(ValueError):
            ServerConfig(self.root, keyfile='key.pem')

    def test_root_is_canonical(self):
        os.mkdir(os.path.join(self.root, 'a'))
        config = ServerConfig(os.path.join(self.root, 'a', '..', 'a'))
        self.assertEqual(config.root, os.path.join(os.path.realpath(self.root), 'a'))

    def test_target(self):
        target = ServerConfig(self.root, host='127.0.0.1', port=8080).get_target()
        self.assertEqual(target.protocol, UniProto.SERVER_TCP)
        self.assertEqual(target.get_ip_or_hostname(), '127.0.0.1')
        self.assertEqual(target.port, 8080)
        self.assertIsNone(target.get_ssl_context())

        target = ServerConfig(self.root, use_ssl=True).get_target()
        self.assertEqual(target.protocol, UniProto.SERVER_SSL_TCP)
        self.assertEqual(target.get_scheme(), 'https')

    def test_url(self):
        self.assertEqual(ServerConfig(self.root, host='127.0.0.1', port=2333).get_url(), 'http://127.0.0.1:2333')
        self.assertEqual(ServerConfig(self.root, host='::1', port=443, use_ssl=True).get_url(), 'https://[::1]:443')

    def test_from_args(self):
        args = argparse.Namespace(
            directory=self.root, port=9000, host='localhost', no_upload=True, ssl=False,
            certfile=None, keyfile=None, no_cors=True, max_upload_size=1024,
        )
        config = ServerConfig.from_args(args)
        self.assertEqual(config.port, 9000)
        self.assertEqual(config.host, 'localhost')
        self.assertFalse(config.uploads_enabled)
        self.assertFalse(config.cors)
        self.assertEqual(config.max_upload_size, 1024)


if __name__ == '__main__':
    unittest.main()
