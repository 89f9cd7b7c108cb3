import os
import tempfile
import unittest

from asyfolder.errors import PathEscapeError
from asyfolder.folder.resolver import PathResolver


class TestPathResolver(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self.tmp.name)
        self.resolver = PathResolver(self.root)

    def tearDown(self):
        self.tmp.cleanup()

    def test_empty_and_slash_resolve_to_root(self):
        self.assertEqual(self.resolver.resolve(''), self.root)
        self.assertEqual(self.resolver.resolve('/'), self.root)

    def test_subpath(self):
        self.assertEqual(self.resolver.resolve('a/b.txt'), os.path.join(self.root, 'a', 'b.txt'))

    def test_idempotent(self):
        first = self.resolver.resolve('docs/./report.txt')
        second = self.resolver.resolve('docs/./report.txt')
        self.assertEqual(first, second)
        self.assertEqual(first, os.path.join(self.root, 'docs', 'report.txt'))

    def test_dotdot_inside_root_is_allowed(self):
        self.assertEqual(self.resolver.resolve('a/../b'), os.path.join(self.root, 'b'))
        self.assertEqual(self.resolver.resolve('a/..'), self.root)

    def test_dotdot_escape_rejected(self):
        for path in ('..', '../etc/passwd', 'a/../../etc', 'a/b/../../../x'):
            with self.subTest(path=path):
                with self.assertRaises(PathEscapeError):
                    self.resolver.resolve(path)

    def test_absolute_override_rejected(self):
        with self.assertRaises(PathEscapeError):
            self.resolver.resolve('/etc/passwd')

    def test_sibling_prefix_rejected(self):
        sibling = os.path.basename(self.root) + '-evil'
        with self.assertRaises(PathEscapeError):
            self.resolver.resolve('../' + sibling + '/secret')

    def test_nul_byte_rejected(self):
        with self.assertRaises(PathEscapeError):
            self.resolver.resolve('a\x00b')

    def test_resolve_does_not_touch_filesystem(self):
        # nothing exists under this name, resolving still works
        self.assertEqual(self.resolver.resolve('missing/file'), os.path.join(self.root, 'missing', 'file'))

    def test_relative_label(self):
        self.assertEqual(self.resolver.relative_label(self.root), '')
        self.assertEqual(self.resolver.relative_label(os.path.join(self.root, 'a', 'b')), 'a/b')


if __name__ == '__main__':
    unittest.main()
