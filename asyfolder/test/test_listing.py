import os
import tempfile
import unittest

from asyfolder.errors import ListingError
from asyfolder.folder.listing import list_directory, ListingPage
from asyfolder.folder.render import render_listing


class TestListDirectory(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def touch(self, name, data=b''):
        with open(os.path.join(self.root, name), 'wb') as f:
            f.write(data)

    def test_empty_directory(self):
        page = list_directory(self.root, '')
        self.assertEqual(page.entries, [])
        self.assertIsNone(page.parent_label)

    def test_directories_first_then_files_by_codepoint(self):
        for name in ('b.txt', 'B.txt', 'a.txt', '_x'):
            self.touch(name)
        for name in ('zdir', 'Adir', 'mdir'):
            os.mkdir(os.path.join(self.root, name))

        page = list_directory(self.root, '')
        self.assertEqual([e.name for e in page.directories], ['Adir', 'mdir', 'zdir'])
        self.assertEqual([e.name for e in page.files], ['B.txt', '_x', 'a.txt', 'b.txt'])
        self.assertEqual([e.name for e in page.entries], ['Adir', 'mdir', 'zdir', 'B.txt', '_x', 'a.txt', 'b.txt'])

    def test_entry_info(self):
        self.touch('data.bin', b'x' * 1536)
        os.mkdir(os.path.join(self.root, 'sub'))
        page = list_directory(self.root, '')
        sub, data = page.entries
        self.assertTrue(sub.is_dir)
        self.assertIsNone(sub.size)
        self.assertFalse(data.is_dir)
        self.assertEqual(data.size, 1536)
        self.assertIsNotNone(data.modified)

    def test_not_recursive(self):
        os.makedirs(os.path.join(self.root, 'a', 'b'))
        self.touch(os.path.join('a', 'inner.txt'))
        page = list_directory(self.root, '')
        self.assertEqual([e.name for e in page.entries], ['a'])

    def test_missing_directory_raises(self):
        with self.assertRaises(ListingError):
            list_directory(os.path.join(self.root, 'nope'), 'nope')

    def test_file_is_not_listable(self):
        self.touch('f.txt')
        with self.assertRaises(ListingError):
            list_directory(os.path.join(self.root, 'f.txt'), 'f.txt')

    @unittest.skipUnless(hasattr(os, 'symlink'), 'symlinks not supported')
    def test_dangling_symlink_is_listed_as_file(self):
        os.symlink(os.path.join(self.root, 'gone'), os.path.join(self.root, 'link'))
        page = list_directory(self.root, '')
        self.assertEqual([e.name for e in page.files], ['link'])


class TestListingPage(unittest.TestCase):
    def test_parent_label(self):
        self.assertIsNone(ListingPage('', [], []).parent_label)
        self.assertEqual(ListingPage('a', [], []).parent_label, '')
        self.assertEqual(ListingPage('a/b/c', [], []).parent_label, 'a/b')

    def test_breadcrumbs(self):
        page = ListingPage('docs/my files', [], [])
        self.assertEqual(page.breadcrumbs, [('docs', '/docs'), ('my files', '/docs/my%20files')])

    def test_child_label(self):
        self.assertEqual(ListingPage('', [], []).child_label('x'), 'x')
        self.assertEqual(ListingPage('a/b', [], []).child_label('x'), 'a/b/x')


class TestRenderListing(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        os.mkdir(os.path.join(self.root, 'sub dir'))
        with open(os.path.join(self.root, '<b>.txt'), 'wb') as f:
            f.write(b'12345')

    def tearDown(self):
        self.tmp.cleanup()

    def test_render_escapes_and_links(self):
        page = list_directory(self.root, 'top')
        text = render_listing(page, uploads_enabled=True)
        self.assertIn('Index of /top', text)
        self.assertIn('href="/top/sub%20dir"', text)
        self.assertIn('&lt;b&gt;.txt', text)
        self.assertNotIn('<b>.txt', text)
        self.assertIn('5 B', text)
        self.assertIn('href="/"', text)
        self.assertIn('name="current_path" value="top"', text)
        self.assertIn('action="/upload"', text)
        self.assertLess(text.index('sub dir/'), text.index('&lt;b&gt;.txt'))

    def test_render_without_uploads(self):
        page = list_directory(self.root, '')
        text = render_listing(page, uploads_enabled=False)
        self.assertNotIn('action="/upload"', text)
        self.assertNotIn('../', text)


if __name__ == '__main__':
    unittest.main()
