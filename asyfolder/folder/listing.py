import os
import posixpath
import urllib.parse
from datetime import datetime
from typing import List, Optional, Tuple

from asyfolder.errors import ListingError


class EntryInfo:
    def __init__(self, name:str, is_dir:bool, size:Optional[int] = None, modified:Optional[datetime] = None):
        self.name = name
        self.is_dir = is_dir
        self.size = size
        self.modified = modified

    def __repr__(self):
        return 'EntryInfo(name=%r, is_dir=%s, size=%s)' % (self.name, self.is_dir, self.size)


class ListingPage:
    def __init__(self, label:str, directories:List[EntryInfo], files:List[EntryInfo]):
        self.label = label
        self.directories = directories
        self.files = files

    @property
    def entries(self):
        """Directories first, then files."""
        return self.directories + self.files

    @property
    def parent_label(self):
        """Label of the parent directory, None at the root."""
        if not self.label:
            return None
        return posixpath.dirname(self.label)

    @property
    def breadcrumbs(self) -> List[Tuple[str, str]]:
        crumbs = []
        current = ''
        for part in self.label.split('/'):
            if not part:
                continue
            current = current + '/' + part if current else part
            crumbs.append((part, href_for(current)))
        return crumbs

    def child_label(self, name):
        if not self.label:
            return name
        return '%s/%s' % (self.label, name)


def href_for(label):
    """Percent-encoded browsing URL of a label."""
    return '/' + urllib.parse.quote(label, errors='surrogateescape')


def _modified(st):
    try:
        return datetime.fromtimestamp(st.st_mtime)
    except (OverflowError, OSError, ValueError):
        return None


def list_directory(dir_path, label='') -> ListingPage:
    """
    Enumerate the direct children of a directory.

    Args:
        dir_path (str): Resolved directory path
        label (str): Path of the directory relative to the served root

    Returns:
        ListingPage: Directories and files, each sorted by name

    Raises:
        ListingError: The directory could not be enumerated
    """
    label = label.strip('/')
    directories = []
    files = []
    try:
        with os.scandir(dir_path) as it:
            for entry in it:
                try:
                    st = entry.stat()
                except OSError:
                    try:
                        # dangling symlink
                        st = entry.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        continue
                is_dir = entry.is_dir()
                info = EntryInfo(
                    entry.name,
                    is_dir,
                    size = None if is_dir else st.st_size,
                    modified = _modified(st),
                )
                if is_dir:
                    directories.append(info)
                else:
                    files.append(info)
    except OSError as e:
        raise ListingError(dir_path, e)

    directories.sort(key=lambda x: x.name)
    files.sort(key=lambda x: x.name)
    return ListingPage(label, directories, files)
