import os

from asyfolder.errors import PathEscapeError


class PathResolver:
    """
    Maps request paths onto the served directory tree.

    The root is fixed at construction. Every path handed out by `resolve`
    is the root itself or one of its descendants, compared component-wise
    so that a sibling like `/base2` never passes for `/base`.
    """

    def __init__(self, root):
        self.root = os.path.normpath(os.path.abspath(root))

    def is_contained(self, path):
        try:
            return os.path.commonpath([self.root, path]) == self.root
        except ValueError:
            # different drives on Windows, or mixed absolute/relative
            return False

    def resolve(self, request_path):
        """
        Join the URL-decoded relative path to the root and validate containment.

        Args:
            request_path (str): Decoded path from the request, leading slash removed

        Returns:
            str: Normalized absolute path inside the root

        Raises:
            PathEscapeError: The path leaves the root
        """
        if not request_path or request_path == '/':
            return self.root

        if '\x00' in request_path:
            raise PathEscapeError(request_path)

        # an absolute request_path replaces the root here; the check below rejects it
        resolved = os.path.normpath(os.path.join(self.root, request_path))
        if not self.is_contained(resolved):
            raise PathEscapeError(request_path)
        return resolved

    def relative_label(self, resolved):
        """Slash-separated path of `resolved` relative to the root, empty for the root."""
        if resolved == self.root:
            return ''
        rel_path = os.path.relpath(resolved, self.root)
        if rel_path == '.':
            return ''
        return rel_path.replace(os.sep, '/')
