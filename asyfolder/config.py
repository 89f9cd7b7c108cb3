import os

from asyfolder.unicomm.common.target import UniTarget, UniProto
from asyfolder.unicomm.common.unissl import UniSSL

DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 2333
DEFAULT_MAX_UPLOAD_SIZE = 2*1024*1024*1024


class ServerConfig:
    """
    Process-wide server settings, fixed at startup.

    Raises:
        ValueError: The root is missing or not a directory, or a value is out of range
    """

    def __init__(self, root, host=DEFAULT_HOST, port=DEFAULT_PORT, uploads_enabled=True, use_ssl=False,
                 certfile=None, keyfile=None, cors=True, max_upload_size=DEFAULT_MAX_UPLOAD_SIZE):
        if not os.path.exists(root):
            raise ValueError(f"Directory does not exist: {root}")
        if not os.path.isdir(root):
            raise ValueError(f"Path is not a directory: {root}")
        if port < 0 or port > 65535:
            raise ValueError(f"Port must be between 0 and 65535, got {port}")
        if max_upload_size < 1:
            raise ValueError(f"max_upload_size must be positive, got {max_upload_size}")
        if keyfile is not None and certfile is None:
            raise ValueError("keyfile given without certfile")

        self.__root = os.path.realpath(root)
        self.host = host
        self.port = port
        self.uploads_enabled = uploads_enabled
        self.use_ssl = use_ssl or certfile is not None
        self.certfile = certfile
        self.keyfile = keyfile
        self.cors = cors
        self.max_upload_size = max_upload_size

    @property
    def root(self):
        return self.__root

    @staticmethod
    def from_args(args):
        return ServerConfig(
            args.directory if args.directory else os.getcwd(),
            host = args.host,
            port = args.port,
            uploads_enabled = not args.no_upload,
            use_ssl = args.ssl,
            certfile = args.certfile,
            keyfile = args.keyfile,
            cors = not args.no_cors,
            max_upload_size = args.max_upload_size,
        )

    def get_target(self) -> UniTarget:
        if self.use_ssl is False:
            return UniTarget(self.host, self.port, UniProto.SERVER_TCP)
        ssl_ctx = None
        if self.certfile is not None:
            ssl_ctx = UniSSL(self.certfile, self.keyfile)
        return UniTarget(self.host, self.port, UniProto.SERVER_SSL_TCP, ssl_ctx=ssl_ctx)

    def get_url(self):
        scheme = 'https' if self.use_ssl else 'http'
        host = self.host
        if ':' in host:
            host = '[%s]' % host
        return '%s://%s:%s' % (scheme, host, self.port)

    def __str__(self):
        return 'ServerConfig(root=%s, host=%s, port=%s, uploads=%s, ssl=%s, cors=%s)' % (
            self.root, self.host, self.port, self.uploads_enabled, self.use_ssl, self.cors
        )
