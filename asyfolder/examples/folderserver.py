#!/usr/bin/env python3
"""
Folder Server

Serves a directory over HTTP:
- Directory browsing
- File download
- File upload (multipart form, can be disabled)
- Protection against directory traversal

Usage:
    asyfolder-server [directory] [port]

Example:
    asyfolder-server ./share 8080 --host 127.0.0.1
"""

import sys
import asyncio
import logging
import argparse

from asyfolder import logger
from asyfolder._version import __version__
from asyfolder.config import ServerConfig, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_MAX_UPLOAD_SIZE
from asyfolder.folder.handler import FolderHandler
from asyfolder.unicomm.protocol.server.http.httpserver import HTTPServer


def get_server(config:ServerConfig, debug=False):
    """HTTPServer serving `config.root` with one FolderHandler per connection."""
    async def print_cb(msg):
        logger.info(msg)

    log_callback = None
    if debug is True:
        async def log_callback(msg):
            logger.debug(msg)

    handler_factory = lambda: FolderHandler(config, print_cb=print_cb)
    return HTTPServer(handler_factory, config.get_target(), log_callback=log_callback)


def print_banner(config:ServerConfig):
    print("asyfolder %s - HTTP folder server" % __version__)
    print("=" * 50)
    print("Directory: %s" % config.root)
    print("Address: %s" % config.get_url())
    print("Features:")
    print("   - directory browsing")
    print("   - file download")
    print("   - file upload: %s" % ('enabled' if config.uploads_enabled else 'disabled'))
    print("   - TLS: %s" % ('enabled' if config.use_ssl else 'disabled'))
    print("   - CORS: %s" % ('enabled' if config.cors else 'disabled'))
    print("=" * 50)
    print("Press Ctrl+C to stop the server\n")


async def run_folder_server(config:ServerConfig, debug=False):
    server = get_server(config, debug=debug)
    await server.serve()


def main():
    parser = argparse.ArgumentParser(
        description='Serve a directory over HTTP with browsing, download and upload',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s                              # Serve the current directory on 0.0.0.0:2333
  %(prog)s /home/user/files 8080        # Serve a directory on port 8080
  %(prog)s /home/user/files --no-upload # Read-only
  %(prog)s /home/user/files --ssl       # HTTPS with a self-signed certificate
        ''')
    parser.add_argument('directory', nargs='?', help='Directory to serve (default: current directory)')
    parser.add_argument('port', nargs='?', type=int, default=DEFAULT_PORT, help='Port to bind to (default: %s)' % DEFAULT_PORT)
    parser.add_argument('--host', '-H', default=DEFAULT_HOST, help='Address to bind to (default: %s)' % DEFAULT_HOST)
    parser.add_argument('--no-upload', action='store_true', help='Disable uploads')
    parser.add_argument('--ssl', action='store_true', help='Serve HTTPS (self-signed certificate unless --certfile is given)')
    parser.add_argument('--certfile', help='TLS certificate file (PEM)')
    parser.add_argument('--keyfile', help='TLS private key file (PEM)')
    parser.add_argument('--no-cors', action='store_true', help='Do not send CORS headers')
    parser.add_argument('--max-upload-size', type=int, default=DEFAULT_MAX_UPLOAD_SIZE, help='Maximum upload request size in bytes (default: 2GB)')
    parser.add_argument('--debug', '-d', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', '-v', action='version', version='asyfolder %s' % __version__)
    args = parser.parse_args()

    if args.debug is True:
        logger.setLevel(logging.DEBUG)

    try:
        config = ServerConfig.from_args(args)
    except ValueError as e:
        print("Error: %s" % e)
        sys.exit(1)

    print_banner(config)
    try:
        asyncio.run(run_folder_server(config, debug=args.debug))
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print("Failed to start server: %s" % e)
        sys.exit(1)


if __name__ == '__main__':
    main()
