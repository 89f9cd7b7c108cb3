import asyncio

from asyfolder import logger
from asyfolder.unicomm.common.target import UniTarget, UniProto
from asyfolder.unicomm.common.connection import UniConnection


class UniServer:
	def __init__(self, target:UniTarget, buffer_size:int = 65535):
		self.target = target
		self.buffer_size = buffer_size
		self.connection_queue = asyncio.Queue()
		self.server = None

	@property
	def sockets(self):
		if self.server is None:
			return []
		return self.server.sockets

	def get_bound_port(self):
		for sock in self.sockets:
			return sock.getsockname()[1]
		return None

	async def __handle_connection(self, reader, writer):
		connection = UniConnection(reader, writer, self.buffer_size)
		await self.connection_queue.put(connection)

	async def start(self):
		"""Binds the listening socket. Returns (server, err)."""
		try:
			if self.target.protocol == UniProto.SERVER_TCP:
				ssl_ctx = None
			elif self.target.protocol == UniProto.SERVER_SSL_TCP:
				ssl_ctx = self.target.get_ssl_context()
			else:
				raise Exception('Unknown protocol "%s"' % self.target.protocol)

			self.server = await asyncio.start_server(
				self.__handle_connection,
				self.target.get_ip_or_hostname(),
				self.target.port,
				ssl = ssl_ctx,
			)
			logger.debug('Listening on %s:%s' % (self.target.get_ip_or_hostname(), self.get_bound_port()))
			return self.server, None
		except Exception as e:
			return None, e

	async def serve(self):
		try:
			if self.server is None:
				_, err = await self.start()
				if err is not None:
					raise err
			while self.server.is_serving():
				connection = await self.connection_queue.get()
				yield connection
		finally:
			await self.close()

	async def close(self):
		# not waiting for wait_closed(), it blocks until every client connection is gone
		if self.server is not None:
			self.server.close()
