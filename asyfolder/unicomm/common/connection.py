import asyncio


class UniConnection:
	def __init__(self, reader:asyncio.StreamReader, writer:asyncio.StreamWriter, buffer_size:int = 65535):
		self.reader = reader
		self.writer = writer
		self.buffer_size = buffer_size
		self.closing = False
		self.closed_evt = asyncio.Event()

	async def __aenter__(self):
		return self

	async def __aexit__(self, exc_type, exc, tb):
		await self.close()

	def get_extra_info(self, name, default=None):
		if self.writer is None:
			return default
		return self.writer.get_extra_info(name, default)

	def get_peer(self):
		peer = self.get_extra_info('peername')
		if peer is None:
			return 'unknown'
		return '%s:%s' % (peer[0], peer[1])

	async def close(self):
		if self.closing is True:
			return
		self.closing = True
		if self.writer is not None:
			self.writer.close()
			try:
				await self.writer.wait_closed()
			except (ConnectionError, OSError):
				# peer already went away
				pass
		self.closed_evt.set()

	async def write(self, data):
		if not data:
			return
		self.writer.write(data)
		await self.writer.drain()

	async def read_one(self):
		"""Next chunk of incoming bytes, b'' on EOF."""
		if self.closing is True:
			return b''
		return await self.reader.read(self.buffer_size)
