import ssl


class UniSSL:
	"""Server-side TLS settings; builds a fresh ssl.SSLContext on every call."""
	def __init__(self, certfile:str, keyfile:str = None, password:str = None):
		self.certfile:str = certfile
		self.keyfile:str = keyfile
		self.password:str = password

	@staticmethod
	def get_selfsigned_context(hostname = 'localhost'):
		"""Returns a UniSSL backed by a freshly generated self-signed certificate."""
		from asyfolder.certgen import generate_selfsigned_cert
		certfile, keyfile, err = generate_selfsigned_cert(hostname)
		if err is not None:
			raise err
		return UniSSL(certfile, keyfile)

	def get_ssl_context(self, protocol = ssl.PROTOCOL_TLS_SERVER):
		ssl_ctx = ssl.SSLContext(protocol)
		ssl_ctx.load_cert_chain(certfile=self.certfile, keyfile=self.keyfile, password=self.password)
		return ssl_ctx

	def __str__(self):
		return 'UniSSL(certfile=%s, keyfile=%s)' % (self.certfile, self.keyfile)
