import ssl
import enum
import ipaddress

from asyfolder.unicomm.common.unissl import UniSSL

class UniProto(enum.Enum):
	SERVER_TCP = 6
	SERVER_SSL_TCP = 7

class UniTarget:
	def __init__(self, ip:str, port:int, protocol:UniProto, ssl_ctx:UniSSL = None, hostname:str = None):
		self.hostname = hostname
		self.port = port
		self.protocol = protocol
		self.ssl_ctx = ssl_ctx

		try:
			ipaddress.ip_address(ip)
			self.ip = ip
		except ValueError:
			if ip is not None:
				self.hostname = ip
			self.ip = None

		if ip is None and hostname is None:
			raise Exception('Both IP and Hostname can\'t be none!')

	def get_ssl_context(self, protocol = ssl.PROTOCOL_TLS_SERVER):
		if self.protocol != UniProto.SERVER_SSL_TCP:
			return None
		if self.ssl_ctx is None:
			self.ssl_ctx = UniSSL.get_selfsigned_context(self.get_hostname_or_ip())
		return self.ssl_ctx.get_ssl_context(protocol)

	def get_ip_or_hostname(self):
		if self.ip is not None:
			return self.ip
		return self.hostname

	def get_hostname_or_ip(self):
		if self.hostname is not None:
			return self.hostname
		return self.ip

	def get_scheme(self):
		if self.protocol == UniProto.SERVER_SSL_TCP:
			return 'https'
		return 'http'

	def __str__(self):
		t = '==== UniTarget ====\r\n'
		for k in self.__dict__:
			t += '%s: %s\r\n' % (k, self.__dict__[k])
		return t
