import socket
import asyncio

from ntpprobe.core.commons import ResolutionFailure


class Resolver:
	"""
	Resolves host names with the platform resolver through the event loop
	"""
	def __init__(self, loop = None):
		self._loop = loop

	async def resolve(self, host, port):
		"""
		:param host: host name or IP address
		:type host: str
		:param port: UDP port the addresses are resolved for
		:type port: int
		:return: list of (family, sockaddr) tuples in resolver order
		"""
		loop = self._loop
		if loop is None:
			loop = asyncio.get_event_loop()
		try:
			infos = await loop.getaddrinfo(host, port, type = socket.SOCK_DGRAM)
		except (OSError, UnicodeError) as e:
			raise ResolutionFailure(host, e) from e

		addrs = []
		for family, _, _, _, sockaddr in infos:
			if family not in (socket.AF_INET, socket.AF_INET6):
				continue
			if (family, sockaddr) not in addrs:
				addrs.append((family, sockaddr))
		if len(addrs) == 0:
			raise ResolutionFailure(host, 'no usable address')
		return addrs
