import asyncio

from ntpprobe.core.commons import *
from ntpprobe.core.udpwrapper import UDPClient
from ntpprobe.protocols.NTP import NTPPacket, NTPLeap, NTPMode


class NTPClient:
	"""
	Sends a single client mode query to one server address and decodes the reply.
	Every query uses its own socket, nothing is retried.
	"""
	def __init__(self, version = DEFAULT_VERSION, timeout = DEFAULT_TIMEOUT, logger = None, loop = None):
		self.version = version
		self.timeout = timeout
		self.logger = logger
		self._loop = loop

	def build_request(self):
		return NTPPacket.construct(NTPLeap.NOT_IN_SYNC, self.version, NTPMode.CLIENT)

	async def query(self, raddr, family = None):
		"""
		:param raddr: socket address of the server
		:type raddr: tuple
		:param family: address family of raddr, derived from the address when None
		:type family: socket.AddressFamily
		:return: NTPPacket
		"""
		loop = self._loop
		if loop is None:
			loop = asyncio.get_event_loop()

		request = self.build_request().to_bytes()
		cli = UDPClient(raddr, family = family, loop = loop)
		try:
			cli.start_socket()
			await self.log_debug('Sending %d byte request to %s from %s' % (len(request), raddr[0], cli.laddr[0]))
			sent = await cli.send(request)
			if sent != len(request):
				raise SendIncomplete(sent, len(request))

			try:
				data = await cli.recv(RECV_BUFFER_SIZE, timeout = self.timeout)
			except asyncio.TimeoutError:
				raise QueryTimeout(self.timeout) from None

			await self.log_debug('Received %d bytes from %s' % (len(data), raddr[0]))
			if len(data) < NTP_PACKET_SIZE:
				raise ResponseTooShort(len(data))

			return NTPPacket.from_bytes(data)
		finally:
			cli.close()

	async def log_debug(self, msg):
		if self.logger is not None:
			await self.logger.debug(msg)
