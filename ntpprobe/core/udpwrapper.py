import asyncio
import socket
import ipaddress


def _set_ready(fut):
	if not fut.done():
		fut.set_result(None)


async def wait_readable(loop, sock, timeout = None):
	"""
	Waits until the socket becomes readable.
	The reader registration is always removed before returning.
	:param timeout: Time in seconds to wait, None waits forever
	:type timeout: float
	:raises asyncio.TimeoutError: the socket did not become readable in time
	"""
	fd = sock.fileno()
	fut = loop.create_future()
	loop.add_reader(fd, _set_ready, fut)
	try:
		await asyncio.wait_for(fut, timeout = timeout)
	finally:
		loop.remove_reader(fd)


async def wait_writable(loop, sock):
	fd = sock.fileno()
	fut = loop.create_future()
	loop.add_writer(fd, _set_ready, fut)
	try:
		await fut
	finally:
		loop.remove_writer(fd)


async def send(loop, sock, data):
	while True:
		try:
			return sock.send(data)
		except (BlockingIOError, InterruptedError):
			await wait_writable(loop, sock)


async def recv(loop, sock, n_bytes, timeout = None):
	while True:
		await wait_readable(loop, sock, timeout = timeout)
		try:
			return sock.recv(n_bytes)
		except (BlockingIOError, InterruptedError):
			#readiness was signalled but there is nothing to read yet
			continue


class UDPClient:
	"""
	Connected, non-blocking UDP endpoint talking to a single remote address
	"""
	def __init__(self, raddr, family = None, loop = None, sock = None):
		self._raddr  = raddr
		self._family = family
		self._socket = sock
		self._loop   = loop
		self._laddr  = None
		if loop is None:
			self._loop = asyncio.get_event_loop()

	@property
	def laddr(self):
		return self._laddr

	def start_socket(self):
		family = self._family
		if family is None:
			family = socket.AF_INET if ipaddress.ip_address(self._raddr[0]).version == 4 else socket.AF_INET6
		self._socket = socket.socket(family, socket.SOCK_DGRAM, 0)
		try:
			self._socket.setblocking(False)
			self._socket.bind(('0.0.0.0', 0) if family == socket.AF_INET else ('::', 0))
			self._socket.connect(self._raddr)
		except OSError:
			self.close()
			raise
		self._laddr = self._socket.getsockname()

	async def send(self, data):
		if self._socket is None:
			self.start_socket()
		return await send(self._loop, self._socket, data)

	async def recv(self, n_bytes, timeout = None):
		return await recv(self._loop, self._socket, n_bytes, timeout = timeout)

	def close(self):
		if self._socket is not None:
			self._socket.close()
			self._socket = None
