import io
import sys
import logging
import asyncio
import traceback

from ntpprobe.core.logging.log_objects import LogEntry


class Logger:
	"""
	Logging for asyncio based classes/functions.
	Messages are put on a queue, the final Logger instance (the one without a parent queue)
	consumes them in run() and hands them to the stdlib logging module.
	"""
	def __init__(self, name, logQ = None, level = logging.DEBUG):
		self.level = level
		self.name = name

		self.is_final = True
		if logQ is not None:
			self.logQ = logQ
			self.is_final = False
		else:
			self.logQ = asyncio.Queue()

	def get_child(self, name):
		return Logger('%s.%s' % (self.name, name), logQ = self.logQ, level = self.level)

	async def run(self):
		"""
		you only need to call this function IF the logger instance is the final dst!
		"""
		if self.is_final == False:
			return
		while True:
			logmsg = await self.logQ.get()
			try:
				await self.handle_logger(logmsg)
			finally:
				self.logQ.task_done()

	async def flush(self):
		"""
		Waits until every queued message has been handled by run()
		"""
		await self.logQ.join()

	async def handle_logger(self, msg):
		logger = logging.getLogger(msg.name)
		if msg.exc_text:
			logger.log(msg.level, '%s\n%s', msg.msg, msg.exc_text)
		else:
			logger.log(msg.level, msg.msg)

	async def log(self, level, msg):
		"""
		Level MUST be bigger than 0!!!
		"""
		if level < self.level:
			return
		await self.logQ.put(LogEntry(level, self.name, msg))

	async def debug(self, msg):
		await self.log(logging.DEBUG, msg)

	async def exception(self, message = None, level = logging.ERROR):
		if level < self.level:
			return
		sio = io.StringIO()
		ei = sys.exc_info()
		traceback.print_exception(ei[0], ei[1], ei[2], None, sio)
		exc_text = sio.getvalue()
		sio.close()
		if exc_text[-1:] == '\n':
			exc_text = exc_text[:-1]
		if message is None:
			message = str(ei[1])
		await self.logQ.put(LogEntry(level, self.name, message, exc_text))
