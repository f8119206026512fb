import asyncio
import logging
import unittest

from ntpprobe.core.logging.logger import Logger
from ntpprobe.core.logging.log_objects import LogEntry


class LoggerTest(unittest.IsolatedAsyncioTestCase):
	async def test_forwards_to_logging(self):
		logger = Logger('ntpprobe')
		child = logger.get_child('test')
		task = asyncio.ensure_future(logger.run())
		try:
			with self.assertLogs('ntpprobe', level = 'DEBUG') as cm:
				await child.debug('query sent')
				await logger.log(logging.WARNING, 'something odd')
				await logger.flush()
		finally:
			task.cancel()
			await asyncio.gather(task, return_exceptions = True)

		self.assertEqual(cm.output, [
			'DEBUG:ntpprobe.test:query sent',
			'WARNING:ntpprobe:something odd',
		])

	async def test_level_filter(self):
		logger = Logger('ntpprobe', level = logging.INFO)
		await logger.debug('dropped')
		await logger.log(logging.INFO, 'kept')
		self.assertEqual(logger.logQ.qsize(), 1)

	async def test_exception_carries_traceback(self):
		logger = Logger('ntpprobe')
		try:
			raise ValueError('broken reply')
		except ValueError:
			await logger.exception('Query failed', level = logging.DEBUG)
		entry = logger.logQ.get_nowait()
		self.assertEqual(entry.level, logging.DEBUG)
		self.assertEqual(entry.msg, 'Query failed')
		self.assertIn('ValueError: broken reply', entry.exc_text)

	async def test_child_run_is_noop(self):
		child = Logger('ntpprobe').get_child('client')
		self.assertFalse(child.is_final)
		await child.run()


class LogEntryTest(unittest.TestCase):
	def test_str(self):
		self.assertEqual(str(LogEntry(logging.INFO, 'ntpprobe', 'hello')), '[ntpprobe][INFO] hello')
		entry = LogEntry(logging.DEBUG, 'ntpprobe', 'failed', 'Traceback')
		self.assertEqual(str(entry), '[ntpprobe][DEBUG] failed\r\nTraceback')


if __name__ == '__main__':
	unittest.main()
