import io
import os
import sys
import socket
import asyncio
import pathlib
import tempfile
import unittest
import contextlib
from unittest import mock

from ntpprobe.__main__ import main
from ntpprobe.core.commons import *
from ntpprobe.core.resolver import Resolver
from ntpprobe.core.ntpprobe import NTPProbe, NTPProbeConfig
from ntpprobe.tests import fakeserver

EXAMPLE_CONFIG = pathlib.Path(__file__).resolve().parents[2] / 'examples' / 'config_debug.py'

REPORT = [
	'    leap: No Warning, version: 4, mode: Server, stratum: 2',
	'    poll: 256 seconds, precision: 0.000000954 seconds',
	'    root delay: 0.500000000 seconds, root dispersion: 1.250000000 seconds',
	'    reference id: 192.0.2.1',
	'    reference timestamp: 2024-01-01T12:30:15.000000000Z',
	'      receive timestamp: 2024-01-01T12:30:15.000000000Z',
	'     transmit timestamp: 2024-01-01T12:30:15.000000000Z',
]


class StaticResolver:
	"""
	Maps host names to fixed address lists, unknown hosts fail to resolve
	"""
	def __init__(self, table):
		self.table = table
		self.calls = []

	async def resolve(self, host, port):
		self.calls.append((host, port))
		if host not in self.table:
			raise ResolutionFailure(host, 'Name or service not known')
		return self.table[host]


def make_config(servers, **kw):
	conf = NTPProbeConfig()
	conf.servers = servers
	for key in kw:
		setattr(conf, key, kw[key])
	return conf


class NTPProbeTest(unittest.IsolatedAsyncioTestCase):
	async def start(self, behaviour):
		transport, _, port = await fakeserver.start_server(behaviour)
		self.addCleanup(transport.close)
		return port

	async def run_config(self, config, resolver = None):
		output = io.StringIO()
		app = NTPProbe(config, resolver = resolver, output = output)
		await app.run()
		return output.getvalue().splitlines()

	async def test_report(self):
		port = await self.start(fakeserver.REPLY)
		lines = await self.run_config(make_config(['127.0.0.1'], port = port))
		self.assertEqual(lines, ['127.0.0.1', '  127.0.0.1'] + REPORT)

	async def test_resolution_failure_continues(self):
		port = await self.start(fakeserver.REPLY)
		resolver = StaticResolver({'good.example': [(socket.AF_INET, ('127.0.0.1', port))]})
		lines = await self.run_config(make_config(['bad.invalid', 'good.example']), resolver)

		self.assertEqual(lines[0], 'bad.invalid')
		self.assertEqual(lines[1], '  failed to resolve bad.invalid: Name or service not known')
		self.assertEqual(lines[2], '')
		self.assertEqual(lines[3:], ['good.example', '  127.0.0.1'] + REPORT)

	async def test_short_reply_continues(self):
		short_port = await self.start(fakeserver.SHORT)
		good_port = await self.start(fakeserver.REPLY)
		resolver = StaticResolver({'pool.example': [
			(socket.AF_INET, ('127.0.0.1', short_port)),
			(socket.AF_INET, ('127.0.0.1', good_port)),
		]})
		lines = await self.run_config(make_config(['pool.example']), resolver)

		self.assertEqual(lines[:4], ['pool.example', '  127.0.0.1', '    response too short (20 bytes)', ''])
		self.assertEqual(lines[4:], ['  127.0.0.1'] + REPORT)

	async def test_timeout_continues(self):
		silent_port = await self.start(fakeserver.SILENT)
		good_port = await self.start(fakeserver.REPLY)
		resolver = StaticResolver({
			'slow.example': [(socket.AF_INET, ('127.0.0.1', silent_port))],
			'good.example': [(socket.AF_INET, ('127.0.0.1', good_port))],
		})
		lines = await self.run_config(make_config(['slow.example', 'good.example'], timeout = 0.2), resolver)

		self.assertEqual(lines[:4], ['slow.example', '  127.0.0.1', '    no response within 0.2 seconds', ''])
		self.assertEqual(lines[4:], ['good.example', '  127.0.0.1'] + REPORT)

	async def test_invalid_field_reported(self):
		port = await self.start(fakeserver.BAD_MODE)
		lines = await self.run_config(make_config(['127.0.0.1'], port = port))
		self.assertEqual(lines, ['127.0.0.1', '  127.0.0.1', '    illegal mode value `7`'])

	async def test_invalid_version_before_network(self):
		resolver = StaticResolver({})
		for version in [0, 5, 7]:
			app = NTPProbe(make_config(['127.0.0.1'], version = version), resolver = resolver, output = io.StringIO())
			with mock.patch('socket.socket') as sock:
				with self.assertRaises(InvalidVersion):
					await app.run()
				sock.assert_not_called()
		self.assertEqual(resolver.calls, [])

	async def test_resolver_numeric(self):
		addrs = await Resolver().resolve('127.0.0.1', NTP_PORT)
		self.assertEqual(addrs, [(socket.AF_INET, ('127.0.0.1', NTP_PORT))])

	async def test_resolver_failure(self):
		class FailingLoop:
			async def getaddrinfo(self, *args, **kw):
				raise socket.gaierror(-2, 'Name or service not known')

		with self.assertRaises(ResolutionFailure) as ctx:
			await Resolver(loop = FailingLoop()).resolve('bad.invalid', NTP_PORT)
		self.assertEqual(ctx.exception.host, 'bad.invalid')


class NTPProbeConfigTest(unittest.TestCase):
	def parse(self, argv):
		return NTPProbe.get_argparser().parse_args(argv)

	def test_defaults(self):
		with mock.patch.dict(os.environ, {}, clear = True):
			conf = NTPProbeConfig.from_args(self.parse(['pool.ntp.org', 'time.example']))
		self.assertEqual(conf.servers, ['pool.ntp.org', 'time.example'])
		self.assertEqual(conf.version, 4)
		self.assertEqual(conf.timeout, 2.0)
		self.assertEqual(conf.port, 123)
		conf.validate()

	def test_arguments(self):
		with mock.patch.dict(os.environ, {}, clear = True):
			conf = NTPProbeConfig.from_args(self.parse(['-o', '3', '-t', '0.5', '--port', '1123', '-vv', 'host']))
		self.assertEqual((conf.version, conf.timeout, conf.port, conf.verbosity), (3, 0.5, 1123, 2))

	def test_version_range(self):
		for version in [1, 2, 3, 4]:
			make_config(['host'], version = version).validate()
		for version in [-1, 0, 5, 255]:
			with self.assertRaises(InvalidVersion):
				make_config(['host'], version = version).validate()

	def test_from_args_validates(self):
		with mock.patch.dict(os.environ, {}, clear = True):
			with self.assertRaises(InvalidVersion):
				NTPProbe.from_args(self.parse(['-o', '5', 'host']))

	def test_timeout_and_port_range(self):
		with self.assertRaises(NTPProbeException):
			make_config(['host'], timeout = 0).validate()
		with self.assertRaises(NTPProbeException):
			make_config(['host'], port = 70000).validate()

	def test_python_script(self):
		with tempfile.TemporaryDirectory() as tmp:
			path = os.path.join(tmp, 'ntp_config.py')
			with open(path, 'w') as f:
				f.write("defaults = {'version': 2, 'timeout': 1.5}\n")
			with mock.patch.dict(os.environ, {NTPProbeConfig.CONFIG_OS_KEY: path}, clear = True):
				conf = NTPProbeConfig.from_args(self.parse(['-t', '3', 'host']))
		self.assertEqual(conf.version, 2)
		self.assertEqual(conf.timeout, 3.0)
		self.assertEqual(conf.log_settings['root']['level'], 'INFO')

	def test_os_env_missing(self):
		with mock.patch.dict(os.environ, {}, clear = True):
			with self.assertRaises(NTPProbeException):
				NTPProbeConfig.from_os_env()

	@unittest.skipUnless(EXAMPLE_CONFIG.exists(), 'example configs are not installed')
	def test_example_config(self):
		conf = NTPProbeConfig.from_args(self.parse(['-c', str(EXAMPLE_CONFIG), 'host']))
		self.assertEqual((conf.version, conf.timeout), (3, 0.5))
		self.assertEqual(conf.log_settings['root']['level'], 'DEBUG')
		conf.validate()

	def test_log_level(self):
		conf = make_config(['host'])
		with mock.patch.dict(os.environ, {}, clear = True):
			self.assertIsNone(conf.get_log_level())
		with mock.patch.dict(os.environ, {NTPProbeConfig.LOGLEVEL_OS_KEY: 'warning'}, clear = True):
			self.assertEqual(conf.get_log_level(), 'WARNING')
			conf.verbosity = 1
			self.assertEqual(conf.get_log_level(), 'DEBUG')
		conf.verbosity = 0
		with mock.patch.dict(os.environ, {NTPProbeConfig.LOGLEVEL_OS_KEY: 'chatty'}, clear = True):
			with self.assertRaises(NTPProbeException):
				conf.get_log_level()


class MainTest(unittest.TestCase):
	def test_illegal_version(self):
		stderr = io.StringIO()
		with mock.patch.object(sys, 'argv', ['ntpprobe', '-o', '9', 'pool.ntp.org']):
			with mock.patch.dict(os.environ, {}, clear = True):
				with contextlib.redirect_stderr(stderr):
					self.assertEqual(main(), 1)
		self.assertEqual(stderr.getvalue().strip(), 'Error: illegal NTP version `9`')

	def run_main(self, argv):
		stderr = io.StringIO()
		with mock.patch.object(sys, 'argv', ['ntpprobe'] + argv):
			with mock.patch.dict(os.environ, {}, clear = True):
				with contextlib.redirect_stderr(stderr):
					result = main()
		return result, stderr.getvalue().strip()

	def write_config(self, tmp, text):
		path = os.path.join(tmp, 'ntp_config.py')
		with open(path, 'w') as f:
			f.write(text)
		return path

	def test_missing_config_file(self):
		result, err = self.run_main(['-c', '/nonexistent/ntp_config.py', 'pool.ntp.org'])
		self.assertEqual(result, 1)
		self.assertTrue(err.startswith('Error: failed to load config `/nonexistent/ntp_config.py`'))

	def test_config_syntax_error(self):
		with tempfile.TemporaryDirectory() as tmp:
			path = self.write_config(tmp, 'defaults = {\n')
			result, err = self.run_main(['-c', path, 'pool.ntp.org'])
		self.assertEqual(result, 1)
		self.assertTrue(err.startswith('Error: failed to load config'))

	def test_non_numeric_defaults(self):
		with tempfile.TemporaryDirectory() as tmp:
			path = self.write_config(tmp, "defaults = {'timeout': 'fast'}\n")
			result, err = self.run_main(['-c', path, 'pool.ntp.org'])
		self.assertEqual((result, err), (1, 'Error: illegal timeout `fast`'))

		with tempfile.TemporaryDirectory() as tmp:
			path = self.write_config(tmp, "defaults = {'port': 'ntp'}\n")
			result, err = self.run_main(['-c', path, 'pool.ntp.org'])
		self.assertEqual((result, err), (1, 'Error: illegal port `ntp`'))

	def test_invalid_log_settings(self):
		with tempfile.TemporaryDirectory() as tmp:
			path = self.write_config(tmp, "logsettings = {'version': 1, 'handlers': {'x': {'class': 'no.such.Handler'}}}\n")
			result, err = self.run_main(['-c', path, 'pool.ntp.org'])
		self.assertEqual(result, 1)
		self.assertTrue(err.startswith('Error: invalid log settings'))


if __name__ == '__main__':
	unittest.main()
