import os
import sys
import copy
import logging
import logging.config
import argparse
import asyncio
import importlib.machinery
import importlib.util

from ntpprobe.core.commons import *
from ntpprobe.core.resolver import Resolver
from ntpprobe.core.logging.logger import Logger
from ntpprobe.clients.ntp import NTPClient


default_logsettings = {
	'version'   : 1,
	'disable_existing_loggers': False,
	'formatters': {
		'detailed': {
			'class' : 'logging.Formatter',
			'format': '%(asctime)s %(name)-15s %(levelname)-8s %(message)s'
		}
	},
	'handlers'  : {
		'console': {
			'class'    : 'logging.StreamHandler',
			'formatter': 'detailed',
			'stream'   : 'ext://sys.stderr',
		}
	},
	'root'      : {
		'level'   : 'INFO',
		'handlers': ['console']
	}
}


class NTPProbeConfig:
	CONFIG_OS_KEY = 'NTPPROBE_CONFIG'
	LOGLEVEL_OS_KEY = 'NTPPROBE_LOGLEVEL'

	def __init__(self):
		self.servers = []
		self.version = DEFAULT_VERSION
		self.timeout = DEFAULT_TIMEOUT
		self.port = NTP_PORT
		self.log_settings = copy.deepcopy(default_logsettings)
		self.verbosity = 0

	@staticmethod
	def from_dict(config):
		"""
		Keys: servers, logsettings, defaults (version, timeout, port), all optional
		"""
		conf = NTPProbeConfig()
		if 'servers' in config:
			conf.servers = list(config['servers'])
		if 'logsettings' in config:
			conf.log_settings = config['logsettings']
		defaults = config.get('defaults', {})
		if 'version' in defaults:
			conf.version = defaults['version']
		if 'timeout' in defaults:
			conf.timeout = defaults['timeout']
		if 'port' in defaults:
			conf.port = defaults['port']
		return conf

	@staticmethod
	def from_python_script(file_path):
		loader = importlib.machinery.SourceFileLoader('ntpprobeconfig', file_path)
		spec = importlib.util.spec_from_loader(loader.name, loader)
		probeconfig = importlib.util.module_from_spec(spec)
		try:
			loader.exec_module(probeconfig)
		except (OSError, SyntaxError) as e:
			raise NTPProbeException('failed to load config `%s`: %s' % (file_path, e)) from e
		config = {}
		for key in ['servers', 'logsettings', 'defaults']:
			if hasattr(probeconfig, key):
				config[key] = getattr(probeconfig, key)
		return NTPProbeConfig.from_dict(config)

	@staticmethod
	def from_os_env():
		config_file = os.environ.get(NTPProbeConfig.CONFIG_OS_KEY)
		if config_file is None:
			raise NTPProbeException(
				'Could not find configuration file path in os environment variables! '
				'Name to be set: %s' % NTPProbeConfig.CONFIG_OS_KEY
			)
		return NTPProbeConfig.from_python_script(config_file)

	@staticmethod
	def from_args(args):
		if args.config is not None:
			conf = NTPProbeConfig.from_python_script(args.config)
		elif NTPProbeConfig.CONFIG_OS_KEY in os.environ:
			conf = NTPProbeConfig.from_os_env()
		else:
			conf = NTPProbeConfig()

		conf.servers = list(args.server)
		if args.version is not None:
			conf.version = args.version
		if args.timeout is not None:
			conf.timeout = args.timeout
		if args.port is not None:
			conf.port = args.port
		conf.verbosity = args.verbose
		return conf

	def validate(self):
		if not isinstance(self.version, int) or not NTP_VERSION_MIN <= self.version <= NTP_VERSION_MAX:
			raise InvalidVersion(self.version)
		if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or not self.timeout > 0:
			raise NTPProbeException('illegal timeout `%s`' % self.timeout)
		if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
			raise NTPProbeException('illegal port `%s`' % self.port)

	def get_log_level(self):
		"""
		-v wins over the environment, None keeps the level of the log settings
		"""
		if self.verbosity > 0:
			return 'DEBUG'
		level = os.environ.get(NTPProbeConfig.LOGLEVEL_OS_KEY)
		if level is None:
			return None
		level = level.strip().upper()
		if not isinstance(logging.getLevelName(level), int):
			raise NTPProbeException('illegal log level `%s`' % level)
		return level

	def setup_logging(self):
		settings = copy.deepcopy(self.log_settings)
		level = self.get_log_level()
		if level is not None:
			settings.setdefault('root', {})['level'] = level
		try:
			logging.config.dictConfig(settings)
		except (ValueError, TypeError, AttributeError, ImportError) as e:
			raise NTPProbeException('invalid log settings: %s' % e) from e


class NTPProbe:
	def __init__(self, config, resolver = None, output = None):
		self.config = config
		self.resolver = resolver
		self.output = output
		if self.resolver is None:
			self.resolver = Resolver()
		if self.output is None:
			self.output = sys.stdout

		self.logger = Logger('ntpprobe')
		self.client = NTPClient(
			version = config.version,
			timeout = config.timeout,
			logger = self.logger.get_child('NTPClient')
		)

	@staticmethod
	def get_argparser():
		parser = argparse.ArgumentParser(
			description='Queries NTP servers and prints the decoded replies'
		)
		parser.add_argument(
			'server',
			nargs='+',
			help='Host name or IP address of the server.'
		)
		parser.add_argument(
			'-o',
			'--version',
			type=int,
			metavar='version',
			help='Specify the NTP version to send, which can be 1, 2, 3 or 4. Default: %d' % DEFAULT_VERSION
		)
		parser.add_argument(
			'-t',
			'--timeout',
			type=float,
			metavar='seconds',
			help='Specify the maximum time waiting for a server response, in seconds and fraction. Default: %s' % DEFAULT_TIMEOUT
		)
		parser.add_argument(
			'-p',
			'--port',
			type=int,
			help='UDP port of the servers. Default: %d' % NTP_PORT
		)
		parser.add_argument(
			'-c',
			'--config',
			help='Configuration file (Python). Full path please'
		)
		parser.add_argument(
			'-v',
			'--verbose',
			action='count',
			default=0
		)
		return parser

	@staticmethod
	def from_args(args):
		config = NTPProbeConfig.from_args(args)
		config.validate()
		return NTPProbe(config)

	def print(self, line = ''):
		print(line, file = self.output)

	async def run(self):
		self.config.validate()
		logger_task = asyncio.ensure_future(self.logger.run())
		try:
			for i, server in enumerate(self.config.servers):
				if i > 0:
					self.print()
				await self.probe_host(server)
		finally:
			await self.logger.flush()
			logger_task.cancel()
			try:
				await logger_task
			except asyncio.CancelledError:
				pass

	async def probe_host(self, server):
		self.print(server)
		try:
			addrs = await self.resolver.resolve(server, self.config.port)
		except ResolutionFailure as e:
			await self.logger.debug(str(e))
			self.print('  %s' % e)
			return

		await self.logger.debug('%s resolved to %d address(es)' % (server, len(addrs)))
		for i, (family, addr) in enumerate(addrs):
			if i > 0:
				self.print()
			self.print('  %s' % addr[0])
			try:
				lines = await self.probe_address(family, addr)
			except (NTPProbeException, OSError) as e:
				await self.logger.exception('Query to %s failed' % addr[0], level = logging.DEBUG)
				self.print('    %s' % e)
				continue
			for line in lines:
				self.print(line)

	async def probe_address(self, family, addr):
		packet = await self.client.query(addr, family = family)
		return NTPProbe.format_packet(packet)

	@staticmethod
	def format_packet(packet):
		"""
		Renders the decoded reply, fails with InvalidField before anything is returned
		:param packet: decoded server reply
		:type packet: NTPPacket
		:return: list of str
		"""
		leap, version, mode = packet.leap_version_mode()
		return [
			'    leap: %s, version: %d, mode: %s, stratum: %d' % (leap, version, mode, packet.Stratum),
			'    poll: %s, precision: %s' % (packet.Poll, packet.Precision),
			'    root delay: %.9f seconds, root dispersion: %.9f seconds' % (packet.RootDelay.total(), packet.RootDispersion.total()),
			'    reference id: %s' % packet.reference_id_str(),
			'    reference timestamp: %s' % packet.ReferenceTimestamp.isoformat(),
			'      receive timestamp: %s' % packet.ReceiveTimestamp.isoformat(),
			'     transmit timestamp: %s' % packet.TransmitTimestamp.isoformat(),
		]
