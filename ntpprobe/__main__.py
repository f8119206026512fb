#!/usr/bin/python3
import sys
import asyncio

from ntpprobe.core.commons import NTPProbeException
from ntpprobe.core.ntpprobe import NTPProbe


def main():
	parser = NTPProbe.get_argparser()
	args = parser.parse_args()

	try:
		probe = NTPProbe.from_args(args)
		probe.config.setup_logging()
	except NTPProbeException as e:
		print('Error: %s' % e, file = sys.stderr)
		return 1

	asyncio.run(probe.run())
	return 0

if __name__ == '__main__':
	sys.exit(main())
