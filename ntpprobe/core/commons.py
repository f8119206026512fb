
NTP_PORT = 123
NTP_PACKET_SIZE = 48
#replies may carry extension fields, only the header is decoded
RECV_BUFFER_SIZE = 1024

NTP_VERSION_MIN = 1
NTP_VERSION_MAX = 4
DEFAULT_VERSION = 4
DEFAULT_TIMEOUT = 2.0


class NTPProbeException(Exception):
	pass


class InvalidVersion(NTPProbeException):
	def __init__(self, version):
		NTPProbeException.__init__(self, 'illegal NTP version `%s`' % version)
		self.version = version


class InvalidField(NTPProbeException):
	def __init__(self, field, value):
		NTPProbeException.__init__(self, 'illegal %s value `%s`' % (field, value))
		self.field = field
		self.value = value


class ResolutionFailure(NTPProbeException):
	def __init__(self, host, reason):
		NTPProbeException.__init__(self, 'failed to resolve %s: %s' % (host, reason))
		self.host = host
		self.reason = reason


class SendIncomplete(NTPProbeException):
	def __init__(self, sent, expected):
		NTPProbeException.__init__(self, 'failed to send request (%d of %d bytes sent)' % (sent, expected))
		self.sent = sent
		self.expected = expected


class QueryTimeout(NTPProbeException):
	def __init__(self, timeout):
		NTPProbeException.__init__(self, 'no response within %s seconds' % timeout)
		self.timeout = timeout


class ResponseTooShort(NTPProbeException):
	def __init__(self, length):
		NTPProbeException.__init__(self, 'response too short (%d bytes)' % length)
		self.length = length
