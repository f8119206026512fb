#https://tools.ietf.org/html/rfc5905
import io
import enum
import math
import datetime

from ntpprobe.core.commons import InvalidField
from ntpprobe.protocols import ProtocolBase

NTPEpoch = datetime.datetime(1900, 1, 1, tzinfo=datetime.timezone.utc)

# 2**32 / 10**9, fraction units per nanosecond
NTPFractionPerNanosecond = 4.294967296


class NTPLeap(enum.Enum):
	NO_WARNING  = 0
	ADD_SECOND  = 1
	DEL_SECOND  = 2
	NOT_IN_SYNC = 3

	@staticmethod
	def from_int(value):
		try:
			return NTPLeap(value)
		except ValueError:
			raise InvalidField('leap indicator', value) from None

	def __str__(self):
		return NTPLeapNames[self]


NTPLeapNames = {
	NTPLeap.NO_WARNING  : 'No Warning',
	NTPLeap.ADD_SECOND  : 'Add Second',
	NTPLeap.DEL_SECOND  : 'Delete Second',
	NTPLeap.NOT_IN_SYNC : 'Not In Sync',
}


class NTPMode(enum.Enum):
	UNSPECIFIED = 0
	ACTIVE      = 1
	PASSIVE     = 2
	CLIENT      = 3
	SERVER      = 4
	BROADCAST   = 5

	@staticmethod
	def from_int(value):
		try:
			return NTPMode(value)
		except ValueError:
			raise InvalidField('mode', value) from None

	def __str__(self):
		return NTPModeNames[self]


NTPModeNames = {
	NTPMode.UNSPECIFIED : 'Unspecified',
	NTPMode.ACTIVE      : 'Active',
	NTPMode.PASSIVE     : 'Passive',
	NTPMode.CLIENT      : 'Client',
	NTPMode.SERVER      : 'Server',
	NTPMode.BROADCAST   : 'Broadcast',
}


class NTPShort(ProtocolBase):
	"""
	16.16 fixed point duration, used for root delay and root dispersion
	"""
	def __init__(self, seconds = 0, fraction = 0):
		self.Seconds  = seconds
		self.Fraction = fraction

	@staticmethod
	def from_bytes(bbuff):
		return NTPShort.from_buffer(io.BytesIO(bbuff))

	@staticmethod
	def from_buffer(buff):
		s = NTPShort()
		s.Seconds  = int.from_bytes(buff.read(2), byteorder='big', signed = False)
		s.Fraction = int.from_bytes(buff.read(2), byteorder='big', signed = False)
		return s

	@staticmethod
	def from_float(f):
		frac, tot = math.modf(f)
		return NTPShort(int(tot), int(frac * 2**16))

	def to_buffer(self, buff):
		buff.write(self.Seconds.to_bytes(2, byteorder = 'big', signed = False))
		buff.write(self.Fraction.to_bytes(2, byteorder = 'big', signed = False))

	def to_bytes(self):
		buff = io.BytesIO()
		self.to_buffer(buff)
		return buff.getvalue()

	def total(self):
		return float(self.Seconds) + self.Fraction / 2**16

	def __float__(self):
		return self.total()

	def __eq__(self, other):
		if not isinstance(other, NTPShort):
			return NotImplemented
		return (self.Seconds, self.Fraction) == (other.Seconds, other.Fraction)

	def __repr__(self):
		return 'NTPShort(%d, %d)' % (self.Seconds, self.Fraction)


class NTPTimeStamp(ProtocolBase):
	"""
	32.32 fixed point time, seconds since NTPEpoch
	"""
	def __init__(self, seconds = 0, fraction = 0):
		self.Seconds  = seconds
		self.Fraction = fraction

	@staticmethod
	def from_bytes(bbuff):
		return NTPTimeStamp.from_buffer(io.BytesIO(bbuff))

	@staticmethod
	def from_buffer(buff):
		s = NTPTimeStamp()
		s.Seconds  = int.from_bytes(buff.read(4), byteorder='big', signed = False)
		s.Fraction = int.from_bytes(buff.read(4), byteorder='big', signed = False)
		return s

	@staticmethod
	def from_datetime(dt):
		if dt.tzinfo is None:
			dt = dt.replace(tzinfo = datetime.timezone.utc)
		t = dt - NTPEpoch
		seconds = t.days * 86400 + t.seconds
		fraction = (t.microseconds << 32) // 10**6
		return NTPTimeStamp(seconds, fraction)

	def to_buffer(self, buff):
		buff.write(self.Seconds.to_bytes(4, byteorder = 'big', signed = False))
		buff.write(self.Fraction.to_bytes(4, byteorder = 'big', signed = False))

	def to_bytes(self):
		buff = io.BytesIO()
		self.to_buffer(buff)
		return buff.getvalue()

	def nanoseconds(self):
		return int(self.Fraction / NTPFractionPerNanosecond)

	def to_datetime(self):
		"""
		Converts the timestamp to an aware UTC datetime.
		datetime only keeps microseconds, use isoformat() for the full precision
		:return: datetime.datetime
		"""
		return NTPEpoch + datetime.timedelta(seconds = self.Seconds, microseconds = self.nanoseconds() // 1000)

	def isoformat(self):
		dt = NTPEpoch + datetime.timedelta(seconds = self.Seconds)
		return '%s.%09dZ' % (dt.strftime('%Y-%m-%dT%H:%M:%S'), self.nanoseconds())

	def __eq__(self, other):
		if not isinstance(other, NTPTimeStamp):
			return NotImplemented
		return (self.Seconds, self.Fraction) == (other.Seconds, other.Fraction)

	def __repr__(self):
		return 'NTPTimeStamp(%d, %d)' % (self.Seconds, self.Fraction)


class NTPPoll:
	"""
	log2 of the maximum interval between successive messages.
	Values outside 6-10 are shown as invalid, they are never rejected.
	"""
	MIN = 6
	MAX = 10

	def __init__(self, value = 0):
		self.value = value

	@staticmethod
	def from_buffer(buff):
		return NTPPoll(int.from_bytes(buff.read(1), byteorder='big', signed = True))

	def to_buffer(self, buff):
		buff.write(self.value.to_bytes(1, byteorder = 'big', signed = True))

	def is_valid(self):
		return NTPPoll.MIN <= self.value <= NTPPoll.MAX

	def __str__(self):
		if self.is_valid():
			return '%d seconds' % 2**self.value
		return 'invalid (%d)' % self.value

	def __eq__(self, other):
		if not isinstance(other, NTPPoll):
			return NotImplemented
		return self.value == other.value

	def __repr__(self):
		return 'NTPPoll(%d)' % self.value


class NTPPrecision:
	def __init__(self, value = 0):
		self.value = value

	@staticmethod
	def from_buffer(buff):
		return NTPPrecision(int.from_bytes(buff.read(1), byteorder='big', signed = True))

	def to_buffer(self, buff):
		buff.write(self.value.to_bytes(1, byteorder = 'big', signed = True))

	def __str__(self):
		return '%.9f seconds' % (2.0 ** self.value)

	def __eq__(self, other):
		if not isinstance(other, NTPPrecision):
			return NotImplemented
		return self.value == other.value

	def __repr__(self):
		return 'NTPPrecision(%d)' % self.value


class NTPPacket(ProtocolBase):
	def __init__(self):
		self.LVM = 0
		self.Stratum = 0
		self.Poll = NTPPoll()
		self.Precision = NTPPrecision()
		self.RootDelay = NTPShort()
		self.RootDispersion = NTPShort()
		self.ReferenceID = b'\x00' * 4
		self.ReferenceTimestamp = NTPTimeStamp()
		self.OriginTimestamp = NTPTimeStamp()
		self.ReceiveTimestamp = NTPTimeStamp()
		self.TransmitTimestamp = NTPTimeStamp()

	@staticmethod
	def from_bytes(bbuff):
		return NTPPacket.from_buffer(io.BytesIO(bbuff))

	@staticmethod
	def from_buffer(buff):
		"""
		Reads exactly one header from the buffer.
		The caller must make sure NTP_PACKET_SIZE bytes are available.
		"""
		ntp = NTPPacket()
		ntp.LVM = int.from_bytes(buff.read(1), byteorder='big', signed = False)
		ntp.Stratum = int.from_bytes(buff.read(1), byteorder='big', signed = False)
		ntp.Poll = NTPPoll.from_buffer(buff)
		ntp.Precision = NTPPrecision.from_buffer(buff)
		ntp.RootDelay = NTPShort.from_buffer(buff)
		ntp.RootDispersion = NTPShort.from_buffer(buff)
		ntp.ReferenceID = buff.read(4)
		ntp.ReferenceTimestamp = NTPTimeStamp.from_buffer(buff)
		ntp.OriginTimestamp = NTPTimeStamp.from_buffer(buff)
		ntp.ReceiveTimestamp = NTPTimeStamp.from_buffer(buff)
		ntp.TransmitTimestamp = NTPTimeStamp.from_buffer(buff)
		return ntp

	@staticmethod
	def construct(leap, version, mode):
		"""
		Creates a query packet, stratum is set to unsynchronized and every other field is zero.
		:param leap: leap indicator
		:type leap: NTPLeap
		:param version: NTP version number
		:type version: int
		:param mode: association mode
		:type mode: NTPMode
		:return: NTPPacket
		"""
		ntp = NTPPacket()
		ntp.LVM = (leap.value << 6) | ((version & 0x7) << 3) | mode.value
		ntp.Stratum = 16
		return ntp

	def leap_version_mode(self):
		leap = NTPLeap.from_int((self.LVM >> 6) & 0x3)
		version = (self.LVM >> 3) & 0x7
		mode = NTPMode.from_int(self.LVM & 0x7)
		return leap, version, mode

	def reference_id_str(self):
		if self.Stratum > 1:
			return '.'.join(str(b) for b in self.ReferenceID)
		return ''.join(chr(b) for b in self.ReferenceID)

	def to_buffer(self, buff):
		buff.write(self.LVM.to_bytes(1, byteorder = 'big', signed = False))
		buff.write(self.Stratum.to_bytes(1, byteorder = 'big', signed = False))
		self.Poll.to_buffer(buff)
		self.Precision.to_buffer(buff)
		self.RootDelay.to_buffer(buff)
		self.RootDispersion.to_buffer(buff)
		if len(self.ReferenceID) != 4:
			raise ValueError('ReferenceID must be exactly 4 bytes, got %d' % len(self.ReferenceID))
		buff.write(self.ReferenceID)
		self.ReferenceTimestamp.to_buffer(buff)
		self.OriginTimestamp.to_buffer(buff)
		self.ReceiveTimestamp.to_buffer(buff)
		self.TransmitTimestamp.to_buffer(buff)

	def to_bytes(self):
		buff = io.BytesIO()
		self.to_buffer(buff)
		return buff.getvalue()

	def _fields(self):
		return (
			self.LVM, self.Stratum, self.Poll, self.Precision,
			self.RootDelay, self.RootDispersion, self.ReferenceID,
			self.ReferenceTimestamp, self.OriginTimestamp,
			self.ReceiveTimestamp, self.TransmitTimestamp,
		)

	def __eq__(self, other):
		if not isinstance(other, NTPPacket):
			return NotImplemented
		return self._fields() == other._fields()

	def __repr__(self):
		t  = '== NTP Packet ==\r\n'
		t += 'LVM : 0x%02x\r\n' % self.LVM
		t += 'Stratum : %d\r\n' % self.Stratum
		t += 'Poll : %s\r\n' % repr(self.Poll)
		t += 'Precision : %s\r\n' % repr(self.Precision)
		t += 'RootDelay : %s\r\n' % repr(self.RootDelay)
		t += 'RootDispersion : %s\r\n' % repr(self.RootDispersion)
		t += 'ReferenceID : %s\r\n' % self.ReferenceID.hex()
		t += 'ReferenceTimestamp : %s\r\n' % repr(self.ReferenceTimestamp)
		t += 'OriginTimestamp : %s\r\n' % repr(self.OriginTimestamp)
		t += 'ReceiveTimestamp : %s\r\n' % repr(self.ReceiveTimestamp)
		t += 'TransmitTimestamp : %s\r\n' % repr(self.TransmitTimestamp)
		return t
