from abc import ABC, abstractmethod


class ProtocolBase(ABC):
	@staticmethod
	@abstractmethod
	def from_bytes(bbuff):
		"""
		takes bytes, returns the instentiated class
		"""
		raise NotImplementedError

	@staticmethod
	@abstractmethod
	def from_buffer(buff):
		"""
		takes io.BytesIO, returns the instentiated class
		"""
		raise NotImplementedError

	@abstractmethod
	def to_buffer(self, buff):
		"""
		serializes the class into io.BytesIO
		"""
		raise NotImplementedError

	@abstractmethod
	def to_bytes(self):
		"""
		serializes the class
		"""
		raise NotImplementedError
