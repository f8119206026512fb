import logging


class LogEntry:
	"""
	Communications object that is used to pass log information to the root Logger
	"""
	def __init__(self, level, name, msg, exc_text = None):
		"""

		:param level: log level
		:type level: int
		:param name: name of the module emitting the message
		:type name: str
		:param msg: the message which will be logged
		:type msg: str
		:param exc_text: formatted traceback, if any
		:type exc_text: str
		"""
		self.level = level
		self.name  = name
		self.msg   = msg
		self.exc_text = exc_text

	def __str__(self):
		t = '[%s][%s] %s' % (self.name, logging.getLevelName(self.level), self.msg)
		if self.exc_text:
			t += '\r\n%s' % self.exc_text
		return t
