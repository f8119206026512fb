# usage: ntpprobe -c /full/path/to/config_debug.py pool.ntp.org
#    or: NTPPROBE_CONFIG=/full/path/to/config_debug.py ntpprobe pool.ntp.org

defaults = {
	'version' : 3,
	'timeout' : 0.5,
}

logsettings = {
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
		'level'   : 'DEBUG',
		'handlers': ['console']
	}
}
