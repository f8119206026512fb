from setuptools import setup, find_packages

setup(
	# Application name:
	name="ntpprobe",

	# Version number (initial):
	version="0.0.1",

	# Packages
	packages=find_packages(include=["ntpprobe", "ntpprobe.*"]),

	# Include additional files into the package
	include_package_data=True,

	zip_safe = True,
	#
	description="Queries NTP servers and prints the decoded replies",

	#Dependent packages (distributions)
	install_requires=[],
	extras_require={
		'test': ['pytest'],
	},

	entry_points={
		'console_scripts': [
			'ntpprobe = ntpprobe.__main__:main',
		],
	},

	python_requires='>=3.10',
)
