[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memkit"
version = "0.1.0"
description = "Testing kit for memcached servers: binary protocol packets, a server launcher, a timed runner and strict parsing helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["memcached", "cache", "binary-protocol", "testing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
memkit-timedrun = "memkit.timedrun:main"

[tool.hatch.build.targets.wheel]
packages = ["memkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
