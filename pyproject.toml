[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ticketsys"
version = "0.1.0"
description = "Betting ticket service: accumulator and system tickets, combination generation and payout calculation over HTTP"
requires-python = ">=3.10"
dependencies = []
keywords = ["betting", "tickets", "system-bets", "combinations", "wsgi", "payout", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ticketsys = "ticketsys.app:main"

[tool.hatch.build.targets.wheel]
packages = ["ticketsys"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
