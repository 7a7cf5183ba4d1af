[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "geoserv"
version = "0.1.0"
description = "Building blocks of an Endless Online game server: packet sequencing, quests, weddings, parties, sessions, listener routing and server-list heartbeats"
requires-python = ">=3.10"
dependencies = []
keywords = ["endless-online", "game-server", "mmorpg", "quest", "protocol"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Role-Playing",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["geoserv"]

[tool.pytest.ini_options]
addopts = "-ra"
