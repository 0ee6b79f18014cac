[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tgprober"
version = "0.0.1"
description = "Telegram bot that probes TCP endpoints and reports latency, loss and uptime to group chats"
requires-python = ">=3.11"
keywords = ["telegram", "bot", "monitoring", "tcp", "latency", "uptime"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "httpx",
    "matplotlib",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
tgprober = "tgprober.app:main"

[tool.hatch.build.targets.wheel]
packages = ["tgprober"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
