[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "burstrelay"
version = "0.1.0"
description = "An asyncio TCP message relay with point-to-point queues and broadcast groups"
requires-python = ">=3.10"
dependencies = []
keywords = ["relay", "message-queue", "broadcast", "asyncio", "tcp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
burstrelay-server = "burstrelay.server:main"
burstrelay-demo = "burstrelay.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["burstrelay"]

[tool.pytest.ini_options]
addopts = "-ra"
