[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "udpbroker"
version = "0.1.0"
description = "A small UDP publish/subscribe broker with an admin console, publisher and subscriber clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["udp", "publish-subscribe", "pubsub", "broker", "messaging"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
udpbroker-admin = "udpbroker.admin:main"
udpbroker-publisher = "udpbroker.publisher:main"
udpbroker-subscriber = "udpbroker.subscriber:main"

[tool.hatch.build.targets.wheel]
packages = ["udpbroker"]

[tool.pytest.ini_options]
addopts = "-ra"
