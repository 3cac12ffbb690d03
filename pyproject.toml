[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rainnode"
version = "0.1.0"
description = "Node, device and parameter model for connected home devices, with scenes, schedules and MQTT reporting"
requires-python = ">=3.10"
dependencies = []
keywords = ["home-automation", "iot", "mqtt", "scenes", "schedules", "smart-home"]
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
    "Topic :: Home Automation",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rainnode"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
