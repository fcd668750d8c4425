[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dswarm"
version = "0.3.0"
description = "Cluster scheduling, host discovery, leader election and requested-state storage for container hosts"
requires-python = ">=3.10"
dependencies = []
keywords = ["cluster", "scheduler", "discovery", "leader-election", "containers", "key-value"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dswarm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
