[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dinari"
version = "1.0.0"
description = "Node building blocks: binary serialization, key-value block and transaction storage, and a JSON-RPC request-handling core"
requires-python = ">=3.10"
dependencies = []
keywords = ["blockchain", "json-rpc", "serialization", "utxo", "storage", "rate-limiting"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dinari"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
