[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "errorkit"
version = "0.1.0"
description = "Declarative exception classes: messages built from fields, source chaining, transparent wrapping and conversions, checked when the class is declared."
requires-python = ">=3.10"
dependencies = []
keywords = ["errors", "exceptions", "error-handling", "formatting", "decorators"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["errorkit"]

[tool.hatch.build.targets.sdist]
include = ["errorkit", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
