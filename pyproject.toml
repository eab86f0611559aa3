[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mindshift"
version = "0.1.0"
description = "Small threaded JSON HTTP backend for a journaling app: health, user, chat and journal endpoints behind token authentication."
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "json", "api", "journal", "backend", "router"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mindshift = "mindshift.main:main"

[tool.hatch.build.targets.wheel]
packages = ["mindshift"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
