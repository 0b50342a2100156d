[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "burberry"
version = "0.2.0"
description = "An asyncio framework for event-driven bots: collectors feed strategies, strategies emit actions, executors carry them out."
requires-python = ">=3.10"
keywords = [
    "asyncio",
    "framework",
    "event-driven",
    "bot",
    "broadcast",
    "ethereum",
    "json-rpc",
    "telegram",
    "mempool",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Typing :: Typed",
]
dependencies = [
    "httpx>=0.24",
    "pycryptodome>=3.18",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["burberry"]

[tool.hatch.build.targets.sdist]
include = ["burberry", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
