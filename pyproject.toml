[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tradesim"
version = "1.0.0"
description = "Real-time trade cost simulator: slippage, market impact and fee estimates from a live L2 order book feed"
requires-python = ">=3.10"
keywords = ["trading", "order book", "slippage", "market impact", "almgren-chriss", "websocket"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Financial and Insurance Industry",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
    "websockets",
]

[project.scripts]
tradesim = "tradesim.app:main"

[tool.hatch.build.targets.wheel]
packages = ["tradesim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
