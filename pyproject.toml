[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hyperclock"
version = "0.3.1"
description = "An event-driven, phased time engine on asyncio, with an interactive shell and buffer simulations."
requires-python = ">=3.11"
keywords = ["hyperclock", "simulation", "time", "phase-engine", "asyncio", "scheduler"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "termcolor",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
hyperdev = "hyperclock.demo:main"
hypershell = "hyperclock.shell:main"
hyperclock-sim = "hyperclock.simulation:main"
hyperclock-superclock = "hyperclock.super_clock:main"
hyperclock-multiclock = "hyperclock.multi_clock:main"

[tool.hatch.build.targets.wheel]
packages = ["hyperclock"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
